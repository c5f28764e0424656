"""
Pytest configuration and shared fixtures.

Key fixtures:
- deal_payload: A complete dealData dict as sent by the web app
- request_body: A full POST /analyze body
- model_responses: Per-call-kind canned model responses (mutable per test)
- fake_openai: AsyncMock OpenAIClient that answers from model_responses
- fake_store: AsyncMock PostgresClient recording every write

No test needs network access.
"""

import json
import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

# Load environment variables
from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / '.env'
if env_file.exists():
    load_dotenv(env_file)


# Substrings of each system prompt, used to route fake model calls
CALL_KINDS = {
    'market analysis': 'market',
    'financial expert': 'financial',
    'risk assessment specialist': 'risk',
    'revenue optimization': 'revenue',
    'operating expenses': 'expense',
    'strategic advisor': 'recommendations',
}


def call_kind(messages: list[dict[str, str]]) -> str:
    """Which pipeline call a message list belongs to."""
    system = messages[0]['content'].lower()
    for marker, kind in CALL_KINDS.items():
        if marker in system:
            return kind
    raise AssertionError(f'Unrecognized prompt: {system[:60]}')


MARKET_JSON = {
    'score': 80,
    'demographic_score': 72,
    'competition_score': 65,
    'location_quality': 78,
    'demographics': {'population': 42000, 'median_income': 51000},
    'competition': {'nearby_laundromats': 3},
    'trends': {'growth': 'stable'},
    'insights': 'Dense renter population with limited competition.',
}

FINANCIAL_JSON = {
    'score': 60,
    'cap_rate': 10.5,
    'cash_on_cash': 14.2,
    'value_assessment': 'fair',
    'red_flags': ['Utilities trending up'],
    'insights': 'Priced near market.',
}

RISK_JSON = {
    'overall_risk': 40,
    'financial_risk': 35,
    'market_risk': 30,
    'operational_risk': 45,
    'lease_risk': 55,
    'exit_risk': 40,
    'factors': {'lease': 'Five years remaining'},
    'mitigation_strategies': ['Negotiate a renewal option'],
    'insights': 'Moderate risk driven by the lease term.',
}

REVENUE_JSON = {
    'current_revenue': 180000,
    'projected_revenue': 215000,
    'opportunities': ['Add wash-and-fold', 'Card payment system'],
    'timeline_months': 18,
    'insights': 'Ancillary services are underdeveloped.',
}

EXPENSE_JSON = {
    'is_reasonable': True,
    'confidence': 82,
    'expected_percent_of_revenue': 20,
    'typical_range': {'min': 15, 'max': 25},
    'red_flags': [],
    'notes': 'Within the normal range.',
}

RECOMMENDATIONS_JSON = {
    'recommendations': [
        {
            'category': 'negotiation',
            'priority': 2,
            'title': 'Negotiate price',
            'description': 'Use the utilities trend to negotiate.',
            'impact_score': 70,
            'implementation_difficulty': 2,
            'estimated_benefit': 15000,
            'timeframe': 'Before closing',
        },
        {
            'category': 'risk',
            'priority': 1,
            'title': 'Secure lease renewal',
            'description': 'Add a renewal option before closing.',
            'impact_score': 85,
            'implementation_difficulty': 3,
            'estimated_benefit': None,
            'timeframe': '30 days',
        },
    ],
}


@pytest.fixture
def deal_payload() -> dict:
    """A complete dealData object in the web app's camelCase shape."""
    return {
        'askingPrice': 350000,
        'grossIncomeAnnual': '$180,000',
        'annualNet': 60000,
        'facilitySizeSqft': 2400,
        'propertyAddress': '1200 Main Street, Springfield, IL 62704',
        'lease': {
            'monthlyRent': 4500,
            'annualRentIncreasePercent': 3,
            'remainingLeaseTermYears': 5,
            'renewalOptionsCount': 1,
        },
        'expenses': [
            {'expenseName': 'Rent', 'amountAnnual': 54000},
            {'expenseName': 'Electric', 'amountAnnual': 18000},
            {'expenseName': 'Payroll', 'amountAnnual': 30000},
        ],
        'machineInventory': [
            {'machineType': 'washer', 'brand': 'Speed Queen', 'quantity': 20, 'ageYears': 6},
            {'machineType': 'dryer', 'brand': 'Dexter', 'quantity': 16, 'ageYears': 8},
        ],
        'dealName': 'Springfield Suds',
    }


@pytest.fixture
def request_body(deal_payload) -> dict:
    return {'dealData': deal_payload, 'dealId': 'deal-123', 'userId': 'user-456'}


@pytest.fixture
def model_responses() -> dict:
    """
    Canned response per call kind.

    A value may be a string (returned as the model text), a dict (returned
    as JSON), or an Exception instance (raised by the call).
    """
    return {
        'market': MARKET_JSON,
        'financial': FINANCIAL_JSON,
        'risk': RISK_JSON,
        'revenue': REVENUE_JSON,
        'expense': EXPENSE_JSON,
        'recommendations': RECOMMENDATIONS_JSON,
    }


@pytest.fixture
def fake_openai(model_responses) -> AsyncMock:
    """OpenAIClient stand-in routing each call to model_responses."""

    async def _chat_completion(messages, **kwargs):
        response = model_responses[call_kind(messages)]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, dict):
            return json.dumps(response)
        return response

    client = AsyncMock()
    client.chat_completion = AsyncMock(side_effect=_chat_completion)
    return client


@pytest.fixture
def fake_store() -> AsyncMock:
    """PostgresClient stand-in; every write method is an AsyncMock."""
    store = AsyncMock()
    store.verify_connectivity = AsyncMock(return_value=True)
    return store


LEGACY_STANDARDS = {
    'industryStandards': {
        'valuation': {
            'capRateRange': {'min': 8, 'max': 12},
            'multipleRange': {'min': 3, 'max': 5},
        },
        'expenses': {
            'rent': {'percentOfRevenueRange': {'min': 15, 'max': 25}},
            'utilities': {'percentOfRevenueRange': {'min': 12, 'max': 18}},
        },
    },
}
