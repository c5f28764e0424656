"""
Prompts for the four headline analysis stages.

Each builder returns the chat messages for one stage. Missing deal figures
render as "N/A" so the model can call out the gap; the benchmark block is
omitted entirely when no StandardsContext is available.

Response schemas are defined in deal_analysis.models.analysis.
"""

import json
from typing import Any

from ..models.snapshot import DealSnapshot
from ..models.standards import StandardsContext, format_benchmarks
from ..utils import format_currency, format_number

JSON_ONLY = 'Respond with a single JSON object only, no prose outside the JSON.'


def _json_or_na(value: Any) -> str:
    if value is None or value == [] or value == {} or value == ():
        return 'N/A'
    return json.dumps(value, default=str)


def _lease_summary(snapshot: DealSnapshot) -> str:
    if snapshot.lease is None:
        return 'N/A'
    return _json_or_na(snapshot.lease.model_dump(exclude_none=True))


def _machines_summary(snapshot: DealSnapshot) -> str:
    return _json_or_na([m.to_prompt_dict() for m in snapshot.machines])


def _expenses_summary(snapshot: DealSnapshot) -> str:
    return _json_or_na([e.model_dump(exclude_none=True) for e in snapshot.expenses])


def _messages(system: str, user: str) -> list[dict[str, str]]:
    return [
        {'role': 'system', 'content': system},
        {'role': 'user', 'content': user},
    ]


# =============================================================================
# Market
# =============================================================================

MARKET_SYSTEM_PROMPT = (
    'You are an expert laundromat investment analyst. '
    'Provide detailed, data-driven market analysis. ' + JSON_ONLY
)


def build_market_prompt(
    snapshot: DealSnapshot,
    standards: StandardsContext | None = None,
) -> list[dict[str, str]]:
    user = f"""Analyze this laundromat market opportunity:

Address: {snapshot.property_address or 'N/A'}
Facility Size: {format_number(snapshot.facility_size_sqft, ' sq ft')}
Asking Price: {format_currency(snapshot.asking_price)}
Annual Revenue: {format_currency(snapshot.gross_income_annual)}
Revenue per sq ft: {format_number(snapshot.revenue_per_sqft, decimals=2)}
Monthly Rent: {format_currency(snapshot.lease.monthly_rent if snapshot.lease else None)}
{format_benchmarks(standards, 'rent_pct', 'ancillary_revenue_share')}
Provide market analysis including:
1. Location quality assessment (0-100)
2. Competition level analysis
3. Demographic fit for laundromat
4. Market saturation assessment
5. Growth potential
6. Rent reasonableness vs market

Return JSON with these keys:
- "score": overall market score, integer 0-100 (higher is better)
- "demographic_score", "competition_score", "location_quality": integers 0-100
- "demographics", "competition", "trends": objects with supporting detail
- "insights": string with your narrative analysis
If a figure above is N/A, say so in the insights instead of guessing."""
    return _messages(MARKET_SYSTEM_PROMPT, user)


# =============================================================================
# Financial
# =============================================================================

FINANCIAL_SYSTEM_PROMPT = (
    'You are a financial expert specializing in laundromat investments. '
    'Provide thorough financial analysis. ' + JSON_ONLY
)


def build_financial_prompt(
    snapshot: DealSnapshot,
    standards: StandardsContext | None = None,
) -> list[dict[str, str]]:
    user = f"""Analyze these laundromat financials:

Asking Price: {format_currency(snapshot.asking_price)}
Gross Revenue: {format_currency(snapshot.gross_income_annual)}
Net Income: {format_currency(snapshot.annual_net)}
NOI (reported or derived): {format_currency(snapshot.noi)}
Implied Cap Rate: {format_number(snapshot.cap_rate_percent, '%', 2)}
Operating Expense Ratio: {format_number(snapshot.expense_ratio_percent, '%', 1)}
Facility Size: {format_number(snapshot.facility_size_sqft, ' sq ft')}
Expenses: {_expenses_summary(snapshot)}
{format_benchmarks(standards, 'cap_rate', 'noi_multiple', 'rent_pct', 'utilities_pct', 'labor_pct')}
Calculate and analyze:
1. Cap rate analysis
2. Cash-on-cash return potential
3. Revenue per square foot
4. Expense reasonableness
5. Financial red flags
6. Value assessment (overpriced/fair/underpriced)
7. Break-even analysis

Return JSON with these keys:
- "score": overall financial score, integer 0-100 (higher is better)
- "cap_rate", "cash_on_cash": percentages as numbers
- "value_assessment": one of "overpriced", "fair", "underpriced", "unknown"
- "red_flags": list of strings
- "metrics": object with any other computed figures
- "insights": string with your narrative analysis
If a figure above is N/A, say so in the insights instead of guessing."""
    return _messages(FINANCIAL_SYSTEM_PROMPT, user)


# =============================================================================
# Risk
# =============================================================================

RISK_SYSTEM_PROMPT = (
    'You are a risk assessment specialist for real estate investments. '
    'Focus on identifying and quantifying risks. ' + JSON_ONLY
)


def build_risk_prompt(
    snapshot: DealSnapshot,
    standards: StandardsContext | None = None,
) -> list[dict[str, str]]:
    user = f"""Assess investment risks for this laundromat:

Property: {snapshot.property_address or 'N/A'}
Price: {format_currency(snapshot.asking_price)}
Revenue: {format_currency(snapshot.gross_income_annual)}
Implied Cap Rate: {format_number(snapshot.cap_rate_percent, '%', 2)}
Lease: {_lease_summary(snapshot)}
Equipment: {_json_or_na(snapshot.equipment)}
Machines: {snapshot.machine_count} units, average age {format_number(snapshot.average_machine_age, ' years', 1)}
{format_benchmarks(standards, 'cap_rate', 'rent_pct')}
Analyze risks:
1. Market risks (competition, demographics)
2. Financial risks (cash flow, expenses)
3. Operational risks (equipment, management)
4. Lease risks (terms, increases)
5. Exit risks (resale potential)

Return JSON with these keys (scores are integers 0-100, higher = more risky):
- "overall_risk", "financial_risk", "market_risk", "operational_risk",
  "lease_risk", "exit_risk"
- "factors": object mapping risk area to a short explanation
- "mitigation_strategies": list of strings
- "insights": string with your narrative analysis"""
    return _messages(RISK_SYSTEM_PROMPT, user)


# =============================================================================
# Revenue optimization
# =============================================================================

REVENUE_SYSTEM_PROMPT = (
    'You are a laundromat operations expert focused on revenue optimization '
    'and business growth. ' + JSON_ONLY
)


def build_revenue_prompt(
    snapshot: DealSnapshot,
    standards: StandardsContext | None = None,
) -> list[dict[str, str]]:
    user = f"""Analyze revenue optimization opportunities for this laundromat:

Current Revenue: {format_currency(snapshot.gross_income_annual)}
Facility Size: {format_number(snapshot.facility_size_sqft, ' sq ft')}
Revenue per sq ft: {format_number(snapshot.revenue_per_sqft, decimals=2)}
Equipment: {_json_or_na(snapshot.equipment)}
Machines: {_machines_summary(snapshot)}
{format_benchmarks(standards, 'ancillary_revenue_share')}
Identify:
1. Revenue per sq ft analysis
2. Equipment optimization opportunities
3. Pricing optimization potential
4. Additional service opportunities
5. Operational efficiency improvements
6. Timeline and investment required
7. Projected revenue increases

Return JSON with these keys:
- "current_revenue", "projected_revenue": annual dollar amounts as numbers
- "opportunities": list of objects with "name", "description",
  "estimated_annual_increase", "investment_required"
- "timeline_months": integer
- "insights": string with your narrative analysis"""
    return _messages(REVENUE_SYSTEM_PROMPT, user)
