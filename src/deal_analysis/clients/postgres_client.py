"""
Postgres store for deal analysis results.

Uses SQLAlchemy 2.0 async engine + asyncpg with raw SQL. Every method is a
single self-contained statement in its own transaction; there is no
cross-row transaction, so callers can run writes concurrently and a failure
in one never rolls back another.

Tables written:
- deal_analysis (UPSERT on deal_id, user_id)
- market_data (UPSERT on location_key)
- expense_analysis (INSERT)
- revenue_projections (UPSERT on deal_id, user_id)
- risk_assessments (UPSERT on deal_id, user_id)
- ai_recommendations (INSERT)
"""

from __future__ import annotations

import json
import re
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from ..models.analysis import MarketAnalysis, Recommendation, RevenueOptimization, RiskAssessment
from ..models.results import AnalysisReport, ExpenseValidation
from ..utils import uuid7

logger = structlog.get_logger(__name__)

# Confidence recorded on the summary row
_CONFIDENCE_ALL_PARSED = 85
_CONFIDENCE_DEGRADED = 50
_REVENUE_CONFIDENCE = 75
_REVENUE_TIMELINE_MONTHS = 12

_WHITESPACE = re.compile(r'\s+')

_SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS deal_analysis (
        deal_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        overall_score INTEGER NOT NULL,
        market_score INTEGER NOT NULL,
        financial_score INTEGER NOT NULL,
        risk_score INTEGER NOT NULL,
        key_insights JSONB,
        confidence_level INTEGER,
        analysis_summary TEXT,
        recommendation TEXT,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        PRIMARY KEY (deal_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS market_data (
        location_key TEXT PRIMARY KEY,
        address TEXT NOT NULL,
        demographic_score INTEGER,
        competition_score INTEGER,
        market_opportunity_score INTEGER,
        population_data JSONB,
        competition_data JSONB,
        market_trends JSONB,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS expense_analysis (
        id UUID PRIMARY KEY,
        deal_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        expense_name TEXT NOT NULL,
        reported_amount DOUBLE PRECISION,
        is_reasonable BOOLEAN,
        validation_notes TEXT,
        confidence_level INTEGER,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS revenue_projections (
        deal_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        current_revenue DOUBLE PRECISION,
        projected_revenue DOUBLE PRECISION,
        optimization_opportunities JSONB,
        confidence_level INTEGER,
        timeline_months INTEGER,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        PRIMARY KEY (deal_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS risk_assessments (
        deal_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        overall_risk_score INTEGER,
        financial_risk_score INTEGER,
        market_risk_score INTEGER,
        operational_risk_score INTEGER,
        risk_factors JSONB,
        success_probability INTEGER,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        PRIMARY KEY (deal_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS ai_recommendations (
        id UUID PRIMARY KEY,
        deal_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        category TEXT,
        priority INTEGER,
        title TEXT,
        description TEXT,
        impact_score INTEGER,
        implementation_difficulty INTEGER,
        estimated_benefit DOUBLE PRECISION,
        timeframe TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
)


def normalize_location_key(address: str) -> str:
    """Lower-case the address and replace whitespace runs with '-'."""
    return _WHITESPACE.sub('-', address.strip().lower())


def _sanitize_url(url: str) -> str:
    """Remove URL query params that asyncpg does not understand.

    Hosted Postgres URLs often include ``channel_binding`` and ``sslmode``
    which are libpq parameters. asyncpg rejects unknown connection params.
    """
    _STRIP_PARAMS = {'channel_binding', 'sslmode'}
    parsed = urlparse(url)
    if not parsed.query:
        return url
    params = parse_qs(parsed.query)
    filtered = {k: v for k, v in params.items() if k not in _STRIP_PARAMS}
    new_query = urlencode(filtered, doseq=True)
    return urlunparse(parsed._replace(query=new_query))


def _jsonb(value: Any) -> str:
    return json.dumps(value, default=str)


def _deal_analysis_params(deal_id: str, user_id: str, report: AnalysisReport) -> dict[str, Any]:
    market = report.market.output
    return {
        'deal_id': deal_id,
        'user_id': user_id,
        'overall_score': report.overall,
        'market_score': market.score,
        'financial_score': report.financial.output.score,
        'risk_score': report.risk.output.overall_risk,
        'key_insights': _jsonb({
            'market': report.market.to_dict(),
            'financial': report.financial.to_dict(),
            'risk': report.risk.to_dict(),
            'overall': report.overall,
        }),
        'confidence_level': (
            _CONFIDENCE_ALL_PARSED if report.headline_parsed else _CONFIDENCE_DEGRADED
        ),
        'analysis_summary': f'Overall Score: {report.overall}/100',
        'recommendation': market.insights or 'Analysis complete',
    }


def _market_data_params(address: str, market: MarketAnalysis) -> dict[str, Any]:
    return {
        'location_key': normalize_location_key(address),
        'address': address,
        'demographic_score': market.demographic_score,
        'competition_score': market.competition_score,
        'market_opportunity_score': market.score,
        'population_data': _jsonb(market.demographics or {}),
        'competition_data': _jsonb(market.competition or {}),
        'market_trends': _jsonb(market.trends or {}),
    }


def _expense_params(
    deal_id: str, user_id: str, validation: ExpenseValidation, row_id: str | None = None,
) -> dict[str, Any]:
    return {
        'id': row_id or str(uuid7()),
        'deal_id': deal_id,
        'user_id': user_id,
        'expense_name': validation.expense_name,
        'reported_amount': validation.reported_amount,
        'is_reasonable': validation.is_reasonable,
        'validation_notes': validation.notes,
        'confidence_level': validation.confidence,
    }


def _revenue_params(deal_id: str, user_id: str, revenue: RevenueOptimization) -> dict[str, Any]:
    return {
        'deal_id': deal_id,
        'user_id': user_id,
        'current_revenue': revenue.current_revenue,
        'projected_revenue': revenue.projected_revenue,
        'optimization_opportunities': _jsonb(revenue.opportunities),
        'confidence_level': _REVENUE_CONFIDENCE,
        'timeline_months': revenue.timeline_months or _REVENUE_TIMELINE_MONTHS,
    }


def _risk_params(deal_id: str, user_id: str, risk: RiskAssessment) -> dict[str, Any]:
    return {
        'deal_id': deal_id,
        'user_id': user_id,
        'overall_risk_score': risk.overall_risk,
        'financial_risk_score': risk.financial_risk,
        'market_risk_score': risk.market_risk,
        'operational_risk_score': risk.operational_risk,
        'risk_factors': _jsonb(risk.factors or {}),
        'success_probability': 100 - risk.overall_risk,
    }


def _recommendation_params(
    deal_id: str, user_id: str, rec: Recommendation, row_id: str | None = None,
) -> dict[str, Any]:
    return {
        'id': row_id or str(uuid7()),
        'deal_id': deal_id,
        'user_id': user_id,
        'category': rec.category,
        'priority': rec.priority,
        'title': rec.title,
        'description': rec.description,
        'impact_score': rec.impact_score,
        'implementation_difficulty': rec.implementation_difficulty,
        'estimated_benefit': rec.estimated_benefit,
        'timeframe': rec.timeframe,
    }


class PostgresClient:
    """
    Async Postgres client for persisting analysis results.

    Uses SQLAlchemy 2.0 async engine with asyncpg for raw SQL execution.
    Methods raise on failure; the persistence fan-out isolates and logs them.
    """

    def __init__(self, database_url: str | None = None):
        """
        Initialize with a Postgres connection URL.

        Args:
            database_url: Postgres connection URL. 'postgres://' and
                          'postgresql://' prefixes are converted to use asyncpg.
        """
        self._engine: AsyncEngine | None = None
        self._database_url = database_url

    async def connect(self, database_url: str | None = None) -> None:
        """
        Create the async engine. Idempotent, no-op if already connected.

        Args:
            database_url: Override the URL from __init__.
        """
        if self._engine is not None:
            return

        url = database_url or self._database_url
        if not url:
            raise ValueError('database_url is required')

        url = _sanitize_url(url)

        if url.startswith('postgres://'):
            url = url.replace('postgres://', 'postgresql+asyncpg://', 1)
        elif url.startswith('postgresql://') and '+asyncpg' not in url:
            url = url.replace('postgresql://', 'postgresql+asyncpg://', 1)

        self._engine = create_async_engine(
            url,
            pool_size=5,
            max_overflow=5,
            pool_pre_ping=True,
            pool_timeout=30,
            connect_args={'prepared_statement_cache_size': 0},
        )
        logger.info('postgres_client.connected')

    async def close(self) -> None:
        """Dispose of the engine and connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info('postgres_client.closed')

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError('PostgresClient not connected, call connect() first')
        return self._engine

    async def verify_connectivity(self) -> bool:
        """Return True if we can execute a simple query."""
        try:
            async with self.engine.begin() as conn:
                await conn.execute(text('SELECT 1'))
            return True
        except Exception:
            logger.exception('postgres_client.connectivity_check_failed')
            return False

    async def setup_schema(self) -> None:
        """Create the result tables if they do not exist."""
        async with self.engine.begin() as conn:
            for statement in _SCHEMA_STATEMENTS:
                await conn.execute(text(statement))
        logger.info('postgres_client.schema_ready', tables=len(_SCHEMA_STATEMENTS))

    async def _execute(self, sql: str, params: dict[str, Any]) -> None:
        async with self.engine.begin() as conn:
            await conn.execute(text(sql), params)

    # =========================================================================
    # Writes
    # =========================================================================

    async def upsert_deal_analysis(
        self, deal_id: str, user_id: str, report: AnalysisReport,
    ) -> None:
        """UPSERT the summary row with the four headline scores."""
        await self._execute(
            """
            INSERT INTO deal_analysis (
                deal_id, user_id, overall_score, market_score, financial_score,
                risk_score, key_insights, confidence_level, analysis_summary,
                recommendation
            ) VALUES (
                :deal_id, :user_id, :overall_score, :market_score, :financial_score,
                :risk_score, CAST(:key_insights AS JSONB), :confidence_level,
                :analysis_summary, :recommendation
            )
            ON CONFLICT (deal_id, user_id) DO UPDATE SET
                overall_score = EXCLUDED.overall_score,
                market_score = EXCLUDED.market_score,
                financial_score = EXCLUDED.financial_score,
                risk_score = EXCLUDED.risk_score,
                key_insights = EXCLUDED.key_insights,
                confidence_level = EXCLUDED.confidence_level,
                analysis_summary = EXCLUDED.analysis_summary,
                recommendation = EXCLUDED.recommendation,
                updated_at = now()
            """,
            _deal_analysis_params(deal_id, user_id, report),
        )
        logger.debug('postgres_client.upsert_deal_analysis', deal_id=deal_id)

    async def upsert_market_data(self, address: str, market: MarketAnalysis) -> None:
        """UPSERT market scores keyed by the normalized address."""
        params = _market_data_params(address, market)
        await self._execute(
            """
            INSERT INTO market_data (
                location_key, address, demographic_score, competition_score,
                market_opportunity_score, population_data, competition_data,
                market_trends
            ) VALUES (
                :location_key, :address, :demographic_score, :competition_score,
                :market_opportunity_score, CAST(:population_data AS JSONB),
                CAST(:competition_data AS JSONB), CAST(:market_trends AS JSONB)
            )
            ON CONFLICT (location_key) DO UPDATE SET
                address = EXCLUDED.address,
                demographic_score = EXCLUDED.demographic_score,
                competition_score = EXCLUDED.competition_score,
                market_opportunity_score = EXCLUDED.market_opportunity_score,
                population_data = EXCLUDED.population_data,
                competition_data = EXCLUDED.competition_data,
                market_trends = EXCLUDED.market_trends,
                updated_at = now()
            """,
            params,
        )
        logger.debug('postgres_client.upsert_market_data', location_key=params['location_key'])

    async def insert_expense_validation(
        self,
        deal_id: str,
        user_id: str,
        validation: ExpenseValidation,
        row_id: str | None = None,
    ) -> None:
        """
        INSERT one expense validation row.

        Pass the same row_id on every attempt of a retried write; a row that
        already committed is then left untouched.
        """
        await self._execute(
            """
            INSERT INTO expense_analysis (
                id, deal_id, user_id, expense_name, reported_amount,
                is_reasonable, validation_notes, confidence_level
            ) VALUES (
                :id, :deal_id, :user_id, :expense_name, :reported_amount,
                :is_reasonable, :validation_notes, :confidence_level
            )
            ON CONFLICT (id) DO NOTHING
            """,
            _expense_params(deal_id, user_id, validation, row_id),
        )
        logger.debug(
            'postgres_client.insert_expense_validation',
            expense_name=validation.expense_name,
        )

    async def upsert_revenue_projection(
        self, deal_id: str, user_id: str, revenue: RevenueOptimization,
    ) -> None:
        """UPSERT the revenue projection row."""
        await self._execute(
            """
            INSERT INTO revenue_projections (
                deal_id, user_id, current_revenue, projected_revenue,
                optimization_opportunities, confidence_level, timeline_months
            ) VALUES (
                :deal_id, :user_id, :current_revenue, :projected_revenue,
                CAST(:optimization_opportunities AS JSONB), :confidence_level,
                :timeline_months
            )
            ON CONFLICT (deal_id, user_id) DO UPDATE SET
                current_revenue = EXCLUDED.current_revenue,
                projected_revenue = EXCLUDED.projected_revenue,
                optimization_opportunities = EXCLUDED.optimization_opportunities,
                confidence_level = EXCLUDED.confidence_level,
                timeline_months = EXCLUDED.timeline_months,
                updated_at = now()
            """,
            _revenue_params(deal_id, user_id, revenue),
        )
        logger.debug('postgres_client.upsert_revenue_projection', deal_id=deal_id)

    async def upsert_risk_assessment(
        self, deal_id: str, user_id: str, risk: RiskAssessment,
    ) -> None:
        """UPSERT the risk assessment row."""
        await self._execute(
            """
            INSERT INTO risk_assessments (
                deal_id, user_id, overall_risk_score, financial_risk_score,
                market_risk_score, operational_risk_score, risk_factors,
                success_probability
            ) VALUES (
                :deal_id, :user_id, :overall_risk_score, :financial_risk_score,
                :market_risk_score, :operational_risk_score,
                CAST(:risk_factors AS JSONB), :success_probability
            )
            ON CONFLICT (deal_id, user_id) DO UPDATE SET
                overall_risk_score = EXCLUDED.overall_risk_score,
                financial_risk_score = EXCLUDED.financial_risk_score,
                market_risk_score = EXCLUDED.market_risk_score,
                operational_risk_score = EXCLUDED.operational_risk_score,
                risk_factors = EXCLUDED.risk_factors,
                success_probability = EXCLUDED.success_probability,
                updated_at = now()
            """,
            _risk_params(deal_id, user_id, risk),
        )
        logger.debug('postgres_client.upsert_risk_assessment', deal_id=deal_id)

    async def insert_recommendation(
        self,
        deal_id: str,
        user_id: str,
        recommendation: Recommendation,
        row_id: str | None = None,
    ) -> None:
        """INSERT one recommendation row (idempotent for a given row_id)."""
        await self._execute(
            """
            INSERT INTO ai_recommendations (
                id, deal_id, user_id, category, priority, title, description,
                impact_score, implementation_difficulty, estimated_benefit,
                timeframe
            ) VALUES (
                :id, :deal_id, :user_id, :category, :priority, :title,
                :description, :impact_score, :implementation_difficulty,
                :estimated_benefit, :timeframe
            )
            ON CONFLICT (id) DO NOTHING
            """,
            _recommendation_params(deal_id, user_id, recommendation, row_id),
        )
        logger.debug('postgres_client.insert_recommendation', title=recommendation.title)
