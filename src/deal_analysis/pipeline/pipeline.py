"""
Main pipeline orchestrator for deal analysis.

Provides end-to-end processing of one request:
1. Build the DealSnapshot from the request payload
2. Resolve industry benchmarks (best-effort)
3. Start the per-expense validation fan-out as its own task
4. Run market, financial, risk and revenue stages concurrently, then
   synthesize recommendations from the configured stage outputs without
   waiting on the expense calls
5. Aggregate the overall score
6. Assemble the report and schedule persistence in the background
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from ..clients.openai_client import OpenAIClient
from ..clients.postgres_client import PostgresClient
from ..clients.standards_client import StandardsClient
from ..config import Settings
from ..errors import PartialSuccessResult
from ..logging import PipelineTimer, get_logger, logging_context
from ..models.request import AnalysisRequest
from ..models.results import AnalysisReport
from ..utils import uuid7
from .expense_validator import ExpenseValidator
from .persistence import PersistenceFanout, build_persistence_tasks
from .recommender import RecommendationSynthesizer
from .scoring import overall_from_results
from .stages import FINANCIAL_STAGE, MARKET_STAGE, REVENUE_STAGE, RISK_STAGE, StageExecutor
from .standards import StandardsResolver

logger = get_logger(__name__)

HEADLINE_STAGES = ('market', 'financial', 'risk', 'revenue')


@dataclass
class PipelineOptions:
    """Tunables injected from Settings."""

    model_timeout_seconds: float = 45.0
    max_stage_concurrency: int = 4
    max_expense_concurrency: int = 8
    persistence_retry_attempts: int = 3
    persistence_retry_wait_seconds: float = 1.0
    recommendation_inputs: tuple[str, ...] = ('market', 'financial', 'risk')

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineOptions:
        return cls(
            model_timeout_seconds=settings.MODEL_CALL_TIMEOUT_SECONDS,
            max_stage_concurrency=settings.MAX_STAGE_CONCURRENCY,
            max_expense_concurrency=settings.MAX_EXPENSE_CONCURRENCY,
            persistence_retry_attempts=settings.PERSISTENCE_RETRY_ATTEMPTS,
            persistence_retry_wait_seconds=settings.PERSISTENCE_RETRY_WAIT_SECONDS,
            recommendation_inputs=settings.recommendation_inputs,
        )


@dataclass
class AnalysisPipelineResult:
    """Result of one pipeline run."""

    report: AnalysisReport
    analysis_id: str
    standards_available: bool = False
    persistence: asyncio.Task[PartialSuccessResult] | None = None
    timings: dict[str, Any] = field(default_factory=dict)

    @property
    def persistence_scheduled(self) -> bool:
        return self.persistence is not None

    def to_response(self) -> dict[str, Any]:
        """The synchronous JSON body returned to the caller."""
        return {
            'success': True,
            'analysis': self.report.to_dict(),
            'metadata': {
                'analysis_id': self.analysis_id,
                'stage_status': self.report.stage_status(),
                'standards_available': self.standards_available,
                'persistence_scheduled': self.persistence_scheduled,
                'timings': self.timings,
            },
        }


class DealAnalysisPipeline:
    """
    End-to-end pipeline for analyzing a laundromat deal.

    Orchestrates:
    - StandardsResolver: Best-effort benchmark lookup
    - StageExecutor: The four headline analysis stages
    - ExpenseValidator: One model call per expense line
    - RecommendationSynthesizer: Prioritized action list
    - PersistenceFanout: Background writes to Postgres

    Holds no per-request state; concurrency limits are created per run.

    Usage:
        pipeline = DealAnalysisPipeline(openai_client, postgres_client=store)
        result = await pipeline.analyze(request)
    """

    def __init__(
        self,
        openai_client: OpenAIClient,
        standards_resolver: StandardsResolver | None = None,
        postgres_client: PostgresClient | None = None,
        options: PipelineOptions | None = None,
    ):
        """
        Initialize the pipeline with its collaborators.

        Args:
            openai_client: Client for all model calls
            standards_resolver: Benchmark lookup (omitted: no benchmarks)
            postgres_client: Result store (omitted: nothing is persisted)
            options: Timeouts, concurrency limits and retry settings
        """
        self.openai = openai_client
        self.options = options or PipelineOptions()
        self.standards = standards_resolver or StandardsResolver(None)
        self.postgres = postgres_client

        self.executor = StageExecutor(openai_client, self.options.model_timeout_seconds)
        self.expense_validator = ExpenseValidator(
            self.executor, self.options.max_expense_concurrency,
        )
        self.recommender = RecommendationSynthesizer(self.executor)
        self.persistence = PersistenceFanout(
            retry_attempts=self.options.persistence_retry_attempts,
            retry_wait_seconds=self.options.persistence_retry_wait_seconds,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        postgres_client: PostgresClient | None = None,
    ) -> DealAnalysisPipeline:
        """Build the pipeline and its clients from Settings."""
        openai_client = OpenAIClient(
            api_key=settings.OPENAI_API_KEY,
            chat_model=settings.OPENAI_CHAT_MODEL,
        )
        standards_client = None
        if settings.STANDARDS_API_URL:
            standards_client = StandardsClient(
                base_url=settings.STANDARDS_API_URL,
                api_key=settings.STANDARDS_API_KEY,
                timeout_seconds=settings.STANDARDS_TIMEOUT_SECONDS,
            )
        return cls(
            openai_client,
            standards_resolver=StandardsResolver(standards_client),
            postgres_client=postgres_client,
            options=PipelineOptions.from_settings(settings),
        )

    async def analyze(self, request: AnalysisRequest) -> AnalysisPipelineResult:
        """
        Analyze one deal.

        Individual stage, expense and lookup failures degrade to fallback
        values; this method only raises on cancellation or programming errors.

        Args:
            request: Validated request (dealData, dealId, userId)

        Returns:
            AnalysisPipelineResult with the report and persistence handle
        """
        analysis_id = str(uuid7())
        timer = PipelineTimer()

        with logging_context(
            trace_id=analysis_id,
            deal_id=request.deal_id,
            user_id=request.user_id,
        ):
            logger.info('pipeline.started')

            with timer.stage('snapshot'):
                snapshot = request.snapshot()

            with timer.stage('standards'):
                standards = await self.standards.resolve(snapshot.property_address)

            # Expenses have their own concurrency cap and nothing downstream of
            # the headline stages depends on them
            expense_task = asyncio.create_task(
                self.expense_validator.validate_all(snapshot, standards)
            )
            try:
                semaphore = asyncio.Semaphore(self.options.max_stage_concurrency)
                with timer.stage('analysis'):
                    market, financial, risk, revenue = await asyncio.gather(
                        self.executor.run(MARKET_STAGE, snapshot, standards, semaphore),
                        self.executor.run(FINANCIAL_STAGE, snapshot, standards, semaphore),
                        self.executor.run(RISK_STAGE, snapshot, standards, semaphore),
                        self.executor.run(REVENUE_STAGE, snapshot, standards, semaphore),
                    )

                results = {'market': market, 'financial': financial, 'risk': risk, 'revenue': revenue}
                analyses = {
                    name: results[name]
                    for name in self.options.recommendation_inputs
                    if name in results
                }

                with timer.stage('recommendations'):
                    recommendations = await self.recommender.synthesize(snapshot, analyses)

                with timer.stage('expenses'):
                    expenses = await expense_task
            finally:
                # No-op once finished; stops the fan-out if this request is cancelled
                expense_task.cancel()

            report = AnalysisReport(
                market=market,
                financial=financial,
                risk=risk,
                revenue=revenue,
                expenses=expenses,
                recommendations=recommendations,
                overall=overall_from_results(market, financial, risk),
            )

            persistence_task = None
            if self.postgres is not None:
                persistence_task = self.persistence.schedule(
                    build_persistence_tasks(
                        self.postgres, request.deal_id, request.user_id, snapshot, report,
                    )
                )

            timings = timer.summary()
            logger.info(
                'pipeline.completed',
                overall=report.overall,
                stage_status=report.stage_status(),
                expenses=len(expenses),
                recommendations=len(recommendations),
                standards_available=standards is not None,
                **timings,
            )

        return AnalysisPipelineResult(
            report=report,
            analysis_id=analysis_id,
            standards_available=standards is not None,
            persistence=persistence_task,
            timings=timings,
        )

    async def close(self, drain_timeout: float | None = 10.0) -> None:
        """Drain background writes, then release clients."""
        await self.persistence.drain(drain_timeout)
        await self.standards.close()
        await self.openai.close()
