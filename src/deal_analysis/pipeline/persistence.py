"""
Background persistence fan-out.

Once the report is assembled, every result row is written independently:
one summary row, one market row (when the deal has an address), one row per
expense validation, the revenue projection, the risk assessment, and one row
per recommendation.

Writes run in a background task so the HTTP response never waits on the
database. Each write is retried, and a write that still fails is logged and
recorded in a PartialSuccessResult without affecting its siblings.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from functools import partial
from typing import Awaitable, Callable

from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from ..clients.postgres_client import PostgresClient
from ..errors import DealAnalysisError, PartialSuccessResult, PersistenceError
from ..logging import get_logger
from ..models.results import AnalysisReport
from ..models.snapshot import DealSnapshot
from ..utils import uuid7

logger = get_logger(__name__)


@dataclass(frozen=True)
class PersistenceTask:
    """One independent write."""

    table: str
    item_id: str | None
    write: Callable[[], Awaitable[None]]


def build_persistence_tasks(
    store: PostgresClient,
    deal_id: str,
    user_id: str,
    snapshot: DealSnapshot,
    report: AnalysisReport,
) -> list[PersistenceTask]:
    """
    Enumerate every write for a completed report.

    Insert rows get their UUIDv7 id here, once, so every retry of a write
    targets the same row.

    Returns:
        Tasks in table order; the market row is skipped without an address
    """
    tasks = [
        PersistenceTask(
            'deal_analysis', deal_id,
            partial(store.upsert_deal_analysis, deal_id, user_id, report),
        ),
    ]

    if snapshot.property_address:
        tasks.append(PersistenceTask(
            'market_data', snapshot.property_address,
            partial(store.upsert_market_data, snapshot.property_address, report.market.output),
        ))

    for validation in report.expenses:
        tasks.append(PersistenceTask(
            'expense_analysis', validation.expense_name,
            partial(
                store.insert_expense_validation, deal_id, user_id, validation,
                row_id=str(uuid7()),
            ),
        ))

    tasks.append(PersistenceTask(
        'revenue_projections', deal_id,
        partial(store.upsert_revenue_projection, deal_id, user_id, report.revenue.output),
    ))
    tasks.append(PersistenceTask(
        'risk_assessments', deal_id,
        partial(store.upsert_risk_assessment, deal_id, user_id, report.risk.output),
    ))

    for recommendation in report.recommendations:
        tasks.append(PersistenceTask(
            'ai_recommendations', recommendation.title,
            partial(
                store.insert_recommendation, deal_id, user_id, recommendation,
                row_id=str(uuid7()),
            ),
        ))

    return tasks


class PersistenceFanout:
    """
    Runs persistence tasks with per-write retry and failure isolation.

    Scheduled runs are tracked so shutdown can drain them.
    """

    def __init__(self, retry_attempts: int = 3, retry_wait_seconds: float = 1.0):
        """
        Args:
            retry_attempts: Total attempts per write, including the first
            retry_wait_seconds: Base for the exponential backoff between attempts
        """
        self.retry_attempts = max(1, retry_attempts)
        self.retry_wait_seconds = retry_wait_seconds
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(self, tasks: list[PersistenceTask]) -> asyncio.Task[PartialSuccessResult]:
        """
        Start the writes in the background and return immediately.

        The task inherits the caller's logging context.
        """
        task = asyncio.create_task(self.run(tasks))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning('persistence.cancelled')
        elif task.exception() is not None:
            exc = task.exception()
            logger.error(
                'persistence.crashed',
                error=str(exc),
                error_type=type(exc).__name__,
            )

    async def run(self, tasks: list[PersistenceTask]) -> PartialSuccessResult:
        """
        Execute all writes concurrently.

        Returns:
            PartialSuccessResult with one entry per task
        """
        outcomes = await asyncio.gather(
            *(self._write(task) for task in tasks),
            return_exceptions=True,
        )

        result = PartialSuccessResult()
        for task, outcome in zip(tasks, outcomes):
            if isinstance(outcome, BaseException):
                error = (
                    outcome
                    if isinstance(outcome, DealAnalysisError)
                    else PersistenceError(
                        f'{task.table} write failed: {type(outcome).__name__}: {outcome}',
                        context={'table': task.table, 'item_id': task.item_id},
                    )
                )
                logger.error(
                    'persistence.write_failed',
                    table=task.table,
                    item_id=task.item_id,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                result.add_failure(error, item_id=task.item_id, data={'table': task.table})
            else:
                result.add_success(item_id=task.item_id, data={'table': task.table})

        logger.info(
            'persistence.completed',
            succeeded=result.success_count,
            failed=result.failure_count,
            failed_tables=result.failed_tables(),
        )
        return result

    async def _write(self, task: PersistenceTask) -> None:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(
                multiplier=self.retry_wait_seconds,
                min=self.retry_wait_seconds,
                max=self.retry_wait_seconds * 10,
            ),
            reraise=True,
        ):
            with attempt:
                await task.write()

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for scheduled writes; cancel whatever is left after the timeout."""
        if not self._tasks:
            return
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning('persistence.drain_timeout', pending=len(pending))
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info('persistence.drained', completed=len(done))
