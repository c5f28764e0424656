"""
Per-line-item expense validation.

Each reported expense gets its own model call. Calls run concurrently under
a bounded semaphore; one failing item never affects the others, and the
output list always matches the input list in length and order.
"""

from __future__ import annotations

import asyncio

from ..errors import UpstreamModelError
from ..logging import get_logger
from ..models.analysis import ExpenseValidationOutput
from ..models.results import ExpenseValidation
from ..models.snapshot import DealSnapshot, ExpenseLineItem
from ..models.standards import StandardsContext
from ..prompts.expense_prompts import build_expense_prompt
from .parsing import Unparsed, parse_model_output
from .stages import StageExecutor

logger = get_logger(__name__)

EXPENSE_TEMPERATURE = 0.2
UNVALIDATED_NOTES = 'Unable to validate'


class ExpenseValidator:
    """Validates every expense line of a deal against the model."""

    def __init__(self, executor: StageExecutor, max_concurrency: int = 8):
        self.executor = executor
        self.max_concurrency = max(1, max_concurrency)

    async def validate_all(
        self,
        snapshot: DealSnapshot,
        standards: StandardsContext | None = None,
    ) -> list[ExpenseValidation]:
        """
        Validate all expense lines concurrently.

        Returns:
            One ExpenseValidation per input line, in input order
        """
        items = list(snapshot.expenses)
        if not items:
            return []

        semaphore = asyncio.Semaphore(min(len(items), self.max_concurrency))
        results = await asyncio.gather(
            *(self.validate_one(item, snapshot, standards, semaphore) for item in items)
        )

        logger.info(
            'expenses.validated',
            count=len(results),
            validated=sum(1 for r in results if r.validated),
        )
        return list(results)

    async def validate_one(
        self,
        item: ExpenseLineItem,
        snapshot: DealSnapshot,
        standards: StandardsContext | None = None,
        semaphore: asyncio.Semaphore | None = None,
    ) -> ExpenseValidation:
        """Validate a single line; failures become a zero-confidence record."""
        log = logger.bind(expense_name=item.expense_name)

        try:
            messages = build_expense_prompt(item, snapshot, standards)
            raw_text = await self.executor.complete(messages, EXPENSE_TEMPERATURE, semaphore)
        except UpstreamModelError as e:
            log.warning('expense.model_failed', error=str(e), error_type=type(e).__name__)
            return ExpenseValidation.unvalidated(item, UNVALIDATED_NOTES)
        except Exception as e:
            log.exception('expense.crashed', error_type=type(e).__name__)
            return ExpenseValidation.unvalidated(item, UNVALIDATED_NOTES)

        outcome = parse_model_output(raw_text, ExpenseValidationOutput)
        if isinstance(outcome, Unparsed):
            log.warning('expense.fallback', reason=outcome.reason)
            return ExpenseValidation.unvalidated(item, raw_text)

        return ExpenseValidation.from_output(item, outcome.value)
