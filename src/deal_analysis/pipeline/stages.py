"""
Analysis stage execution.

A stage is one model call with its own prompt, temperature, response schema
and fallback default. StageExecutor.run() never raises: a failed call, a
timeout or unparseable output all yield a fallback StageResult whose numeric
fields carry the stage defaults, so the score aggregator always has inputs.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from pydantic import BaseModel

from ..clients.openai_client import OpenAIClient
from ..errors import ModelTimeoutError, UpstreamModelError, wrap_model_error
from ..logging import get_logger
from ..models.analysis import FinancialAnalysis, MarketAnalysis, RevenueOptimization, RiskAssessment
from ..models.results import StageResult
from ..models.snapshot import DealSnapshot
from ..models.standards import StandardsContext
from ..prompts.stage_prompts import (
    build_financial_prompt,
    build_market_prompt,
    build_revenue_prompt,
    build_risk_prompt,
)
from .parsing import Unparsed, parse_model_output

logger = get_logger(__name__)

T = TypeVar('T', bound=BaseModel)

MODEL_UNAVAILABLE_TEXT = 'Analysis unavailable: the model call did not complete.'

# Projected revenue uplift assumed when the revenue stage falls back
REVENUE_FALLBACK_UPLIFT = 1.1


@dataclass(frozen=True)
class StageSpec(Generic[T]):
    """Static definition of one analysis stage."""

    name: str
    schema: type[T]
    temperature: float
    build_messages: Callable[[DealSnapshot, StandardsContext | None], list[dict[str, str]]]
    fallback: Callable[[DealSnapshot, str], T]


def _revenue_fallback(snapshot: DealSnapshot, raw_text: str) -> RevenueOptimization:
    current = snapshot.gross_income_annual or 0.0
    return RevenueOptimization(
        current_revenue=current,
        projected_revenue=current * REVENUE_FALLBACK_UPLIFT,
        opportunities=[raw_text] if raw_text else [],
        insights=raw_text,
    )


MARKET_STAGE = StageSpec(
    name='market',
    schema=MarketAnalysis,
    temperature=0.3,
    build_messages=build_market_prompt,
    fallback=lambda snapshot, raw_text: MarketAnalysis(insights=raw_text),
)

FINANCIAL_STAGE = StageSpec(
    name='financial',
    schema=FinancialAnalysis,
    temperature=0.2,
    build_messages=build_financial_prompt,
    fallback=lambda snapshot, raw_text: FinancialAnalysis(insights=raw_text),
)

RISK_STAGE = StageSpec(
    name='risk',
    schema=RiskAssessment,
    temperature=0.3,
    build_messages=build_risk_prompt,
    fallback=lambda snapshot, raw_text: RiskAssessment(insights=raw_text),
)

REVENUE_STAGE = StageSpec(
    name='revenue',
    schema=RevenueOptimization,
    temperature=0.4,
    build_messages=build_revenue_prompt,
    fallback=_revenue_fallback,
)


class StageExecutor:
    """
    Runs analysis stages against the model with a per-call timeout.

    Concurrency is bounded by the semaphore the caller passes in, so each
    pipeline run gets its own limit.
    """

    def __init__(self, openai_client: OpenAIClient, timeout_seconds: float = 45.0):
        """
        Args:
            openai_client: Client used for every model call
            timeout_seconds: Per-call budget; a timeout counts as a failed call
        """
        self.openai = openai_client
        self.timeout_seconds = timeout_seconds

    async def complete(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        semaphore: asyncio.Semaphore | None = None,
        json_mode: bool = True,
    ) -> str:
        """
        One bounded, time-limited model call.

        Raises:
            UpstreamModelError: On call failure (ModelTimeoutError on timeout)
        """
        async with semaphore or contextlib.nullcontext():
            try:
                return await asyncio.wait_for(
                    self.openai.chat_completion(
                        messages=messages,
                        temperature=temperature,
                        json_mode=json_mode,
                    ),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError as e:
                raise ModelTimeoutError(
                    f'Model call exceeded {self.timeout_seconds:g}s',
                    context={'timeout_seconds': self.timeout_seconds},
                ) from e
            except UpstreamModelError:
                raise
            except Exception as e:
                raise wrap_model_error(e) from e

    async def run(
        self,
        spec: StageSpec[T],
        snapshot: DealSnapshot,
        standards: StandardsContext | None = None,
        semaphore: asyncio.Semaphore | None = None,
    ) -> StageResult[T]:
        """
        Execute one stage; never raises (except on cancellation).

        Returns:
            Parsed StageResult, or a fallback carrying the stage defaults
        """
        log = logger.bind(stage=spec.name)
        started = time.perf_counter()

        try:
            messages = spec.build_messages(snapshot, standards)
            raw_text = await self.complete(messages, spec.temperature, semaphore)
        except UpstreamModelError as e:
            log.warning('stage.model_failed', error=str(e), error_type=type(e).__name__)
            return StageResult(
                stage=spec.name,
                output=spec.fallback(snapshot, MODEL_UNAVAILABLE_TEXT),
                parsed=False,
                error=e.message,
            )
        except Exception as e:
            log.exception('stage.crashed', error_type=type(e).__name__)
            return StageResult(
                stage=spec.name,
                output=spec.fallback(snapshot, MODEL_UNAVAILABLE_TEXT),
                parsed=False,
                error=str(e),
            )

        outcome = parse_model_output(raw_text, spec.schema)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)

        if isinstance(outcome, Unparsed):
            log.warning('stage.fallback', reason=outcome.reason, duration_ms=duration_ms)
            return StageResult(
                stage=spec.name,
                output=spec.fallback(snapshot, raw_text),
                parsed=False,
                raw_text=raw_text,
                error=outcome.reason,
            )

        if outcome.dropped:
            log.warning('stage.fields_defaulted', fields=list(outcome.dropped))
        log.info('stage.parsed', duration_ms=duration_ms)
        return StageResult(
            stage=spec.name,
            output=outcome.value,
            parsed=True,
            raw_text=raw_text,
        )
