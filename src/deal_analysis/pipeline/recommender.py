"""
Recommendation synthesis.

Runs after the headline stages complete and consumes their outputs. The
result is never empty: a failed call or unparseable output produces a single
"Review Analysis" recommendation carrying whatever text came back.
"""

from __future__ import annotations

from ..errors import UpstreamModelError
from ..logging import get_logger
from ..models.analysis import Recommendation
from ..models.results import StageResult
from ..models.snapshot import DealSnapshot
from ..prompts.recommendation_prompts import build_recommendation_prompt
from .parsing import Unparsed, parse_model_list
from .stages import MODEL_UNAVAILABLE_TEXT, StageExecutor

logger = get_logger(__name__)

RECOMMENDATION_TEMPERATURE = 0.5
MAX_RECOMMENDATIONS = 10


def fallback_recommendation(raw_text: str) -> Recommendation:
    """The single recommendation returned when synthesis fails."""
    return Recommendation(
        category='analysis',
        priority=3,
        title='Review Analysis',
        description=raw_text,
        impact_score=50,
        implementation_difficulty=2,
        timeframe='immediate',
    )


class RecommendationSynthesizer:
    """Turns the headline analyses into a prioritized recommendation list."""

    def __init__(self, executor: StageExecutor):
        self.executor = executor

    async def synthesize(
        self,
        snapshot: DealSnapshot,
        analyses: dict[str, StageResult],
    ) -> list[Recommendation]:
        """
        Generate recommendations from completed stage results.

        Args:
            snapshot: The deal snapshot
            analyses: Stage results keyed by name, in prompt order

        Returns:
            Between 1 and MAX_RECOMMENDATIONS recommendations, most urgent first
        """
        try:
            messages = build_recommendation_prompt(snapshot, analyses)
            raw_text = await self.executor.complete(messages, RECOMMENDATION_TEMPERATURE)
        except UpstreamModelError as e:
            logger.warning('recommendations.model_failed', error=str(e))
            return [fallback_recommendation(MODEL_UNAVAILABLE_TEXT)]
        except Exception as e:
            logger.exception('recommendations.crashed', error_type=type(e).__name__)
            return [fallback_recommendation(MODEL_UNAVAILABLE_TEXT)]

        outcome = parse_model_list(raw_text, Recommendation, key='recommendations')
        if isinstance(outcome, Unparsed):
            logger.warning('recommendations.fallback', reason=outcome.reason)
            return [fallback_recommendation(raw_text)]

        # Stable sort keeps model order within a priority
        items = sorted(outcome.items, key=lambda r: r.priority)[:MAX_RECOMMENDATIONS]
        logger.info('recommendations.parsed', count=len(items), skipped=outcome.skipped)
        return items
