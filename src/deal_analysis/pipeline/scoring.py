"""
Overall deal score.

overall = round(market * 0.3 + financial * 0.5 + (100 - risk) * 0.2)

Risk is inverted so that a riskier deal lowers the score. Halves round up
and the result is clamped to 0..100.
"""

from __future__ import annotations

from ..models.analysis import FinancialAnalysis, MarketAnalysis, RiskAssessment
from ..models.results import StageResult
from ..utils import clamp, round_half_up

MARKET_WEIGHT = 0.3
FINANCIAL_WEIGHT = 0.5
RISK_WEIGHT = 0.2


def _tenths(weight: float) -> int:
    return round(weight * 10)


def calculate_overall_score(market_score: int, financial_score: int, risk_score: int) -> int:
    """
    Weighted overall score.

    >>> calculate_overall_score(80, 60, 40)
    66
    """
    # Sum in integer tenths so exact halves are not lost to float error
    tenths = (
        market_score * _tenths(MARKET_WEIGHT)
        + financial_score * _tenths(FINANCIAL_WEIGHT)
        + (100 - risk_score) * _tenths(RISK_WEIGHT)
    )
    return clamp(round_half_up(tenths / 10), 0, 100)


def overall_from_results(
    market: StageResult[MarketAnalysis],
    financial: StageResult[FinancialAnalysis],
    risk: StageResult[RiskAssessment],
) -> int:
    # Fallback outputs carry neutral scores, so this is always defined
    return calculate_overall_score(
        market.output.score,
        financial.output.score,
        risk.output.overall_risk,
    )
