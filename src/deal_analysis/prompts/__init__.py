"""
LLM prompts for the deal analysis pipeline.

Provides system and user prompts for:
- The four headline stages (market, financial, risk, revenue)
- Per-expense validation
- Recommendation synthesis
"""

from .expense_prompts import benchmark_for_expense, build_expense_prompt
from .recommendation_prompts import build_recommendation_prompt
from .stage_prompts import (
    build_financial_prompt,
    build_market_prompt,
    build_revenue_prompt,
    build_risk_prompt,
)

__all__ = [
    'benchmark_for_expense',
    'build_expense_prompt',
    'build_financial_prompt',
    'build_market_prompt',
    'build_recommendation_prompt',
    'build_revenue_prompt',
    'build_risk_prompt',
]
