"""
Structured output schemas for the model-backed analysis stages.

Each schema is the validation target for one stage's JSON response. Every
numeric field the aggregator or the store reads has a defined default, so a
response that omits a field still yields a complete record. Scores are
coerced to integers and clamped to [0, 100]; priorities and difficulties to
[1, 5]. Free-text fields accept any JSON value and keep its text form.
Unknown keys from the model are kept (extra='allow').
"""

import json
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from ..utils import clamp, round_half_up, to_money, to_number

NEUTRAL_SCORE = 50
NEUTRAL_RANK = 3


def _score(value: Any) -> int:
    number = to_number(value)
    if number is None:
        raise ValueError(f'score must be numeric, got {value!r}')
    return clamp(round_half_up(number), 0, 100)


def _rank(value: Any) -> int:
    number = to_number(value)
    if number is None:
        raise ValueError(f'rank must be numeric, got {value!r}')
    return clamp(round_half_up(number), 1, 5)


def _figure(value: Any) -> float:
    number = to_number(value)
    return 0.0 if number is None else number


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return '\n'.join(v if isinstance(v, str) else json.dumps(v) for v in value)
    return json.dumps(value)


def _months(value: Any) -> int | None:
    # "6-12" and other ranges carry no single figure
    number = to_number(value)
    return None if number is None else max(0, round_half_up(number))


_TRUE_WORDS = {'true', 'yes', 'y', 'reasonable'}
_FALSE_WORDS = {'false', 'no', 'n', 'unreasonable'}


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    word = str(value).strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f'flag must be boolean, got {value!r}')


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    return [value]


Score = Annotated[int, BeforeValidator(_score)]
Rank = Annotated[int, BeforeValidator(_rank)]
Figure = Annotated[float, BeforeValidator(_figure)]
Money = Annotated[float | None, BeforeValidator(to_money)]
InsightText = Annotated[str, BeforeValidator(_text)]
LooseList = Annotated[list[Any], BeforeValidator(_as_list)]
Months = Annotated[int | None, BeforeValidator(_months)]
Flag = Annotated[bool, BeforeValidator(_flag)]


class ModelRecord(BaseModel):
    """Common base: nulls from the model fall back to field defaults."""

    model_config = ConfigDict(frozen=True, extra='allow')

    @model_validator(mode='before')
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class StageOutput(ModelRecord):
    """A stage response with its narrative summary."""

    insights: InsightText = ''


class MarketAnalysis(StageOutput):
    """Location quality, competition and demographic fit."""

    score: Score = NEUTRAL_SCORE
    demographic_score: Score = NEUTRAL_SCORE
    competition_score: Score = NEUTRAL_SCORE
    location_quality: Score = NEUTRAL_SCORE
    demographics: Any = Field(default_factory=dict)
    competition: Any = Field(default_factory=dict)
    trends: Any = Field(default_factory=dict)


class FinancialAnalysis(StageOutput):
    """Cap rate, cash-on-cash and value assessment."""

    score: Score = NEUTRAL_SCORE
    cap_rate: Figure = 0.0
    cash_on_cash: Figure = 0.0
    value_assessment: InsightText = 'unknown'
    red_flags: LooseList = Field(default_factory=list)
    metrics: Any = Field(default_factory=dict)


class RiskAssessment(StageOutput):
    """Risk scores: higher means riskier."""

    overall_risk: Score = NEUTRAL_SCORE
    financial_risk: Score = NEUTRAL_SCORE
    market_risk: Score = NEUTRAL_SCORE
    operational_risk: Score = NEUTRAL_SCORE
    lease_risk: Score = NEUTRAL_SCORE
    exit_risk: Score = NEUTRAL_SCORE
    factors: Any = Field(default_factory=dict)
    mitigation_strategies: LooseList = Field(default_factory=list)


class RevenueOptimization(StageOutput):
    """Revenue upside and the opportunities behind it."""

    current_revenue: Figure = 0.0
    projected_revenue: Figure = 0.0
    opportunities: LooseList = Field(default_factory=list)
    timeline_months: Months = None


class ExpenseValidationOutput(StageOutput):
    """Model verdict on one expense line."""

    is_reasonable: Flag = True
    confidence: Score = NEUTRAL_SCORE
    notes: InsightText = ''
    expected_percent_of_revenue: Money = None
    typical_range: Any = None
    red_flags: LooseList = Field(default_factory=list)


class Recommendation(ModelRecord):
    """One prioritized action item."""

    category: InsightText = 'general'
    priority: Rank = NEUTRAL_RANK
    title: InsightText = 'Recommendation'
    description: InsightText = ''
    impact_score: Score = NEUTRAL_SCORE
    implementation_difficulty: Rank = NEUTRAL_RANK
    estimated_benefit: Money = None
    timeframe: InsightText = 'TBD'
