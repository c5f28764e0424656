"""
In-memory results of one pipeline run.

StageResult is the tagged Parsed/Fallback union for a stage: `output` is
always a fully-populated schema instance (validated model output, or the
stage's fallback default built around the raw text), and `parsed` is the tag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict

from .analysis import (
    ExpenseValidationOutput,
    FinancialAnalysis,
    MarketAnalysis,
    Recommendation,
    RevenueOptimization,
    RiskAssessment,
)
from .snapshot import ExpenseLineItem

T = TypeVar('T', bound=BaseModel)

StageStatus = Literal['parsed', 'fallback']


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """Outcome of one analysis stage."""

    stage: str
    output: T
    parsed: bool
    raw_text: str | None = None
    error: str | None = None

    @property
    def status(self) -> StageStatus:
        return 'parsed' if self.parsed else 'fallback'

    def to_dict(self) -> dict[str, Any]:
        return self.output.model_dump(mode='json')


class ExpenseValidation(BaseModel):
    """Validation record for one reported expense line."""

    model_config = ConfigDict(frozen=True)

    expense_name: str
    reported_amount: float | None = None
    is_reasonable: bool = True
    confidence: int = 0
    notes: str = ''
    expected_percent_of_revenue: float | None = None
    typical_range: Any = None
    red_flags: list[Any] = []
    validated: bool = False

    @classmethod
    def from_output(
        cls, item: ExpenseLineItem, output: ExpenseValidationOutput,
    ) -> ExpenseValidation:
        return cls(
            expense_name=item.expense_name,
            reported_amount=item.amount_annual,
            is_reasonable=output.is_reasonable,
            confidence=output.confidence,
            notes=output.notes or output.insights,
            expected_percent_of_revenue=output.expected_percent_of_revenue,
            typical_range=output.typical_range,
            red_flags=list(output.red_flags),
            validated=True,
        )

    @classmethod
    def unvalidated(cls, item: ExpenseLineItem, notes: str) -> ExpenseValidation:
        """Zero-confidence record for an item whose model call failed."""
        return cls(
            expense_name=item.expense_name,
            reported_amount=item.amount_annual,
            is_reasonable=True,
            confidence=0,
            notes=notes,
        )


@dataclass(frozen=True)
class AnalysisReport:
    """Everything the caller sees synchronously."""

    market: StageResult[MarketAnalysis]
    financial: StageResult[FinancialAnalysis]
    risk: StageResult[RiskAssessment]
    revenue: StageResult[RevenueOptimization]
    expenses: list[ExpenseValidation] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    overall: int = 50

    def stage_status(self) -> dict[str, StageStatus]:
        return {
            'market': self.market.status,
            'financial': self.financial.status,
            'risk': self.risk.status,
            'revenue': self.revenue.status,
        }

    @property
    def headline_parsed(self) -> bool:
        """True when market, financial and risk all returned structured output."""
        return self.market.parsed and self.financial.parsed and self.risk.parsed

    def to_dict(self) -> dict[str, Any]:
        return {
            'market': self.market.to_dict(),
            'financial': self.financial.to_dict(),
            'risk': self.risk.to_dict(),
            'revenue': self.revenue.to_dict(),
            'expenses': [e.model_dump(mode='json') for e in self.expenses],
            'recommendations': [r.model_dump(mode='json') for r in self.recommendations],
            'overall': self.overall,
        }
