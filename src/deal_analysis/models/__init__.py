"""
Data models for the deal analysis pipeline.
"""

from .analysis import (
    ExpenseValidationOutput,
    FinancialAnalysis,
    MarketAnalysis,
    Recommendation,
    RevenueOptimization,
    RiskAssessment,
)
from .request import AnalysisRequest
from .results import AnalysisReport, ExpenseValidation, StageResult
from .snapshot import DealSnapshot, ExpenseLineItem, LeaseTerms, Machine
from .standards import BenchmarkRange, StandardsContext

__all__ = [
    'AnalysisReport',
    'AnalysisRequest',
    'BenchmarkRange',
    'DealSnapshot',
    'ExpenseLineItem',
    'ExpenseValidation',
    'ExpenseValidationOutput',
    'FinancialAnalysis',
    'LeaseTerms',
    'Machine',
    'MarketAnalysis',
    'Recommendation',
    'RevenueOptimization',
    'RiskAssessment',
    'StageResult',
    'StandardsContext',
]
