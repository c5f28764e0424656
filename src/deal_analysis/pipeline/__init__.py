"""
Deal analysis pipeline components.

Provides:
- StageExecutor: Bounded, time-limited model stages with fallback defaults
- ExpenseValidator: Per-line-item expense validation fan-out
- RecommendationSynthesizer: Prioritized recommendation list
- calculate_overall_score: Weighted aggregate score
- StandardsResolver: Best-effort industry benchmark lookup
- PersistenceFanout: Background, retried, failure-isolated writes
- DealAnalysisPipeline: End-to-end orchestration
"""

from .expense_validator import ExpenseValidator
from .parsing import Parsed, ParsedList, Unparsed, parse_model_list, parse_model_output
from .persistence import PersistenceFanout, PersistenceTask, build_persistence_tasks
from .pipeline import AnalysisPipelineResult, DealAnalysisPipeline, PipelineOptions
from .recommender import RecommendationSynthesizer, fallback_recommendation
from .scoring import calculate_overall_score, overall_from_results
from .stages import (
    FINANCIAL_STAGE,
    MARKET_STAGE,
    REVENUE_STAGE,
    RISK_STAGE,
    StageExecutor,
    StageSpec,
)
from .standards import StandardsResolver, extract_zip_code

__all__ = [
    # Stages
    'StageExecutor',
    'StageSpec',
    'MARKET_STAGE',
    'FINANCIAL_STAGE',
    'RISK_STAGE',
    'REVENUE_STAGE',
    # Parsing
    'Parsed',
    'ParsedList',
    'Unparsed',
    'parse_model_output',
    'parse_model_list',
    # Fan-outs
    'ExpenseValidator',
    'RecommendationSynthesizer',
    'fallback_recommendation',
    'PersistenceFanout',
    'PersistenceTask',
    'build_persistence_tasks',
    # Scoring
    'calculate_overall_score',
    'overall_from_results',
    # Standards
    'StandardsResolver',
    'extract_zip_code',
    # Pipeline
    'DealAnalysisPipeline',
    'AnalysisPipelineResult',
    'PipelineOptions',
]
