"""
Deal Analysis Pipeline

A multi-stage, LLM-backed investment analysis for laundromat acquisitions:
concurrent market, financial, risk and revenue stages, per-expense
validation, recommendation synthesis, a weighted overall score, and
background persistence to Postgres.
"""

__version__ = '0.1.0'

# Re-export key classes for convenience
from .pipeline import (
    DealAnalysisPipeline,
    AnalysisPipelineResult,
    PipelineOptions,
    StageExecutor,
    ExpenseValidator,
    RecommendationSynthesizer,
    StandardsResolver,
    PersistenceFanout,
    calculate_overall_score,
)
from .models import AnalysisRequest, AnalysisReport, DealSnapshot
from .logging import (
    configure_logging,
    get_logger,
    logging_context,
    PipelineTimer,
)
from .errors import (
    DealAnalysisError,
    PipelineError,
    RequestValidationError,
    ParseError,
    UpstreamModelError,
    StandardsLookupError,
    PersistenceError,
    PartialSuccessResult,
)

__all__ = [
    # Version
    '__version__',
    # Main Pipeline
    'DealAnalysisPipeline',
    'AnalysisPipelineResult',
    'PipelineOptions',
    # Components
    'StageExecutor',
    'ExpenseValidator',
    'RecommendationSynthesizer',
    'StandardsResolver',
    'PersistenceFanout',
    'calculate_overall_score',
    # Models
    'AnalysisRequest',
    'AnalysisReport',
    'DealSnapshot',
    # Logging
    'configure_logging',
    'get_logger',
    'logging_context',
    'PipelineTimer',
    # Errors
    'DealAnalysisError',
    'PipelineError',
    'RequestValidationError',
    'ParseError',
    'UpstreamModelError',
    'StandardsLookupError',
    'PersistenceError',
    'PartialSuccessResult',
]
