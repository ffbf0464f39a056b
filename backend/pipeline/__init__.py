# Weekly revenue forecast & performance diagnostics pipeline.

from .analyzer import AnalysisResult, build_recommendations, rank_key_drivers, run_analysis
from .config import AnalysisConfig, PayerCodes
from .errors import AnalysisError, DataFormatError, InsufficientDataError
from .records import (
    BillingRecord,
    EvaluationResult,
    FeatureRow,
    PerformanceDiagnostic,
    PerformanceRecord,
    WeeklyAggregate,
    WeeklyInsight,
)
