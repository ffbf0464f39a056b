import logging
from collections import Counter
from typing import Dict, List, Optional, Sequence

from ..utils.validation_utils import check_diagnostic_balance
from .config import AnalysisConfig
from .models import RevenueModel
from .records import FeatureRow, PerformanceDiagnostic, PerformanceRecord

logger = logging.getLogger(__name__)


def classify_diagnostic(percent_error: float, band: float = 0.025) -> PerformanceDiagnostic:
    if percent_error < -band:
        return PerformanceDiagnostic.UNDER
    if percent_error > band:
        return PerformanceDiagnostic.OVER
    return PerformanceDiagnostic.AVERAGE


def diagnostic_distribution(records: Sequence[PerformanceRecord]) -> Dict[str, int]:
    counts = Counter(r.diagnostic for r in records)
    return {d.value: counts.get(d, 0) for d in PerformanceDiagnostic}


def classify_performance(
    features: Sequence[FeatureRow],
    model: RevenueModel,
    config: Optional[AnalysisConfig] = None,
) -> List[PerformanceRecord]:
    """
    Forecast every week (training and test) with the winning model and label
    it by percent deviation: (predicted - actual) / actual against ±band.
    """
    logger.info("🎯 Classifying performance...")
    config = config or AnalysisConfig()

    results = []
    for week, predicted in zip(features, model.predict_many(features)):
        actual = week.total_payments
        predicted = float(predicted)
        percent_error = (predicted - actual) / actual if actual > 0 else 0.0
        results.append(PerformanceRecord(
            week_key=week.week_key,
            year=week.year,
            week=week.week,
            actual_payments=actual,
            predicted_payments=predicted,
            absolute_error=abs(actual - predicted),
            percent_error=percent_error,
            diagnostic=classify_diagnostic(percent_error, config.performance_band),
            original_data=week.original_data,
        ))

    balance = check_diagnostic_balance(diagnostic_distribution(results), config.skew_warning_share)
    if balance["status"] == "warn":
        logger.warning(f"⚠️ {balance['summary']} ({model.name}): {'; '.join(balance['issues'])}")
    return results
