"""
End-to-end weekly revenue analysis.

run_analysis() takes the raw cells of an uploaded table and returns a single
AnalysisResult value: cleaned -> weekly -> features -> split -> models ->
evaluation -> classification -> narratives. Nothing is cached between runs.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..utils.validation_utils import check_record_count, check_week_count
from .classify import classify_performance, diagnostic_distribution
from .config import AnalysisConfig
from .errors import DataFormatError, InsufficientDataError
from .evaluation import evaluate_models, select_best_model
from .extract import extract_billing_records
from .features import engineer_features
from .models import build_model_bank
from .narratives import generate_weekly_insights
from .records import INSIGHT_COLUMNS, EvaluationResult, PerformanceRecord, WeeklyInsight
from .split import FEATURE_LABELS, create_train_test_split
from .weekly import aggregate_by_week

logger = logging.getLogger(__name__)

METHODOLOGY = "Proper train/test split with statistical validation"

IMPACT_LEVELS = (
    (0.8, "Very High"),
    (0.6, "High"),
    (0.4, "Moderate"),
    (0.2, "Low"),
)


def impact_level(correlation: float) -> str:
    strength = abs(correlation)
    for threshold, label in IMPACT_LEVELS:
        if strength > threshold:
            return label
    return "Minimal"


def rank_key_drivers(train_correlations: Mapping[str, float], top_n: int = 4) -> List[Dict[str, Any]]:
    ranked = sorted(train_correlations.items(), key=lambda kv: abs(kv[1]), reverse=True)
    return [
        {
            "feature": feature,
            "name": FEATURE_LABELS.get(feature, feature),
            "correlation": r,
            "impact": impact_level(r),
        }
        for feature, r in ranked[:top_n]
    ]


def build_recommendations(train_correlations: Mapping[str, float], limit: int = 4) -> List[Dict[str, str]]:
    visit_r = abs(train_correlations.get("total_visit_count", 0.0))
    charge_r = abs(train_correlations.get("total_charge_amount", 0.0))

    recs = []
    if visit_r > 0.8:
        recs.append({
            "title": "Optimize Visit Volume",
            "description": (
                "Focus on increasing patient visits as the primary revenue driver "
                f"({visit_r * 100:.1f}% correlation)"
            ),
        })
    if charge_r > 0.8:
        recs.append({
            "title": "Enhance Charge Capture",
            "description": (
                "Improve charge amount processes and coding accuracy "
                f"({charge_r * 100:.1f}% correlation)"
            ),
        })
    if abs(train_correlations.get("bcbs_charges_pct", 0.0)) > 0.3:
        recs.append({
            "title": "BCBS Payer Strategy",
            "description": "Increase proportion of BCBS patients for higher reimbursement rates",
        })
    if abs(train_correlations.get("aetna_charges_pct", 0.0)) > 0.3:
        recs.append({
            "title": "Aetna Partnership Focus",
            "description": "Leverage Aetna relationships for improved revenue performance",
        })

    if not recs:
        recs = [
            {
                "title": "Volume Optimization",
                "description": "Focus on increasing patient visit volume for revenue growth",
            },
            {
                "title": "Collection Efficiency",
                "description": "Standardize collection processes based on best-performing weeks",
            },
        ]
    return recs[:limit]


def average_accuracy(mae: float, payments: Sequence[float]) -> str:
    """(1 - MAE / mean weekly payments) as a percentage string."""
    mean_payments = float(np.mean(payments)) if len(payments) else 0.0
    if mean_payments == 0:
        return "0.0%"
    return f"{(1 - mae / mean_payments) * 100:.1f}%"


@dataclass(frozen=True)
class AnalysisResult:
    methodology: str
    best_model: EvaluationResult
    model_results: Tuple[EvaluationResult, ...]
    train_correlations: Dict[str, float]
    performance_results: Tuple[PerformanceRecord, ...]
    final_results: Tuple[WeeklyInsight, ...]
    benchmarks: Dict[str, Any]
    key_drivers: List[Dict[str, Any]] = field(default_factory=list)
    recommendations: List[Dict[str, str]] = field(default_factory=list)
    train_weeks: int = 0
    test_weeks: int = 0

    @property
    def diagnostic_counts(self) -> Dict[str, int]:
        return diagnostic_distribution(self.performance_results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "methodology": self.methodology,
            "bestModel": self.best_model.to_dict(),
            "modelResults": [r.to_dict() for r in self.model_results],
            "trainCorrelations": dict(self.train_correlations),
            "performanceResults": [p.to_dict() for p in self.performance_results],
            "finalResults": [i.to_row() for i in self.final_results],
            "benchmarks": {
                "totalWeeks": self.benchmarks["total_weeks"],
                "avgAccuracy": self.benchmarks["avg_accuracy"],
                "modelMAE": self.benchmarks["model_mae"],
            },
            "keyDrivers": list(self.key_drivers),
            "recommendations": list(self.recommendations),
        }

    def final_results_frame(self) -> pd.DataFrame:
        return pd.DataFrame([i.to_row() for i in self.final_results], columns=INSIGHT_COLUMNS)


def run_analysis(rows: Sequence[Sequence], config: Optional[AnalysisConfig] = None) -> AnalysisResult:
    """
    Run the full pipeline on raw table cells (first row = headers).

    Raises DataFormatError for unreadable tables or files without usable
    records, InsufficientDataError when there are too few weeks to hold out
    a test period.
    """
    config = config or AnalysisConfig()
    logger.info("🚀 Starting revenue performance analysis...")

    records = extract_billing_records(rows)
    record_check = check_record_count(len(records))
    if not record_check["passed"]:
        raise DataFormatError(f"{record_check['summary']}.")

    weekly = aggregate_by_week(records, config.payer_codes)
    week_check = check_week_count(len(weekly), config.min_weeks)
    if not week_check["passed"]:
        raise InsufficientDataError(
            f"{week_check['summary']}; the file has {len(weekly)}."
        )

    features = engineer_features(weekly)
    split = create_train_test_split(features, config.test_size)

    models = build_model_bank(split.train_data, config)
    model_results = evaluate_models(models, split.test_data)
    best = select_best_model(model_results, config.mae_tie_tolerance)

    performance = classify_performance(features, best.model, config)
    insights = generate_weekly_insights(performance, weekly, split.train_correlations)

    result = AnalysisResult(
        methodology=METHODOLOGY,
        best_model=best,
        model_results=tuple(model_results),
        train_correlations=dict(split.train_correlations),
        performance_results=tuple(performance),
        final_results=tuple(insights),
        benchmarks={
            "total_weeks": len(features),
            "avg_accuracy": average_accuracy(best.mae, [f.total_payments for f in features]),
            "model_mae": best.mae,
        },
        key_drivers=rank_key_drivers(split.train_correlations),
        recommendations=build_recommendations(split.train_correlations),
        train_weeks=len(split.train_data),
        test_weeks=len(split.test_data),
    )
    logger.info(f"✅ Analysis complete: {len(insights)} weeks, best model {best.model_name}")
    return result
