"""
Weekly narrative diagnostics.

Each week's payer-level metrics are compared with that payer's average across
every week of the file. The largest relative gains explain over-performing
weeks, the largest drops explain under-performing ones, and BCBS / Aetna get
their own commentary every week.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence

import pandas as pd

from .records import PerformanceDiagnostic, PerformanceRecord, WeeklyAggregate, WeeklyInsight
from .split import FEATURE_LABELS
from .weekly import records_to_frame

logger = logging.getLogger(__name__)

METRIC_LABELS = {
    "charge_amount": "Charge Amount",
    "avg_payment": "Avg Payment",
    "avg_em_weight": "Avg E/M Weight",
    "collection_pct": "Collection %",
    "total_payments": "Total Payments",
    "visit_count": "Visit Count",
    "visits_with_lab_count": "Visits With Lab Count",
}

WENT_WELL_FALLBACK = "Performance within expected parameters"
IMPROVE_FALLBACK = "No significant issues identified"
NO_BCBS_ACTIVITY = "No BCBS activity this week - potential growth opportunity"
NO_AETNA_ACTIVITY = "No Aetna activity this week - potential partnership opportunity"

TOP_N = 2


@dataclass(frozen=True)
class Observation:
    payer: str
    metric: str
    current_value: float
    avg_value: float
    percent_diff: float

    @property
    def description(self) -> str:
        return (
            f"The {self.payer} - {METRIC_LABELS[self.metric]} is {self.current_value:.2f}, "
            f"while its overall average is {self.avg_value:.2f}."
        )


@dataclass(frozen=True)
class WeekAnalysis:
    what_went_well: List[str]
    what_could_be_improved: List[str]
    bcbs_analysis: List[str]
    aetna_analysis: List[str]


def compute_payer_averages(weekly: Sequence[WeeklyAggregate]) -> pd.DataFrame:
    """Mean of every narrative metric per payer, over all weeks' detail records."""
    records = [r for week in weekly for r in week.detail_records]
    if not records:
        return pd.DataFrame(columns=list(METRIC_LABELS))
    df = records_to_frame(records)
    return df.groupby("payer")[list(METRIC_LABELS)].mean()


def week_observations(week: WeeklyAggregate, averages: pd.DataFrame) -> List[Observation]:
    """Observations ranked by percent difference from the payer average, best first."""
    observations = []
    for record in week.detail_records:
        payer = record.payer.strip()
        if payer not in averages.index:
            continue
        for metric in METRIC_LABELS:
            avg = float(averages.at[payer, metric])
            if not avg or pd.isna(avg):
                continue
            current = float(getattr(record, metric))
            observations.append(Observation(
                payer=payer,
                metric=metric,
                current_value=current,
                avg_value=avg,
                percent_diff=(current - avg) / avg * 100.0,
            ))
    return sorted(observations, key=lambda o: o.percent_diff, reverse=True)


def _payer_commentary(ranked: Sequence[Observation], keyword: str, fallback: str) -> List[str]:
    picked = [o for o in ranked if keyword in o.payer.upper()]
    if not picked:
        return [fallback]
    picked.sort(key=lambda o: abs(o.percent_diff), reverse=True)
    return [o.description for o in picked[:TOP_N]]


def analyze_week(
    week: WeeklyAggregate,
    averages: pd.DataFrame,
    diagnostic: PerformanceDiagnostic,
) -> WeekAnalysis:
    ranked = week_observations(week, averages)
    went_well, improve = [], []
    if diagnostic is PerformanceDiagnostic.OVER:
        went_well = [o.description for o in ranked[:TOP_N]]
    if diagnostic is PerformanceDiagnostic.UNDER:
        improve = [o.description for o in reversed(ranked[-TOP_N:])]
    return WeekAnalysis(
        what_went_well=went_well,
        what_could_be_improved=improve,
        bcbs_analysis=_payer_commentary(ranked, "BCBS", NO_BCBS_ACTIVITY),
        aetna_analysis=_payer_commentary(ranked, "AETNA", NO_AETNA_ACTIVITY),
    )


def most_influential_factors(train_correlations: Mapping[str, float], top_n: int = 4) -> str:
    ranked = sorted(train_correlations.items(), key=lambda kv: abs(kv[1]), reverse=True)[:top_n]
    return ", ".join(
        f"{FEATURE_LABELS.get(name, name)} ({abs(r) * 100:.1f}%)" for name, r in ranked
    )


def generate_weekly_insights(
    performance_results: Sequence[PerformanceRecord],
    weekly: Sequence[WeeklyAggregate],
    train_correlations: Mapping[str, float],
) -> List[WeeklyInsight]:
    logger.info("📋 Generating detailed analysis...")
    averages = compute_payer_averages(weekly)
    factors = most_influential_factors(train_correlations)
    by_key: Dict[str, WeeklyAggregate] = {w.week_key: w for w in weekly}

    insights = []
    for result in performance_results:
        week = result.original_data or by_key.get(result.week_key)
        if week is None:
            analysis = WeekAnalysis([], [], [NO_BCBS_ACTIVITY], [NO_AETNA_ACTIVITY])
        else:
            analysis = analyze_week(week, averages, result.diagnostic)
        insights.append(WeeklyInsight(
            year=str(result.year),
            week=str(result.week),
            actual_payments=f"{result.actual_payments:.2f}",
            predicted_payments=f"{result.predicted_payments:.2f}",
            absolute_error=f"{result.absolute_error:.2f}",
            percent_error=f"{result.percent_error * 100:.1f}%",
            diagnostic=result.diagnostic.value,
            most_influential_factors=factors,
            what_went_well="; ".join(analysis.what_went_well) or WENT_WELL_FALLBACK,
            what_could_be_improved="; ".join(analysis.what_could_be_improved) or IMPROVE_FALLBACK,
            bcbs_analysis="; ".join(analysis.bcbs_analysis),
            aetna_analysis="; ".join(analysis.aetna_analysis),
        ))
    logger.info(f"✅ Narratives generated for {len(insights)} weeks")
    return insights
