import logging
from typing import List, Sequence

from ..utils.data_processing import safe_divide
from .records import FeatureRow, WeeklyAggregate

logger = logging.getLogger(__name__)


def build_feature_row(week: WeeklyAggregate) -> FeatureRow:
    charges = week.total_charge_amount
    bcbs_pct = safe_divide(week.bcbs.charges, charges)
    aetna_pct = safe_divide(week.aetna.charges, charges)
    return FeatureRow(
        week_key=week.week_key,
        year=week.year,
        week=week.week,
        total_payments=week.total_payments,
        total_charge_amount=charges,
        total_visit_count=week.total_visit_count,
        weighted_avg_collection_pct=week.weighted_avg_collection_pct,
        avg_payment_per_visit=week.avg_payment_per_visit,
        pct_visits_with_labs=week.pct_visits_with_labs,
        bcbs_charges_pct=bcbs_pct,
        aetna_charges_pct=aetna_pct,
        self_pay_charges_pct=safe_divide(week.self_pay.charges, charges),
        commercial_charges_pct=safe_divide(week.commercial.charges, charges),
        charges_per_visit=safe_divide(charges, week.total_visit_count),
        high_value_payer_pct=bcbs_pct + aetna_pct,
        original_data=week,
    )


def engineer_features(weekly: Sequence[WeeklyAggregate]) -> List[FeatureRow]:
    """Payer-mix and per-visit intensity ratios, one row per week."""
    logger.info("⚙️ Engineering features...")
    return [build_feature_row(week) for week in weekly]
