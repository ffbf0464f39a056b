"""
Chronological train/test split and training-only correlation analysis.

Weekly revenue is a time series: the test partition is always the most recent
weeks and nothing computed here ever looks at it, so the correlations reported
to users carry no look-ahead information.
"""

import logging
import math
from typing import Dict, Sequence

from ..utils.ml_analysis import pearson_correlation
from .errors import InsufficientDataError
from .records import FeatureRow, TrainTestSplit
from .weekly import week_sort_key

logger = logging.getLogger(__name__)

TARGET = "total_payments"

CORRELATION_FEATURES = (
    "total_charge_amount",
    "total_visit_count",
    "weighted_avg_collection_pct",
    "avg_payment_per_visit",
    "bcbs_charges_pct",
    "aetna_charges_pct",
    "high_value_payer_pct",
    "charges_per_visit",
)

FEATURE_LABELS = {
    "total_charge_amount": "Total Charge Amount",
    "total_visit_count": "Total Visit Count",
    "weighted_avg_collection_pct": "Collection Rate",
    "avg_payment_per_visit": "Payment Per Visit",
    "bcbs_charges_pct": "BCBS Percentage",
    "aetna_charges_pct": "Aetna Percentage",
    "high_value_payer_pct": "High-Value Payer Percentage",
    "charges_per_visit": "Charges Per Visit",
}


def calculate_correlations(train_data: Sequence[FeatureRow]) -> Dict[str, float]:
    target = [getattr(row, TARGET) for row in train_data]
    return {
        feature: pearson_correlation([getattr(row, feature) for row in train_data], target)
        for feature in CORRELATION_FEATURES
    }


def create_train_test_split(features: Sequence[FeatureRow], test_size: float = 0.2) -> TrainTestSplit:
    logger.info("🔄 Creating train/test split...")
    if not 0 < test_size < 1:
        raise ValueError(f"test_size must be between 0 and 1, got {test_size}")

    ordered = sorted(features, key=lambda f: week_sort_key(f.year, f.week))
    train_size = math.floor(len(ordered) * (1 - test_size))
    train_data = tuple(ordered[:train_size])
    test_data = tuple(ordered[train_size:])

    if not train_data or not test_data:
        raise InsufficientDataError(
            f"Not enough weeks to hold out a test period: {len(ordered)} weeks "
            f"gives {len(train_data)} training and {len(test_data)} test weeks."
        )

    logger.info(f"Training set: {len(train_data)} weeks")
    logger.info(f"Test set: {len(test_data)} weeks")

    return TrainTestSplit(
        train_data=train_data,
        test_data=test_data,
        train_correlations=calculate_correlations(train_data),
    )
