"""
Model bank: four revenue heuristics fit on training-week averages.

These encode revenue-cycle assumptions rather than fitted regressions:
- Business Logic   charges x average collection rate
- Visit-Based      visits x average payment per visit
- Multi-Factor     60% charge-driven (week's own collection rate) + 40% visit-driven
- Payer-Weighted   visit-driven base scaled by the week's BCBS/Aetna mix

Each model keeps only aggregate statistics of the training weeks, never
individual test rows.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .config import AnalysisConfig
from .records import FeatureRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainStats:
    avg_collection_rate: float
    avg_payment_per_visit: float
    avg_charges_per_visit: float

    def to_dict(self):
        return {
            "avgCollectionRate": self.avg_collection_rate,
            "avgPaymentPerVisit": self.avg_payment_per_visit,
            "avgChargesPerVisit": self.avg_charges_per_visit,
        }


def compute_train_stats(train_data: Sequence[FeatureRow]) -> TrainStats:
    if not train_data:
        return TrainStats(0.0, 0.0, 0.0)
    return TrainStats(
        avg_collection_rate=float(np.mean([w.weighted_avg_collection_pct for w in train_data])),
        avg_payment_per_visit=float(np.mean([w.avg_payment_per_visit for w in train_data])),
        avg_charges_per_visit=float(np.mean([w.charges_per_visit for w in train_data])),
    )


class RevenueModel(ABC):
    """Base class: a named prediction of a week's total payments."""

    name: str = ""

    def __init__(self, train_stats: TrainStats):
        self.train_stats = train_stats

    @abstractmethod
    def predict(self, week: FeatureRow) -> float:
        ...

    def predict_many(self, weeks: Sequence[FeatureRow]) -> np.ndarray:
        return np.array([self.predict(w) for w in weeks], dtype=float)

    def __repr__(self):
        return f"{type(self).__name__}(name={self.name!r}, train_stats={self.train_stats!r})"


class BusinessLogicModel(RevenueModel):
    name = "Business Logic"

    def predict(self, week: FeatureRow) -> float:
        return week.total_charge_amount * self.train_stats.avg_collection_rate


class VisitBasedModel(RevenueModel):
    name = "Visit-Based"

    def predict(self, week: FeatureRow) -> float:
        return week.total_visit_count * self.train_stats.avg_payment_per_visit


class MultiFactorModel(RevenueModel):
    name = "Multi-Factor"
    charge_weight = 0.6
    visit_weight = 0.4

    def predict(self, week: FeatureRow) -> float:
        # charge side uses the week's own collection rate, visit side the training average
        charge_component = week.total_charge_amount * week.weighted_avg_collection_pct * self.charge_weight
        visit_component = week.total_visit_count * self.train_stats.avg_payment_per_visit * self.visit_weight
        return charge_component + visit_component


class PayerWeightedModel(RevenueModel):
    name = "Payer-Weighted"

    def __init__(
        self,
        train_stats: TrainStats,
        bcbs_multiplier: float = 1.25,
        aetna_multiplier: float = 1.20,
        other_multiplier: float = 0.95,
        adjustment_floor: float = 0.5,
    ):
        super().__init__(train_stats)
        self.bcbs_multiplier = bcbs_multiplier
        self.aetna_multiplier = aetna_multiplier
        self.other_multiplier = other_multiplier
        self.adjustment_floor = adjustment_floor

    def payer_adjustment(self, week: FeatureRow) -> float:
        other_pct = 1 - week.bcbs_charges_pct - week.aetna_charges_pct
        adjustment = (
            week.bcbs_charges_pct * self.bcbs_multiplier
            + week.aetna_charges_pct * self.aetna_multiplier
            + other_pct * self.other_multiplier
        )
        return max(self.adjustment_floor, adjustment)

    def predict(self, week: FeatureRow) -> float:
        base = week.total_visit_count * self.train_stats.avg_payment_per_visit
        return base * self.payer_adjustment(week)


def build_model_bank(
    train_data: Sequence[FeatureRow],
    config: Optional[AnalysisConfig] = None,
) -> List[RevenueModel]:
    logger.info("🤖 Developing predictive models...")
    config = config or AnalysisConfig()
    stats = compute_train_stats(train_data)
    return [
        BusinessLogicModel(stats),
        VisitBasedModel(stats),
        MultiFactorModel(stats),
        PayerWeightedModel(
            stats,
            bcbs_multiplier=config.bcbs_multiplier,
            aetna_multiplier=config.aetna_multiplier,
            other_multiplier=config.other_payer_multiplier,
            adjustment_floor=config.payer_adjustment_floor,
        ),
    ]
