"""
Typed records passed between pipeline stages.

Every record is a frozen dataclass: a stage reads the records produced by the
previous one and builds new ones, it never edits them in place.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..utils.data_processing import safe_divide

MAX_COLLECTION_PCT = 5.0  # up to 500% tolerated for billing adjustments


@dataclass(frozen=True)
class BillingRecord:
    """One cleaned spreadsheet row (payer x E/M group within a week)."""
    year: int
    week: str
    payer: str
    em_group: str
    payments_pct_of_total: float = 0.0
    avg_payment: float = 0.0
    avg_em_weight: float = 0.0
    charge_amount: float = 0.0
    collection_pct: float = 0.0
    total_payments: float = 0.0
    visit_count: int = 0
    visits_with_lab_count: int = 0
    pct_visits_with_labs: float = field(init=False)
    payment_per_visit: float = field(init=False)

    def __post_init__(self):
        object.__setattr__(
            self, "pct_visits_with_labs",
            safe_divide(self.visits_with_lab_count, self.visit_count),
        )
        object.__setattr__(
            self, "payment_per_visit",
            safe_divide(self.total_payments, self.visit_count),
        )

    @property
    def week_key(self) -> str:
        return f"{self.year}-{self.week}"

    def violations(self) -> List[str]:
        issues = []
        if self.total_payments < 0:
            issues.append(f"negative total payments ({self.total_payments})")
        if self.charge_amount < 0:
            issues.append(f"negative charge amount ({self.charge_amount})")
        if self.visit_count < 0:
            issues.append(f"negative visit count ({self.visit_count})")
        if not 0 <= self.collection_pct <= MAX_COLLECTION_PCT:
            issues.append(f"collection % out of range ({self.collection_pct})")
        return issues

    @property
    def is_valid(self) -> bool:
        return not self.violations()


@dataclass(frozen=True)
class PayerSubtotal:
    charges: float = 0.0
    visits: int = 0
    collection_pct: float = 0.0  # simple mean over the payer's rows


@dataclass(frozen=True)
class WeeklyAggregate:
    year: int
    week: str
    total_payments: float
    total_charge_amount: float
    total_visit_count: int
    total_visits_with_labs: int
    weighted_avg_collection_pct: float
    avg_payment_per_visit: float
    pct_visits_with_labs: float
    bcbs: PayerSubtotal = PayerSubtotal()
    aetna: PayerSubtotal = PayerSubtotal()
    self_pay: PayerSubtotal = PayerSubtotal()
    commercial: PayerSubtotal = PayerSubtotal()
    detail_records: Tuple[BillingRecord, ...] = field(default=(), repr=False)

    @property
    def week_key(self) -> str:
        return f"{self.year}-{self.week}"


@dataclass(frozen=True)
class FeatureRow:
    week_key: str
    year: int
    week: str
    total_payments: float
    total_charge_amount: float
    total_visit_count: int
    weighted_avg_collection_pct: float
    avg_payment_per_visit: float
    pct_visits_with_labs: float
    bcbs_charges_pct: float
    aetna_charges_pct: float
    self_pay_charges_pct: float
    commercial_charges_pct: float
    charges_per_visit: float
    high_value_payer_pct: float
    original_data: Optional[WeeklyAggregate] = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class TrainTestSplit:
    train_data: Tuple[FeatureRow, ...]
    test_data: Tuple[FeatureRow, ...]
    train_correlations: Dict[str, float]


@dataclass(frozen=True)
class EvaluationResult:
    model_name: str
    mae: float
    rmse: float
    mape: float
    r_squared: float
    bias: float
    predictions: Tuple[float, ...]
    model: Any = field(default=None, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "modelName": self.model_name,
            "mae": self.mae,
            "rmse": self.rmse,
            "mape": self.mape,
            "rSquared": self.r_squared,
            "bias": self.bias,
            "predictions": list(self.predictions),
        }


class PerformanceDiagnostic(str, Enum):
    OVER = "Over Performed"
    AVERAGE = "Average Performance"
    UNDER = "Under Performed"


@dataclass(frozen=True)
class PerformanceRecord:
    week_key: str
    year: int
    week: str
    actual_payments: float
    predicted_payments: float
    absolute_error: float
    percent_error: float
    diagnostic: PerformanceDiagnostic
    original_data: Optional[WeeklyAggregate] = field(default=None, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weekKey": self.week_key,
            "year": self.year,
            "week": self.week,
            "actualPayments": self.actual_payments,
            "predictedPayments": self.predicted_payments,
            "absoluteError": self.absolute_error,
            "percentError": self.percent_error,
            "performanceDiagnostic": self.diagnostic.value,
        }


# Column order of the exported weekly table
INSIGHT_COLUMNS = [
    "Year",
    "Week",
    "Actual Total Payments",
    "Predicted Total Payments",
    "Absolute Error",
    "Percent Error",
    "Performance Diagnostic",
    "Most Influential Performance Factors",
    "What Went Well",
    "What Could Be Improved",
    "BCBS Analysis",
    "Aetna Analysis",
]


@dataclass(frozen=True)
class WeeklyInsight:
    year: str
    week: str
    actual_payments: str
    predicted_payments: str
    absolute_error: str
    percent_error: str
    diagnostic: str
    most_influential_factors: str
    what_went_well: str
    what_could_be_improved: str
    bcbs_analysis: str
    aetna_analysis: str

    def to_row(self) -> Dict[str, str]:
        values = [
            self.year, self.week, self.actual_payments, self.predicted_payments,
            self.absolute_error, self.percent_error, self.diagnostic,
            self.most_influential_factors, self.what_went_well,
            self.what_could_be_improved, self.bcbs_analysis, self.aetna_analysis,
        ]
        return dict(zip(INSIGHT_COLUMNS, values))
