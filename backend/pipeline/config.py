import os
from dataclasses import dataclass

# Payer identity strings as they appear in the Primary Financial Class column
BCBS_CODE = "2-BCBS"
AETNA_CODE = "17-AETNA"
SELF_PAY_CODE = "1-SELF PAY"
COMMERCIAL_CODE = "5-COMMERCIAL"


@dataclass(frozen=True)
class PayerCodes:
    bcbs: str = BCBS_CODE
    aetna: str = AETNA_CODE
    self_pay: str = SELF_PAY_CODE
    commercial: str = COMMERCIAL_CODE

    def as_dict(self):
        return {
            "bcbs": self.bcbs,
            "aetna": self.aetna,
            "self_pay": self.self_pay,
            "commercial": self.commercial,
        }


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Tunable business rules for one analysis run.

    The defaults are the revenue-cycle constants the weekly report has always
    used; `from_env()` lets operators adjust them without editing code.
    """
    test_size: float = 0.2
    min_weeks: int = 5
    performance_band: float = 0.025       # ±2.5% around the forecast
    skew_warning_share: float = 0.8       # warn when one label covers >80% of weeks
    bcbs_multiplier: float = 1.25
    aetna_multiplier: float = 1.20
    other_payer_multiplier: float = 0.95
    payer_adjustment_floor: float = 0.5
    mae_tie_tolerance: float = 100.0      # dollars
    payer_codes: PayerCodes = PayerCodes()

    @classmethod
    def from_env(cls) -> "AnalysisConfig":
        return cls(
            test_size=float(os.getenv("TEST_SIZE", "0.2")),
            min_weeks=int(os.getenv("MIN_WEEKS", "5")),
            performance_band=float(os.getenv("PERF_BAND_PCT", "0.025")),
            skew_warning_share=float(os.getenv("PERF_SKEW_SHARE", "0.8")),
            bcbs_multiplier=float(os.getenv("BCBS_MULTIPLIER", "1.25")),
            aetna_multiplier=float(os.getenv("AETNA_MULTIPLIER", "1.20")),
            other_payer_multiplier=float(os.getenv("OTHER_PAYER_MULTIPLIER", "0.95")),
            payer_adjustment_floor=float(os.getenv("PAYER_ADJUSTMENT_FLOOR", "0.5")),
            mae_tie_tolerance=float(os.getenv("MAE_TIE_TOLERANCE", "100")),
        )
