"""Tests for weekly feature engineering."""

import pytest

from backend.pipeline.features import build_feature_row, engineer_features
from backend.pipeline.records import PayerSubtotal, WeeklyAggregate


def _week(**overrides):
    values = dict(
        year=2024,
        week="1",
        total_payments=8000.0,
        total_charge_amount=10000.0,
        total_visit_count=100,
        total_visits_with_labs=20,
        weighted_avg_collection_pct=0.8,
        avg_payment_per_visit=80.0,
        pct_visits_with_labs=0.2,
        bcbs=PayerSubtotal(charges=4000.0, visits=40, collection_pct=0.85),
        aetna=PayerSubtotal(charges=2500.0, visits=25, collection_pct=0.8),
        self_pay=PayerSubtotal(charges=500.0, visits=5, collection_pct=0.3),
        commercial=PayerSubtotal(charges=3000.0, visits=30, collection_pct=0.75),
    )
    values.update(overrides)
    return WeeklyAggregate(**values)


class TestBuildFeatureRow:

    def test_payer_mix_ratios(self) -> None:
        row = build_feature_row(_week())
        assert row.bcbs_charges_pct == pytest.approx(0.4)
        assert row.aetna_charges_pct == pytest.approx(0.25)
        assert row.self_pay_charges_pct == pytest.approx(0.05)
        assert row.commercial_charges_pct == pytest.approx(0.3)
        assert row.high_value_payer_pct == pytest.approx(0.65)

    def test_charges_per_visit(self) -> None:
        assert build_feature_row(_week()).charges_per_visit == pytest.approx(100.0)

    def test_zero_charges_and_visits(self) -> None:
        row = build_feature_row(_week(total_charge_amount=0.0, total_visit_count=0))
        assert row.bcbs_charges_pct == 0.0
        assert row.high_value_payer_pct == 0.0
        assert row.charges_per_visit == 0.0

    def test_keeps_reference_to_source_week(self) -> None:
        week = _week()
        row = build_feature_row(week)
        assert row.original_data is week
        assert row.week_key == "2024-1"


class TestEngineerFeatures:

    def test_one_row_per_week_in_order(self, mixed_weekly) -> None:
        features = engineer_features(mixed_weekly)
        assert [f.week_key for f in features] == [w.week_key for w in mixed_weekly]

    def test_payer_shares_stay_within_total(self, mixed_features) -> None:
        for row in mixed_features:
            total = (row.bcbs_charges_pct + row.aetna_charges_pct
                     + row.self_pay_charges_pct + row.commercial_charges_pct)
            assert total <= 1 + 1e-9
