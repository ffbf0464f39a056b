"""Tests for record extraction from raw spreadsheet cells."""

import pytest

from backend.pipeline.errors import DataFormatError
from backend.pipeline.extract import build_column_map, extract_billing_records

from conftest import HEADERS, billing_row


class TestBuildColumnMap:
    """Header keyword matching with positional fallback."""

    def test_standard_headers_map_to_their_columns(self) -> None:
        column_map = build_column_map(HEADERS)
        assert column_map["year"] == 0
        assert column_map["payer"] == 2
        assert column_map["em_group"] == 3
        assert column_map["avg_em_weight"] == 6
        assert column_map["total_payments"] == 9
        assert column_map["visit_count"] == 10
        assert column_map["visits_with_lab_count"] == 11

    def test_reordered_headers_are_found_by_keyword(self) -> None:
        headers = ["Week", "Year", "Charge Amount", "Payer", "E/M Code", "Visit Count",
                   "Collection Rate", "Expected Payment"]
        column_map = build_column_map(headers)
        assert column_map["week"] == 0
        assert column_map["year"] == 1
        assert column_map["charge_amount"] == 2
        assert column_map["payer"] == 3
        assert column_map["em_group"] == 4
        assert column_map["visit_count"] == 5
        assert column_map["collection_pct"] == 6
        assert column_map["total_payments"] == 7

    def test_unlabeled_headers_fall_back_to_position(self) -> None:
        column_map = build_column_map([None] * 12)
        assert column_map["charge_amount"] == 7
        assert column_map["collection_pct"] == 8
        assert column_map["total_payments"] == 9

    def test_lab_count_is_not_taken_as_visit_count(self) -> None:
        headers = ["Year", "Week", "Payer", "E/M Group", "Visits With Lab Count", "Visit Count"]
        column_map = build_column_map(headers)
        assert column_map["visits_with_lab_count"] == 4
        assert column_map["visit_count"] == 5


class TestExtractBillingRecords:
    """Row parsing, carry-forward and validation."""

    def test_merged_cells_carry_forward(self) -> None:
        rows = [
            HEADERS,
            billing_row(2024, 1, "2-BCBS", "99213", 1000.0, 800.0, 10),
            billing_row(None, None, None, "99214", 500.0, 300.0, 5),
            billing_row(None, None, "17-AETNA", "99213", 700.0, 400.0, 7),
        ]
        records = extract_billing_records(rows)
        assert len(records) == 3
        assert [r.payer for r in records] == ["2-BCBS", "2-BCBS", "17-AETNA"]
        assert all(r.year == 2024 and r.week == "1" for r in records)

    def test_whitespace_cells_carry_forward_like_empty_ones(self) -> None:
        rows = [
            HEADERS,
            billing_row(2024, "W1", "2-BCBS", "99213", 1000.0, 800.0, 10),
            billing_row("  ", "", " ", "99214", 500.0, 300.0, 5),
            billing_row(None, "W2", None, "99213", 700.0, 400.0, 7)[:10],
        ]
        records = extract_billing_records(rows)
        assert [(r.year, r.week, r.payer) for r in records] == [
            (2024, "W1", "2-BCBS"),
            (2024, "W1", "2-BCBS"),
            (2024, "W2", "2-BCBS"),
        ]
        assert records[2].visit_count == 0

    def test_currency_and_percent_strings_are_parsed(self) -> None:
        row = billing_row(2024, 3, "2-BCBS", "99213", 0, 0, 0)
        row[7] = "$1,250.50"
        row[8] = "85%"
        row[9] = "1,063"
        row[10] = "12"
        records = extract_billing_records([HEADERS, row])
        record = records[0]
        assert record.charge_amount == pytest.approx(1250.50)
        assert record.collection_pct == pytest.approx(0.85)
        assert record.total_payments == pytest.approx(1063.0)
        assert record.visit_count == 12

    def test_derived_per_visit_fields(self) -> None:
        records = extract_billing_records([HEADERS, billing_row(2024, 1, "2-BCBS", "99213", 1000.0, 800.0, 10, labs=4)])
        assert records[0].payment_per_visit == pytest.approx(80.0)
        assert records[0].pct_visits_with_labs == pytest.approx(0.4)

    def test_zero_visits_give_zero_ratios(self) -> None:
        records = extract_billing_records([HEADERS, billing_row(2024, 1, "2-BCBS", "99213", 1000.0, 800.0, 0, labs=3)])
        assert records[0].payment_per_visit == 0.0
        assert records[0].pct_visits_with_labs == 0.0

    def test_rows_without_em_group_are_skipped(self) -> None:
        rows = [
            HEADERS,
            billing_row(2024, 1, "2-BCBS", "99213", 1000.0, 800.0, 10),
            billing_row(None, None, None, None, 9999.0, 9999.0, 99),
        ]
        assert len(extract_billing_records(rows)) == 1

    def test_rows_before_first_year_are_skipped(self) -> None:
        rows = [
            HEADERS,
            billing_row(None, 1, "2-BCBS", "99213", 1000.0, 800.0, 10),
            billing_row(2024, 1, "2-BCBS", "99213", 1000.0, 800.0, 10),
        ]
        assert len(extract_billing_records(rows)) == 1

    def test_non_numeric_year_is_skipped(self) -> None:
        rows = [HEADERS, billing_row("Total", 1, "2-BCBS", "99213", 1000.0, 800.0, 10)]
        assert extract_billing_records(rows) == []

    def test_invalid_records_are_dropped(self) -> None:
        negative = billing_row(2024, 1, "2-BCBS", "99213", 1000.0, -5.0, 10)
        runaway = billing_row(2024, 1, "2-BCBS", "99214", 1000.0, 800.0, 10, collection=6.0)
        good = billing_row(2024, 1, "17-AETNA", "99213", 1000.0, 800.0, 10)
        records = extract_billing_records([HEADERS, negative, runaway, good])
        assert [r.payer for r in records] == ["17-AETNA"]

    def test_short_rows_read_missing_cells_as_zero(self) -> None:
        row = billing_row(2024, 1, "2-BCBS", "99213", 1000.0, 800.0, 10)[:11]
        records = extract_billing_records([HEADERS, row])
        assert records[0].visits_with_lab_count == 0

    def test_header_only_table_is_rejected(self) -> None:
        with pytest.raises(DataFormatError):
            extract_billing_records([HEADERS])

    def test_empty_table_is_rejected(self) -> None:
        with pytest.raises(DataFormatError):
            extract_billing_records([])

    def test_missing_required_column_is_rejected(self) -> None:
        headers = ["Year", "Week", "Payer", "E/M Group", "Charge Amount"]
        rows = [headers, [2024, 1, "2-BCBS", "99213", 1000.0]]
        with pytest.raises(DataFormatError, match="Missing required columns"):
            extract_billing_records(rows)
