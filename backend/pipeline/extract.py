"""
Record extraction: raw spreadsheet cells -> validated BillingRecords.

The weekly billing report is exported from a pivot with merged cells, so
Year / Week / Payer only appear on the first row of each block. Columns are
located by header keywords first and by their usual position (A-L) second.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..utils.data_processing import is_blank, to_float_safe, to_int_safe, to_label
from ..utils.validation_utils import check_required_columns, check_table_shape
from .errors import DataFormatError
from .records import BillingRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnRule:
    field: str
    keywords: Tuple[Tuple[str, ...], ...]   # any alternative; all words of it must appear
    fallback_index: int
    exclude: Tuple[str, ...] = ()
    required: bool = True

    def matches(self, header: str) -> bool:
        h = header.lower()
        if any(word in h for word in self.exclude):
            return False
        return any(all(word in h for word in alternative) for alternative in self.keywords)


# Order matters: the more specific rules claim their header before the generic ones.
COLUMN_RULES: Tuple[ColumnRule, ...] = (
    ColumnRule("year", (("year",),), 0),
    ColumnRule("week", (("week",),), 1),
    ColumnRule("payer", (("payer",), ("payor",), ("financial", "class")), 2),
    ColumnRule("em_group", (("e/m",), ("em group",), ("em code",)), 3, exclude=("weight",)),
    ColumnRule("payments_pct_of_total", (("payment", "total", "%"),), 4,
               exclude=("expected",), required=False),
    ColumnRule("total_payments", (("payment", "expected"),), 9),
    ColumnRule("avg_payment", (("avg", "payment"), ("average", "payment")), 5,
               exclude=("visit", "%"), required=False),
    ColumnRule("avg_em_weight", (("weight",),), 6, required=False),
    ColumnRule("charge_amount", (("charge", "amount"),), 7),
    ColumnRule("collection_pct", (("collection", "%"), ("collection", "rate")), 8),
    ColumnRule("visits_with_lab_count", (("lab", "count"),), 11, required=False),
    ColumnRule("visit_count", (("visit", "count"),), 10, exclude=("lab",)),
)

CARRY_FORWARD_FIELDS = ("year", "week", "payer")
COUNT_FIELDS = ("visit_count", "visits_with_lab_count")


def build_column_map(headers: Sequence) -> Dict[str, Optional[int]]:
    """
    Resolve each field to a column index. Header keywords win; a field with
    no matching header keeps its fixed position from the standard layout,
    unless another field's header already claimed that position (then the
    field maps to None).
    """
    labels = ["" if is_blank(h) else str(h) for h in headers]
    claimed = set()
    column_map: Dict[str, Optional[int]] = {}
    for rule in COLUMN_RULES:
        match = next(
            (i for i, h in enumerate(labels) if i not in claimed and rule.matches(h)),
            None,
        )
        if match is not None:
            column_map[rule.field] = match
            claimed.add(match)

    for rule in COLUMN_RULES:
        if rule.field in column_map:
            continue
        if rule.fallback_index in claimed:
            column_map[rule.field] = None
            logger.debug(f"Column '{rule.field}' not found in headers and position {rule.fallback_index} is taken")
        else:
            column_map[rule.field] = rule.fallback_index
            logger.debug(f"Column '{rule.field}' not found in headers; using position {rule.fallback_index}")
    return {rule.field: column_map[rule.field] for rule in COLUMN_RULES}


def _field_table(data_rows: Sequence[Sequence], column_map: Dict[str, Optional[int]], width: int) -> pd.DataFrame:
    """
    One column per field, read from the mapped spreadsheet positions.
    Short rows are padded; blank cells become NaN. Fields with no column
    are all NaN.
    """
    frame = pd.DataFrame([list(r) if r is not None else [] for r in data_rows], dtype=object)
    frame = frame.reindex(columns=range(width))
    table = pd.DataFrame(
        {field: (frame[index] if index is not None and index < width else np.nan) for field, index in column_map.items()},
        index=frame.index,
    )
    table = table.apply(lambda col: col.map(lambda x: np.nan if is_blank(x) else x))
    return table.infer_objects()


def _parse_year(value) -> Optional[int]:
    year = to_float_safe(value)
    if year <= 0 or not float(year).is_integer():
        return None
    return int(year)


def extract_billing_records(rows: Sequence[Sequence]) -> List[BillingRecord]:
    """
    Parse raw rows (first row = headers) into validated billing records.

    Raises DataFormatError when there is no header/data or when a required
    column cannot be located. Rows that fail validation are dropped.
    """
    logger.info("🧹 Cleaning spreadsheet data...")
    shape = check_table_shape(rows)
    if not shape["passed"]:
        raise DataFormatError(f"{shape['summary']}: it needs a header row and at least one data row.")

    headers, data_rows = rows[0], rows[1:]
    column_map = build_column_map(headers)

    width = max(len(r) for r in rows if r is not None)
    required = [rule.field for rule in COLUMN_RULES if rule.required]
    columns = check_required_columns(column_map, required, width)
    if not columns["passed"]:
        raise DataFormatError(f"{columns['issues'][0]}.")

    table = _field_table(data_rows, column_map, width)

    # merged cells: Year / Week / Payer only appear on the first row of a block
    carried = list(CARRY_FORWARD_FIELDS)
    table[carried] = table[carried].ffill()
    complete = table.dropna(subset=carried + ["em_group"])
    skipped = len(table) - len(complete)

    records: List[BillingRecord] = []
    rejected = 0
    for index, row in complete.iterrows():
        row_number = index + 2
        year = _parse_year(row["year"])
        if year is None:
            skipped += 1
            continue

        values = {}
        for rule in COLUMN_RULES:
            if rule.field in CARRY_FORWARD_FIELDS or rule.field == "em_group":
                continue
            raw = row[rule.field]
            values[rule.field] = to_int_safe(raw) if rule.field in COUNT_FIELDS else to_float_safe(raw)

        record = BillingRecord(
            year=year,
            week=to_label(row["week"]),
            payer=to_label(row["payer"]),
            em_group=to_label(row["em_group"]),
            **values,
        )
        issues = record.violations()
        if issues:
            rejected += 1
            logger.debug(f"Row {row_number} rejected: {'; '.join(issues)}")
            continue
        records.append(record)

    logger.info(
        f"✅ Cleaned dataset: {len(records)} records "
        f"({skipped} incomplete rows skipped, {rejected} failed validation)"
    )
    return records
