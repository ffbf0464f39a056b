import logging
import re
from dataclasses import asdict
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import PayerCodes
from .records import BillingRecord, PayerSubtotal, WeeklyAggregate

logger = logging.getLogger(__name__)

GROUP_COLS = ["year", "week"]
_LAST_NUMBER = re.compile(r"(\d+)(?!.*\d)")


def week_sort_key(year: int, week: str) -> Tuple[int, float, str]:
    """
    Chronological key for a (year, week label) bucket. The trailing number of
    the label orders weeks, so 'W2' sorts before 'W10' and '2024-W05' before
    '2024-W12'. Labels without digits sort after numbered weeks.
    """
    m = _LAST_NUMBER.search(str(week))
    number = float(m.group(1)) if m else float("inf")
    return (int(year), number, str(week))


def records_to_frame(records: Sequence[BillingRecord]) -> pd.DataFrame:
    df = pd.DataFrame([asdict(r) for r in records])
    df["payer"] = df["payer"].astype(str).str.strip()
    return df


def _payer_subtotals(df: pd.DataFrame, payer_code: str) -> pd.DataFrame:
    sub = df[df["payer"] == payer_code]
    return (
        sub.groupby(GROUP_COLS, sort=False)
           .agg(
               charges=("charge_amount", "sum"),
               visits=("visit_count", "sum"),
               collection_pct=("collection_pct", "mean"),
           )
    )


def _subtotal(table: pd.DataFrame, key) -> PayerSubtotal:
    if key not in table.index:
        return PayerSubtotal()
    row = table.loc[key]
    return PayerSubtotal(
        charges=float(row["charges"]),
        visits=int(row["visits"]),
        collection_pct=float(row["collection_pct"]),
    )


def aggregate_by_week(
    records: Sequence[BillingRecord],
    payer_codes: Optional[PayerCodes] = None,
) -> List[WeeklyAggregate]:
    """
    Collapse billing records into one row per (year, week), ordered
    chronologically. Collection rate is weighted by charges; payer
    sub-totals cover BCBS, Aetna, Self-Pay and Commercial.
    """
    logger.info("📊 Aggregating data by week...")
    if not records:
        return []
    payer_codes = payer_codes or PayerCodes()

    df = records_to_frame(records)
    df["_weighted_collection"] = df["collection_pct"] * df["charge_amount"]

    weekly = (
        df.groupby(GROUP_COLS, sort=False)
          .agg(
              total_payments=("total_payments", "sum"),
              total_charge_amount=("charge_amount", "sum"),
              total_visit_count=("visit_count", "sum"),
              total_visits_with_labs=("visits_with_lab_count", "sum"),
              weighted_collection=("_weighted_collection", "sum"),
          )
    )
    charges = weekly["total_charge_amount"].where(weekly["total_charge_amount"] > 0, 1)
    weekly["weighted_avg_collection_pct"] = np.where(
        weekly["total_charge_amount"] > 0, weekly["weighted_collection"] / charges, 0.0
    )
    visits = weekly["total_visit_count"].where(weekly["total_visit_count"] > 0, 1)
    weekly["avg_payment_per_visit"] = np.where(
        weekly["total_visit_count"] > 0, weekly["total_payments"] / visits, 0.0
    )
    weekly["pct_visits_with_labs"] = np.where(
        weekly["total_visit_count"] > 0, weekly["total_visits_with_labs"] / visits, 0.0
    )

    payer_tables: Dict[str, pd.DataFrame] = {
        name: _payer_subtotals(df, code) for name, code in payer_codes.as_dict().items()
    }
    members = df.groupby(GROUP_COLS, sort=False).indices

    aggregates = []
    for key, row in weekly.iterrows():
        year, week = key
        aggregates.append(WeeklyAggregate(
            year=int(year),
            week=str(week),
            total_payments=float(row["total_payments"]),
            total_charge_amount=float(row["total_charge_amount"]),
            total_visit_count=int(row["total_visit_count"]),
            total_visits_with_labs=int(row["total_visits_with_labs"]),
            weighted_avg_collection_pct=float(row["weighted_avg_collection_pct"]),
            avg_payment_per_visit=float(row["avg_payment_per_visit"]),
            pct_visits_with_labs=float(row["pct_visits_with_labs"]),
            detail_records=tuple(records[i] for i in members[key]),
            **{name: _subtotal(table, key) for name, table in payer_tables.items()},
        ))

    aggregates.sort(key=lambda w: week_sort_key(w.year, w.week))
    logger.info(f"✅ Weekly aggregated: {len(aggregates)} weeks")
    return aggregates
