"""Pytest configuration and fixtures: synthetic weekly billing tables."""

import os
import tempfile

# Keep uploads/outputs/logs out of the repo, even for modules that touch
# the directories at import time (backend.app).
_SESSION_DIR = tempfile.mkdtemp(prefix="revenue-forecast-tests-")
os.environ["DATA_DIR"] = os.path.join(_SESSION_DIR, "data")
os.environ["LOGS_DIR"] = os.path.join(_SESSION_DIR, "logs")
os.environ.pop("UPLOADS_DIR", None)
os.environ.pop("OUTPUTS_DIR", None)

import pytest

from backend.pipeline.extract import extract_billing_records
from backend.pipeline.features import engineer_features
from backend.pipeline.weekly import aggregate_by_week

HEADERS = [
    "Year",
    "Week",
    "Primary Financial Class",
    "E/M Group",
    "Payments % of Total",
    "Avg Payment",
    "Avg E/M Weight",
    "Charge Amount",
    "Collection %",
    "Payment Amount (Expected)",
    "Visit Count",
    "Visits With Lab Count",
]


def billing_row(year, week, payer, em_group, charges, payments, visits, labs=0, collection=None):
    """One raw spreadsheet row in the standard A-L layout."""
    if collection is None:
        collection = payments / charges if charges else 0.0
    avg_payment = payments / visits if visits else 0.0
    return [year, week, payer, em_group, 0.0, avg_payment, 1.2, charges, collection, payments, visits, labs]


def linear_table(n_weeks=10, rate=0.8, year=2024):
    """
    n weeks where payments are exactly `rate` x charges on every row.
    Visit counts cycle so they do not track charges.
    """
    rows = [list(HEADERS)]
    for i in range(1, n_weeks + 1):
        bcbs_charges = 1000.0 * i + 500.0
        aetna_charges = 400.0 + 50.0 * (i % 4)
        rows.append(billing_row(year, i, "2-BCBS", "99213", bcbs_charges, rate * bcbs_charges,
                                20 + 5 * (i % 3), labs=4, collection=rate))
        rows.append(billing_row(None, None, "17-AETNA", "99214", aetna_charges, rate * aetna_charges,
                                8 + (i % 2), labs=1, collection=rate))
    return rows


def mixed_table(n_weeks=8, year=2024):
    """Irregular weeks across four payers, merged Year/Week/Payer cells included."""
    rows = [list(HEADERS)]
    for i in range(1, n_weeks + 1):
        swing = 1.0 + 0.15 * ((-1) ** i) * (i % 3)
        rows.append(billing_row(year, f"W{i}", "2-BCBS", "99213", 4000.0 + 300 * i, 2400.0 * swing + 150 * i, 30 + i, labs=6))
        rows.append(billing_row(None, None, None, "99214", 1500.0, 900.0 * swing, 10, labs=2))
        rows.append(billing_row(None, None, "17-AETNA", "99213", 2000.0 + 100 * (i % 2), 1100.0 * swing, 15 + (i % 3), labs=3))
        rows.append(billing_row(None, None, "1-SELF PAY", "99212", 600.0, 150.0, 6, labs=0))
        rows.append(billing_row(None, None, "5-COMMERCIAL", "99213", 2500.0 - 50 * i, 1500.0 + 40 * i, 18, labs=4))
    return rows


@pytest.fixture
def headers():
    return list(HEADERS)


@pytest.fixture
def linear_rows():
    return linear_table()


@pytest.fixture
def mixed_rows():
    return mixed_table()


@pytest.fixture
def mixed_weekly(mixed_rows):
    return aggregate_by_week(extract_billing_records(mixed_rows))


@pytest.fixture
def mixed_features(mixed_weekly):
    return engineer_features(mixed_weekly)


@pytest.fixture
def linear_features(linear_rows):
    return engineer_features(aggregate_by_week(extract_billing_records(linear_rows)))


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Point DATA_DIR/LOGS_DIR at a fresh temp dir for one test."""
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("LOGS_DIR", str(tmp_path / "logs"))
    monkeypatch.delenv("UPLOADS_DIR", raising=False)
    monkeypatch.delenv("OUTPUTS_DIR", raising=False)
    return tmp_path
