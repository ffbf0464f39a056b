from typing import Dict, List, Optional, Sequence, Union

ValidationReport = Dict[str, Union[str, bool, List[str]]]


# ============================================================
# Core helpers
# ============================================================
def _ok(msg: str = "OK") -> ValidationReport:
    return {"status": "ok", "passed": True, "issues": [], "summary": msg}


def _fail(issues: List[str], summary: str = "Validation failed") -> ValidationReport:
    return {"status": "fail", "passed": False, "issues": issues, "summary": summary}


def _warn(issues: List[str], summary: str = "Validation warnings") -> ValidationReport:
    return {"status": "warn", "passed": True, "issues": issues, "summary": summary}


# ============================================================
# Raw table checks (before extraction)
# ============================================================
def check_table_shape(rows: Sequence[Sequence], min_rows: int = 2) -> ValidationReport:
    n = 0 if rows is None else len(rows)
    if n >= min_rows:
        return _ok(f"Row count OK: {n} (>= {min_rows})")
    return _fail(
        [f"Too few rows: {n} < {min_rows} (need a header row and at least one data row)"],
        "The file appears to be empty",
    )


def check_required_columns(
    column_map: Dict[str, Optional[int]],
    required: Sequence[str],
    width: int,
) -> ValidationReport:
    missing = [f for f in required if column_map.get(f) is None or column_map[f] >= width]
    if not missing:
        return _ok("All required columns present")
    return _fail([f"Missing required columns: {missing}"], "Required columns missing")


# ============================================================
# Pipeline checkpoints
# ============================================================
def check_record_count(n_records: int, min_records: int = 1) -> ValidationReport:
    if n_records >= min_records:
        return _ok(f"Usable records: {n_records}")
    return _fail([f"Only {n_records} usable billing records"], "The file contains no usable weekly records")


def check_week_count(n_weeks: int, min_weeks: int = 5) -> ValidationReport:
    if n_weeks >= min_weeks:
        return _ok(f"Week count OK: {n_weeks} (>= {min_weeks})")
    return _fail(
        [f"Too few weeks: {n_weeks} < {min_weeks}"],
        f"At least {min_weeks} weeks of data are needed for a train/test split",
    )


def check_diagnostic_balance(counts: Dict[str, int], max_share: float = 0.8) -> ValidationReport:
    total = sum(counts.values())
    if total == 0:
        return _ok("No weeks classified")
    issues = [
        f"{count / total:.0%} of weeks are '{label}'"
        for label, count in counts.items()
        if count / total > max_share
    ]
    if issues:
        return _warn(issues, "Skewed performance distribution; the model fit may be degenerate")
    return _ok("Performance distribution OK")
