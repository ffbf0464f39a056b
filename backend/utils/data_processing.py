import math

import numpy as np
import pandas as pd


def is_blank(x) -> bool:
    """
    True for empty spreadsheet cells: None, NaN, or whitespace-only strings.
    """
    if x is None:
        return True
    if isinstance(x, str):
        return x.strip() == ""
    try:
        return bool(pd.isna(x))
    except (TypeError, ValueError):
        return False


def to_float_safe(x, default: float = 0.0) -> float:
    """
    Safely convert a cell to float, handling blanks, currency signs, commas
    and percent strings. Anything unparseable or non-finite becomes `default`.
    """
    if is_blank(x):
        return default
    if isinstance(x, (bool, np.bool_)):
        return float(x)
    if isinstance(x, (int, float, np.integer, np.floating)):
        value = float(x)
        return value if math.isfinite(value) else default
    s = str(x).strip().replace(",", "").replace("$", "").strip()
    divisor = 1.0
    if s.endswith("%"):
        s = s[:-1].strip()
        divisor = 100.0
    try:
        value = float(s) / divisor
    except ValueError:
        return default
    return value if math.isfinite(value) else default


def to_int_safe(x, default: int = 0) -> int:
    """Counts are truncated toward zero, like a spreadsheet INT() on whole visits."""
    return int(to_float_safe(x, default=float(default)))


def to_label(x) -> str:
    """
    Render a grouping cell (week label, payer, E/M group) as clean text.
    Whole floats coming out of Excel (5.0) lose their trailing '.0'.
    """
    if is_blank(x):
        return ""
    if isinstance(x, (float, np.floating)) and float(x).is_integer():
        return str(int(x))
    return str(x).strip()


def safe_divide(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator
