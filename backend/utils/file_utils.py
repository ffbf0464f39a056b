import os
import re
import json
import shutil
import zipfile
from pathlib import Path
from datetime import datetime
from typing import Any, BinaryIO, Dict, List, Optional, Union

import pandas as pd

from ..pipeline.errors import DataFormatError


# =========================================
# Constants & Directories
# =========================================
ROOT_DIR = Path(__file__).resolve().parents[2]

DEFAULT_ALLOWED_EXTS = {".csv", ".xlsx", ".xls"}


def data_dir() -> Path:
    return Path(os.getenv("DATA_DIR", ROOT_DIR / "data")).resolve()


def uploads_dir() -> Path:
    return Path(os.getenv("UPLOADS_DIR", data_dir() / "uploads")).resolve()


def outputs_dir() -> Path:
    return Path(os.getenv("OUTPUTS_DIR", data_dir() / "outputs")).resolve()


def logs_dir() -> Path:
    return Path(os.getenv("LOGS_DIR", ROOT_DIR / "logs")).resolve()


# =========================================
# Directory helpers
# =========================================
def ensure_dirs() -> None:
    """Ensure expected data directories exist."""
    for p in (uploads_dir(), outputs_dir(), logs_dir()):
        p.mkdir(parents=True, exist_ok=True)


# =========================================
# Filename & extension helpers
# =========================================
def secure_filename(filename: str) -> str:
    """
    Very small 'secure_filename' implementation:
    - strips directory components
    - keeps alnum, dash, underscore, dot
    - collapses spaces
    """
    filename = os.path.basename(filename.replace("\\", "/"))
    filename = filename.strip().replace(" ", "_")
    filename = re.sub(r"[^A-Za-z0-9._-]", "", filename)
    # prevent hidden files like ".env"
    filename = filename.lstrip(".")
    return filename or f"upload_{datetime.now().strftime('%Y%m%d_%H%M%S')}"


def allowed_file(filename: str, allowed_exts: Optional[set] = None) -> bool:
    """Check if file extension is allowed."""
    allowed_exts = allowed_exts or DEFAULT_ALLOWED_EXTS
    return Path(filename).suffix.lower() in allowed_exts


# =========================================
# Saving uploads
# =========================================
def save_upload_stream(stream: BinaryIO, filename: str, allowed_exts: Optional[set] = None) -> Path:
    """Copy an uploaded file object into the uploads dir under a sanitized name."""
    ensure_dirs()
    safe_name = secure_filename(filename)
    if not allowed_file(safe_name, allowed_exts):
        raise ValueError(f"Disallowed file type: {safe_name}")
    dest = uploads_dir() / safe_name
    with dest.open("wb") as out:
        shutil.copyfileobj(stream, out)
    return dest


# =========================================
# Loaders
# =========================================
def load_table_rows(path: Union[str, Path]) -> List[List[Any]]:
    """
    Read a CSV or the first sheet of an Excel workbook as raw cell rows.
    No header inference: row 0 is the header row exactly as it appears in
    the file. Empty cells come back as None. A file pandas cannot parse
    raises DataFormatError.
    """
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"File not found: {p}")

    suffix = p.suffix.lower()
    if suffix not in DEFAULT_ALLOWED_EXTS:
        raise ValueError(f"Unsupported file type: {suffix}")
    try:
        if suffix == ".csv":
            df = pd.read_csv(p, header=None, dtype=object, skip_blank_lines=False)
        else:
            df = pd.read_excel(p, sheet_name=0, header=None, dtype=object)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, zipfile.BadZipFile, ValueError) as e:
        raise DataFormatError(f"Could not read {p.name}: {str(e).strip()}") from e

    df = df.astype(object).where(pd.notna(df), None)
    return df.values.tolist()


# =========================================
# Output helpers
# =========================================
def write_dataframe_csv(df: pd.DataFrame, filename: str) -> Path:
    """Write DataFrame to outputs dir (CSV) and return path."""
    ensure_dirs()
    filename = secure_filename(filename)
    if not filename.endswith(".csv"):
        filename += ".csv"
    dest = outputs_dir() / filename
    df.to_csv(dest, index=False)
    return dest


def write_dataframe_excel(df: pd.DataFrame, filename: str, sheet_name: str = "Weekly Results") -> Path:
    """Write DataFrame to outputs dir (XLSX via openpyxl) and return path."""
    ensure_dirs()
    filename = secure_filename(filename)
    if not filename.endswith(".xlsx"):
        filename += ".xlsx"
    dest = outputs_dir() / filename
    with pd.ExcelWriter(dest, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
    return dest


def write_json(payload: Dict[str, Any], filename: str) -> Path:
    """Write a JSON document to the outputs dir and return path."""
    ensure_dirs()
    filename = secure_filename(filename)
    if not filename.endswith(".json"):
        filename += ".json"
    dest = outputs_dir() / filename
    with open(dest, "w") as f:
        json.dump(payload, f, indent=2, default=str)
    return dest


def list_outputs(patterns: Optional[List[str]] = None) -> List[Path]:
    """List output files matching any of the patterns; if None, return all files."""
    ensure_dirs()
    root = outputs_dir()
    if not patterns:
        return sorted(p for p in root.glob("*") if p.is_file())
    results = []
    for pat in patterns:
        results.extend(root.glob(pat))
    return sorted(set(p for p in results if p.is_file()))


def get_latest_uploaded_file(pattern: str = "*") -> Optional[Path]:
    """Return latest uploaded data file (csv/xlsx/xls) in uploads dir."""
    ensure_dirs()
    latest = None
    for f in uploads_dir().glob(pattern):
        if f.is_file() and allowed_file(f.name):
            if latest is None or f.stat().st_mtime > latest.stat().st_mtime:
                latest = f
    return latest
