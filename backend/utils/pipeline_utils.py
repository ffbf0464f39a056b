import sys
import logging
from pathlib import Path
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from ..pipeline import run_analysis
from .file_utils import (
    ensure_dirs,
    list_outputs,
    load_table_rows,
    logs_dir,
    outputs_dir,
    secure_filename,
    write_dataframe_csv,
    write_dataframe_excel,
    write_json,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
ARTIFACTS_NAME = "_ARTIFACTS.json"
PIPELINE_VERSION = "weekly_revenue_forecast_v1"


# =========================================
# Logging
# =========================================
def setup_logging(level: int = logging.INFO, log_name: str = "pipeline.log") -> Path:
    """
    Send log records to stdout and logs/pipeline.log.
    Safe to call more than once; each destination gets a single handler.
    """
    ensure_dirs()
    log_file = logs_dir() / log_name
    root = logging.getLogger()
    root.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT)
    if not any(type(h) is logging.StreamHandler for h in root.handlers):
        stream = logging.StreamHandler(sys.stdout)
        stream.setFormatter(formatter)
        root.addHandler(stream)
    if not any(isinstance(h, logging.FileHandler) and Path(h.baseFilename) == log_file for h in root.handlers):
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
    return log_file


# =========================================
# Pipeline runs
# =========================================
def output_stem(input_path: Union[str, Path]) -> str:
    return Path(secure_filename(Path(input_path).name)).stem


def run_analysis_on_file(path: Union[str, Path], config=None):
    """Load an uploaded table from disk and run the weekly analysis on it."""
    logger.info(f"📊 Processing file: {Path(path).name}")
    rows = load_table_rows(path)
    logger.info(f"✅ Loaded data: {len(rows)} rows")
    return run_analysis(rows, config)


def save_analysis_outputs(result, stem: str, source: Optional[Union[str, Path]] = None) -> Dict[str, Path]:
    """
    Write the weekly insights table (CSV + XLSX), the JSON summary and the
    artifact manifest into the outputs dir.
    """
    logger.info("💾 Saving outputs...")
    frame = result.final_results_frame()
    paths = {
        "csv": write_dataframe_csv(frame, f"{stem}_weekly_insights.csv"),
        "xlsx": write_dataframe_excel(frame, f"{stem}_weekly_insights.xlsx"),
    }

    summary = result.to_dict()
    summary["generatedAt"] = datetime.now(timezone.utc).isoformat()
    summary["inputFile"] = Path(source).name if source else None
    summary["trainWeeks"] = result.train_weeks
    summary["testWeeks"] = result.test_weeks
    summary["diagnosticCounts"] = result.diagnostic_counts
    paths["summary"] = write_json(summary, f"{stem}_summary.json")

    paths["manifest"] = write_artifact_manifest(source)
    for kind, p in paths.items():
        logger.info(f"  ✅ {kind}: {p.name}")
    return paths


def write_artifact_manifest(source: Optional[Union[str, Path]] = None) -> Path:
    """Write a simple manifest of what's in the outputs dir so the UI can present links."""
    manifest: Dict[str, Any] = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "outputs_dir": str(outputs_dir()),
        "files": sorted(p.name for p in list_outputs() if p.name != ARTIFACTS_NAME),
        "input_file": Path(source).name if source else None,
        "pipeline_version": PIPELINE_VERSION,
    }
    return write_json(manifest, ARTIFACTS_NAME)


def get_latest_summary() -> Optional[Path]:
    """Most recent *_summary.json in the outputs dir, or None."""
    summaries = list_outputs(["*_summary.json"])
    if not summaries:
        return None
    return max(summaries, key=lambda p: p.stat().st_mtime)
