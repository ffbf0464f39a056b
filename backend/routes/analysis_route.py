# backend/routes/analysis_route.py
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse
from typing import Optional, Dict, Any
from dataclasses import replace
from pathlib import Path
import json
import logging

from ..pipeline import AnalysisConfig, AnalysisError, PerformanceDiagnostic
from ..utils.file_utils import get_latest_uploaded_file, secure_filename, uploads_dir
from ..utils.pipeline_utils import (
    get_latest_summary,
    output_stem,
    run_analysis_on_file,
    save_analysis_outputs,
)

router = APIRouter(prefix="/api/analysis", tags=["analysis"])
logger = logging.getLogger(__name__)


def _resolve_input(filename: Optional[str]) -> Path:
    if filename:
        target = uploads_dir() / secure_filename(filename)
        if not target.is_file():
            raise HTTPException(status_code=404, detail=f"File not found: {filename}")
        return target
    latest = get_latest_uploaded_file()
    if latest is None:
        raise HTTPException(status_code=404, detail="No uploaded files found. Upload a file first.")
    return latest


def _load_latest_summary() -> Dict[str, Any]:
    path = get_latest_summary()
    if path is None:
        raise HTTPException(status_code=404, detail="No analysis results yet. Run an analysis first.")
    with open(path) as f:
        return json.load(f)


@router.post("/run", response_class=JSONResponse)
async def run_weekly_analysis(
    filename: Optional[str] = Query(None, description="Uploaded file to analyze; defaults to the latest upload"),
    test_size: Optional[float] = Query(None, gt=0, lt=1, description="Share of the most recent weeks held out for testing"),
) -> Dict[str, Any]:
    """
    Run the weekly forecast & diagnostics on an uploaded file and save the
    insights table, summary JSON and manifest to the outputs dir.
    """
    source = _resolve_input(filename)
    config = AnalysisConfig.from_env()
    if test_size is not None:
        config = replace(config, test_size=test_size)

    try:
        result = run_analysis_on_file(source, config)
    except AnalysisError as e:
        logger.warning(f"⚠️ Analysis rejected {source.name}: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e

    paths = save_analysis_outputs(result, output_stem(source), source)
    return {
        "status": "ok",
        "message": f"Analysis completed for {source.name}",
        "input_file": source.name,
        "outputs": {kind: p.name for kind, p in paths.items()},
        "results": result.to_dict(),
    }


@router.get("/summary", response_class=JSONResponse)
async def analysis_summary() -> Dict[str, Any]:
    """
    Headline figures of the most recent run: best model, benchmarks, key
    drivers, recommendations and the diagnostic distribution.
    """
    summary = _load_latest_summary()
    return {
        "status": "ok",
        "input_file": summary.get("inputFile"),
        "generated_at": summary.get("generatedAt"),
        "methodology": summary.get("methodology"),
        "bestModel": summary.get("bestModel"),
        "modelResults": summary.get("modelResults", []),
        "benchmarks": summary.get("benchmarks", {}),
        "keyDrivers": summary.get("keyDrivers", []),
        "recommendations": summary.get("recommendations", []),
        "diagnosticCounts": summary.get("diagnosticCounts", {}),
    }


@router.get("/weeks", response_class=JSONResponse)
async def analysis_weeks(
    diagnostic: Optional[str] = Query(None, description="Filter by Performance Diagnostic label"),
) -> Dict[str, Any]:
    """
    Weekly insight rows of the most recent run, optionally filtered to one
    diagnostic ("Over Performed", "Average Performance", "Under Performed").
    """
    labels = [d.value for d in PerformanceDiagnostic]
    if diagnostic is not None and diagnostic not in labels:
        raise HTTPException(status_code=400, detail=f"Unknown diagnostic '{diagnostic}'. Use one of {labels}.")

    weeks = _load_latest_summary().get("finalResults", [])
    if diagnostic is not None:
        weeks = [w for w in weeks if w.get("Performance Diagnostic") == diagnostic]
    return {"status": "ok", "count": len(weeks), "weeks": weeks}
