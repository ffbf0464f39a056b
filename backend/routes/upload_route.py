# backend/routes/upload_route.py
from fastapi import APIRouter, UploadFile, File, HTTPException, Query
from fastapi.responses import JSONResponse
from typing import List, Dict, Any
from pathlib import Path
import logging
import time

from ..pipeline import AnalysisConfig, AnalysisError
from ..utils.file_utils import allowed_file, save_upload_stream, secure_filename, uploads_dir
from ..utils.pipeline_utils import output_stem, run_analysis_on_file, save_analysis_outputs

router = APIRouter(prefix="/api/upload", tags=["upload"])
logger = logging.getLogger(__name__)


def _save_upload(file: UploadFile) -> Path:
    """
    Save UploadFile safely to the uploads dir using our secure_filename helper.
    Streams to disk to support large files.
    """
    if not file or not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")
    if not allowed_file(file.filename):
        raise HTTPException(status_code=400, detail="Only .csv, .xlsx and .xls files are accepted")

    try:
        return save_upload_stream(file.file, file.filename)
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Failed to save file: {e}") from e
    finally:
        file.file.close()


@router.post("/", response_class=JSONResponse)
async def upload_file(
    file: UploadFile = File(...),
    run_after_upload: bool = Query(False, description="If true, run the weekly analysis after upload"),
) -> Dict[str, Any]:
    """
    Upload a weekly billing report. Optionally run the analysis on it right away.
    """
    saved_path = _save_upload(file)
    meta = {
        "filename": saved_path.name,
        "saved_path": str(saved_path),
        "size_bytes": saved_path.stat().st_size,
        "uploaded_at": int(time.time()),
    }

    result: Dict[str, Any] = {"status": "ok", "message": "File uploaded", "file": meta}

    if run_after_upload:
        try:
            analysis = run_analysis_on_file(saved_path, AnalysisConfig.from_env())
        except AnalysisError as e:
            # the upload itself is kept; only the analysis failed
            logger.warning(f"⚠️ Analysis failed for {saved_path.name}: {e}")
            raise HTTPException(status_code=400, detail=f"File uploaded as {saved_path.name} but analysis failed: {e}")

        paths = save_analysis_outputs(analysis, output_stem(saved_path), saved_path)
        result["analysis"] = {
            "bestModel": analysis.best_model.model_name,
            "totalWeeks": analysis.benchmarks["total_weeks"],
            "outputs": [p.name for p in paths.values()],
        }
        result["message"] += " & analysis completed"

    return result


@router.get("/list", response_class=JSONResponse)
async def list_uploads() -> Dict[str, Any]:
    """
    List uploaded files with basic metadata for the UI file picker.
    """
    files: List[Dict[str, Any]] = []
    for p in sorted(uploads_dir().glob("*")):
        if p.is_file():
            files.append({
                "filename": p.name,
                "path": str(p),
                "size_bytes": p.stat().st_size,
                "modified_at": int(p.stat().st_mtime),
            })
    return {"status": "ok", "files": files}


@router.delete("/", response_class=JSONResponse)
async def delete_upload(
    filename: str = Query(..., description="Filename to delete (must exist in uploads dir)")
) -> Dict[str, Any]:
    """
    Delete a previously uploaded file by name.
    """
    target = uploads_dir() / secure_filename(filename)
    if not target.exists() or not target.is_file():
        raise HTTPException(status_code=404, detail=f"File not found: {filename}")

    try:
        target.unlink()
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete {filename}: {e}")
    return {"status": "ok", "message": f"Deleted {filename}"}
