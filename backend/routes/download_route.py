# backend/routes/download_route.py
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import FileResponse, JSONResponse
from typing import List, Dict, Any
from pathlib import Path
import os
import mimetypes

from ..utils.file_utils import ensure_dirs, outputs_dir, secure_filename

router = APIRouter(prefix="/api/download", tags=["download"])


def _resolve_output_path(name_or_relpath: str) -> Path:
    """
    Resolve a filename or relative path safely within the outputs dir.
    - Allows subfolders (relative only).
    - Blocks path traversal outside the outputs dir.
    """
    root = outputs_dir()
    rel = Path(name_or_relpath)
    if rel.parent == Path("."):
        candidate = root / secure_filename(rel.name)
    else:
        candidate = (root / rel).resolve()

    # must live under the outputs dir
    if root not in candidate.parents:
        raise HTTPException(status_code=400, detail="Invalid path")

    if not candidate.exists() or not candidate.is_file():
        raise HTTPException(status_code=404, detail=f"File not found: {name_or_relpath}")

    return candidate


@router.get("/list", response_class=JSONResponse)
async def list_outputs(
    recursive: bool = Query(False, description="List files in subfolders as well.")
) -> Dict[str, Any]:
    """
    List available output files for download.
    """
    ensure_dirs()
    root = outputs_dir()
    iterator = root.rglob("*") if recursive else root.glob("*")

    files: List[Dict[str, Any]] = []
    for p in sorted(iterator):
        if p.is_file():
            files.append({
                "name": p.name,
                "relpath": str(p.relative_to(root)),
                "size_bytes": p.stat().st_size,
                "modified_at": int(p.stat().st_mtime),
                "mime": mimetypes.guess_type(p.name)[0] or "application/octet-stream",
            })

    return {"status": "ok", "root": str(root), "files": files}


@router.get("/file", response_class=FileResponse)
async def download_file(
    filename: str = Query(..., description="Filename or relative path under the outputs dir")
):
    """
    Download a single file by name or relative path.
    """
    target = _resolve_output_path(filename)
    media_type = mimetypes.guess_type(target.name)[0] or "application/octet-stream"
    return FileResponse(path=str(target), media_type=media_type, filename=target.name)


@router.delete("/file", response_class=JSONResponse)
async def delete_output(
    filename: str = Query(..., description="Filename or relative path under the outputs dir")
) -> Dict[str, Any]:
    """
    Delete an output file (useful to keep the workspace clean).
    """
    target = _resolve_output_path(filename)
    try:
        os.remove(target)
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete: {e}")

    return {"status": "ok", "message": f"Deleted {filename}"}
