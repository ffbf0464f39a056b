# backend/app.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .routes.upload_route import router as upload_router
from .routes.analysis_route import router as analysis_router
from .routes.download_route import router as download_router
from .utils.file_utils import ensure_dirs, outputs_dir, uploads_dir
from .utils.pipeline_utils import setup_logging

setup_logging()
ensure_dirs()

# ---------------------------------------
# App & CORS
# ---------------------------------------
app = FastAPI(
    title="Weekly Revenue Forecast & Diagnostics",
    version="1.0.0",
    description="Upload weekly billing reports, forecast revenue, classify each week and download the insights.",
)

# Allow local dev & Render origins (adjust as needed)
origins = [
    "http://localhost",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "https://*.onrender.com",
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

# ---------------------------------------
# Static mounts (outputs as direct links)
# ---------------------------------------
app.mount("/outputs", StaticFiles(directory=str(outputs_dir())), name="outputs")

# ---------------------------------------
# Routers
# ---------------------------------------
app.include_router(upload_router)
app.include_router(analysis_router)
app.include_router(download_router)


# ---------------------------------------
# Health
# ---------------------------------------
@app.get("/api/health")
def health():
    return {
        "status": "ok",
        "message": "Weekly Revenue Forecast API is up.",
        "uploads_dir": str(uploads_dir()),
        "outputs_dir": str(outputs_dir()),
    }


# ---------------------------------------
# Local run
# ---------------------------------------
# Run with: uvicorn backend.app:app --reload --port 8000
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("backend.app:app", host="0.0.0.0", port=8000, reload=True)
