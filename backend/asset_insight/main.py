# backend/asset_insight/main.py
from dotenv import load_dotenv

load_dotenv()  # Loads .env automatically

from typing import List, Optional

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from .encoder import InMemoryUpload
from .jobs.jobs import cancel_job, create_job, discard_job, get_job, start_job
from .logging_config import get_metrics_snapshot, log
from .models import RunState
from .pipeline import run_analysis


app = FastAPI(title="Visual Asset Insight Pro", version="1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def _read_uploads(files: List[UploadFile]) -> List[InMemoryUpload]:
    """
    Pull every upload into memory while the request is still open.
    An upload that cannot be read is kept as empty bytes so the encoder
    reports it as a per-asset failure instead of failing the request.
    """
    if not files:
        raise HTTPException(status_code=400, detail="Upload at least one image.")

    uploads: List[InMemoryUpload] = []
    for f in files:
        try:
            content = await f.read()
        except Exception as e:
            log.warning(f"Could not read upload {f.filename}: {e}")
            content = b""
        uploads.append(
            InMemoryUpload(filename=f.filename, content_type=f.content_type, content=content)
        )
    return uploads


# ==========================================================
#                    MAIN ANALYSIS PIPELINE
# ==========================================================


@app.post("/api/v1/assets/analyze", response_model=RunState)
async def analyze_assets(files: Optional[List[UploadFile]] = File(None)):
    """
    Sample the uploaded batch, analyze each sample with Gemini, synthesize the
    collection's visual DNA and return the finished run.
    """
    uploads = await _read_uploads(files or [])
    state = create_job()
    try:
        return await run_analysis(uploads, state)
    except Exception as e:
        log.error(f"💥 Pipeline error: {e}")
        state.phase = "failed"
        state.error = str(e)
        raise HTTPException(status_code=500, detail=f"Pipeline error: {e}")


# ==========================================================
#             ASYNC JOB HANDLER (progress + abort)
# ==========================================================


@app.post("/api/v1/assets/analyze_async")
async def analyze_assets_async(files: Optional[List[UploadFile]] = File(None)):
    """
    Same as /analyze, but returns immediately; poll /api/v1/runs/{run_id}.
    """
    uploads = await _read_uploads(files or [])
    state = create_job()
    start_job(state, run_analysis(uploads, state))
    return {"runId": state.run_id, "status": "queued"}


@app.get("/api/v1/runs/{run_id}", response_model=RunState)
async def get_run(run_id: str):
    state = get_job(run_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return state


@app.post("/api/v1/runs/{run_id}/cancel", response_model=RunState)
async def cancel_run(run_id: str):
    state = get_job(run_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Run not found")
    if not cancel_job(run_id):
        raise HTTPException(status_code=409, detail="Run is executing inline and cannot be cancelled")
    return state


@app.delete("/api/v1/runs/{run_id}")
async def reset_run(run_id: str):
    if not discard_job(run_id):
        raise HTTPException(status_code=404, detail="Run not found")
    return {"runId": run_id, "status": "discarded"}


# ==========================================================
#                     METRICS + HEALTH
# ==========================================================


@app.get("/metrics")
async def metrics():
    return get_metrics_snapshot()


@app.get("/health")
async def health():
    return {"status": "ok", "agents": ["analyzer", "synthesizer"]}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("backend.asset_insight.main:app", host="127.0.0.1", port=8000, reload=True)
