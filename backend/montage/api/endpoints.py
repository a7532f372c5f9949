from fastapi import APIRouter, BackgroundTasks, HTTPException
from pydantic import ValidationError
import asyncio
import logging
from pathlib import Path

from montage.editing.analyzers import get_analyzer
from montage.editing.core.processor import VideoEditingError
from montage.editing.utils.video_utils import probe_media
from montage.schemas.edit_plan import parse_plan
from montage.schemas.render import (
    AnalyzeRequest,
    AnalyzeResponse,
    JobStatus,
    RenderRequest,
    RenderResponse,
    SilenceRangeModel,
)
from montage.services.job_store import get_job_store
from montage.tasks.rendering import run_render_job

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

router = APIRouter()


def _require_source(video_path: str) -> Path:
    path = Path(video_path)
    if not path.is_file():
        raise HTTPException(status_code=404, detail=f"Video not found: {video_path}")
    return path


@router.post("/render", response_model=RenderResponse, response_model_by_alias=True)
async def start_render(request: RenderRequest, background_tasks: BackgroundTasks):
    """
    Starts rendering an edit plan in the background.
    Returns a job id to poll with GET /render/{job_id}.
    """
    source = _require_source(request.video_path)

    try:
        parse_plan(request.operations)
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid edit plan: {e}")

    store = get_job_store()
    job_id = store.create()
    background_tasks.add_task(run_render_job, job_id, str(source), request.operations, store)

    logger.info(f"Queued render job {job_id} ({len(request.operations)} operations, "
                f"{len(store)} jobs tracked)")
    return RenderResponse(job_id=job_id)


@router.get("/render/{job_id}", response_model=JobStatus, response_model_by_alias=True)
async def get_render_status(job_id: str):
    status = get_job_store().get(job_id)
    if status is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    return status


@router.post("/analyze", response_model=AnalyzeResponse, response_model_by_alias=True)
async def analyze_silence(request: AnalyzeRequest):
    """Detects silent sections of a clip."""
    source = _require_source(request.video_path)
    detector = get_analyzer('silence', min_silence=request.min_silence, threshold_db=request.threshold_db)

    try:
        info = await asyncio.to_thread(probe_media, source)
        ranges = await asyncio.to_thread(detector.detect, source, None, None, info)
    except VideoEditingError as e:
        logger.error(f"Silence analysis failed for {source}: {e}")
        raise HTTPException(status_code=500, detail=f"Silence analysis failed: {e}")

    return AnalyzeResponse(
        silence_ranges=[SilenceRangeModel(start=r.start, end=r.end) for r in ranges],
        total_duration=info.duration,
    )
