"""Background execution of render jobs.

Two entry points share the same pipeline: ``run_render_job`` records
progress in the in-process job store (used by the API's background tasks),
and ``render_plan_task`` reports it through Celery task state.
"""
from pathlib import Path
from typing import Dict, Any, List, Optional

from celery.utils.log import get_task_logger

from montage.core.celery_app import celery_app
from montage.editing.pipeline.core import (
    EditPipeline,
    Progress,
    ProcessingStatus,
    ProgressStream,
    normalize_for_source,
    run_pipeline,
)
from montage.schemas.render import JobStatus
from montage.services.job_store import InMemoryJobStore, get_job_store

logger = get_task_logger(__name__)


def run_render_job(
    job_id: str,
    source_path: str,
    operations: List[Dict[str, Any]],
    store: Optional[InMemoryJobStore] = None,
    output_dir: Optional[str] = None,
) -> None:
    """
    Render a plan and keep the job's status current.

    Failures end the job in the ``error`` state with a readable message.
    """
    store = store or get_job_store()
    logger.info(f"Starting render job {job_id} for {source_path}")

    try:
        plan = normalize_for_source(source_path, operations)
        stream = ProgressStream(EditPipeline(output_dir), source_path, plan)
        for event in stream:
            if event.status == ProcessingStatus.RUNNING:
                store.update(job_id, progress=round(event.percent, 2), current_label=event.message)
        output_path = stream.result()
    except Exception as e:
        # Background job boundary: every failure ends up on the job status
        logger.error(f"Render job {job_id} failed: {e}", exc_info=True)
        store.update(job_id, state='error', current_label='Failed', error=str(e))
        return

    store.update(
        job_id,
        state='completed',
        progress=100.0,
        current_label='Complete',
        output_path=str(output_path),
    )
    logger.info(f"Render job {job_id} completed: {output_path}")


@celery_app.task(bind=True)
def render_plan_task(
    self,
    source_path: str,
    operations: List[Dict[str, Any]],
    output_dir: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Render a plan on a Celery worker.

    Args:
        source_path: Path to the source clip (readable by the worker)
        operations: Raw edit operations
        output_dir: Directory for the output (defaults to settings)

    Returns:
        The final JobStatus, serialized with camelCase keys
    """
    logger.info(f"Render task {self.request.id}: {len(operations)} operations on {source_path}")

    def _report(progress: Progress) -> None:
        if progress.status != ProcessingStatus.RUNNING:
            return
        status = JobStatus(progress=round(progress.percent, 2), current_label=progress.message)
        self.update_state(state="PROGRESS", meta=status.model_dump(by_alias=True))

    try:
        plan = normalize_for_source(source_path, operations)
        output_path = run_pipeline(source_path, plan, _report, output_dir=output_dir)
    except Exception as e:
        logger.error(f"Render task {self.request.id} failed: {e}", exc_info=True)
        raise

    return JobStatus(
        state='completed',
        progress=100.0,
        current_label='Complete',
        output_path=str(Path(output_path)),
    ).model_dump(by_alias=True)
