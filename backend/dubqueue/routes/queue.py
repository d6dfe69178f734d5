"""
Render queue endpoints.

Structural edits are refused with 409 while a run is active; cancellation
is accepted at any time. Runs execute on a background thread and are
observed through GET /queue/progress.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from ..compiler import PlanError
from ..execution import RenderError, build_command
from ..jobs import (
    DuplicateOutputError,
    InvalidStateTransitionError,
    JobNotEditableError,
    JobNotFoundError,
    QueueBusyError,
    QueueError,
    QueueProgress,
    RenderJob,
    build_render_job,
)
from ..materials import DEFAULT_LOGO_SETTINGS, LogoSettings, Material, MaterialError
from ..presets import PresetNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/queue", tags=["queue"])


# ============================================================================
# REQUEST / RESPONSE MODELS
# ============================================================================

class EnqueueRequest(BaseModel):
    """A project to queue: its materials, preset and output choice."""

    model_config = ConfigDict(extra="forbid")

    materials: List[Material]
    preset_name: str
    logo: LogoSettings = DEFAULT_LOGO_SETTINGS
    output_path: str = ""
    output_folder: Optional[str] = None
    title: Optional[str] = None
    gpu_acceleration: bool = True
    shutdown_when_completed: bool = False


class UpdateJobRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    output_path: Optional[str] = None
    preset_name: Optional[str] = None
    gpu_acceleration: Optional[bool] = None
    title: Optional[str] = None


class MoveJobRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    position: int = Field(ge=0)


class ShutdownRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool


class QueueListResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    jobs: List[RenderJob]
    is_busy: bool
    shutdown_when_completed: bool


class PlanResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    command: List[str]
    filter_graph: Optional[str] = None
    total_duration: float
    warnings: List[str]


class OperationResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    success: bool
    message: str


# ============================================================================
# ERROR TRANSLATION
# ============================================================================

def _http_error(error: Exception) -> HTTPException:
    """Map domain errors to HTTP status codes."""
    if isinstance(error, (JobNotFoundError, PresetNotFoundError)):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, (DuplicateOutputError, QueueBusyError, InvalidStateTransitionError, JobNotEditableError)):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, (PlanError, MaterialError, RenderError, QueueError)):
        return HTTPException(status_code=400, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


_DOMAIN_ERRORS = (QueueError, PlanError, MaterialError, RenderError, PresetNotFoundError)


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.get("", response_model=QueueListResponse)
async def list_queue_endpoint(request: Request):
    render_queue = request.app.state.render_queue
    return QueueListResponse(
        jobs=render_queue.jobs(),
        is_busy=render_queue.is_busy,
        shutdown_when_completed=render_queue.shutdown_when_completed,
    )


@router.post("/jobs", response_model=RenderJob)
async def enqueue_job_endpoint(body: EnqueueRequest, request: Request):
    """
    Build a job from project materials and add it to the queue.

    Raises:
        400: No main video, or duplicate single-instance materials
        409: Output already queued, or queue busy
    """
    render_queue = request.app.state.render_queue
    try:
        job = build_render_job(
            body.materials,
            body.preset_name,
            body.logo,
            output_folder=body.output_folder,
            title=body.title,
        )
        job.output_path = body.output_path
        job.gpu_acceleration = body.gpu_acceleration
        job.shutdown_when_completed = body.shutdown_when_completed
        return render_queue.enqueue(job)
    except _DOMAIN_ERRORS as e:
        raise _http_error(e)


@router.get("/jobs/{job_id}", response_model=RenderJob)
async def get_job_endpoint(job_id: str, request: Request):
    try:
        return request.app.state.render_queue.get(job_id)
    except _DOMAIN_ERRORS as e:
        raise _http_error(e)


@router.patch("/jobs/{job_id}", response_model=RenderJob)
async def update_job_endpoint(job_id: str, body: UpdateJobRequest, request: Request):
    try:
        return request.app.state.render_queue.update_job(
            job_id,
            output_path=body.output_path,
            preset_name=body.preset_name,
            gpu_acceleration=body.gpu_acceleration,
            title=body.title,
        )
    except _DOMAIN_ERRORS as e:
        raise _http_error(e)


@router.delete("/jobs/{job_id}", response_model=OperationResponse)
async def remove_job_endpoint(job_id: str, request: Request):
    try:
        request.app.state.render_queue.remove(job_id)
    except _DOMAIN_ERRORS as e:
        raise _http_error(e)
    return OperationResponse(success=True, message=f"Job removed: {job_id}")


@router.post("/jobs/{job_id}/move", response_model=List[RenderJob])
async def move_job_endpoint(job_id: str, body: MoveJobRequest, request: Request):
    try:
        return request.app.state.render_queue.move(job_id, body.position)
    except _DOMAIN_ERRORS as e:
        raise _http_error(e)


@router.post("/jobs/{job_id}/reset", response_model=RenderJob)
async def reset_job_endpoint(job_id: str, request: Request):
    """Re-queue a Failed or Cancelled job."""
    try:
        return request.app.state.render_queue.reset_job(job_id)
    except _DOMAIN_ERRORS as e:
        raise _http_error(e)


@router.get("/jobs/{job_id}/plan", response_model=PlanResponse)
async def plan_job_endpoint(job_id: str, request: Request):
    """
    Compile a job's encode plan without running it.

    Raises:
        400: Missing main video or output path
        404: Job or preset not found
    """
    render_queue = request.app.state.render_queue
    try:
        job = render_queue.get(job_id)
        preset = render_queue.preset_store.load(job.preset_name)
        executor = render_queue.executor
        plan = executor.prepare(job, preset)
    except _DOMAIN_ERRORS as e:
        raise _http_error(e)

    return PlanResponse(
        command=build_command(plan, preset, job, executor.ffmpeg_path),
        filter_graph=plan.filter_graph,
        total_duration=plan.total_duration,
        warnings=list(plan.warnings),
    )


@router.post("/clear", response_model=OperationResponse)
async def clear_queue_endpoint(request: Request):
    try:
        removed = request.app.state.render_queue.clear()
    except _DOMAIN_ERRORS as e:
        raise _http_error(e)
    logger.info(f"Queue cleared: {removed} jobs removed")
    return OperationResponse(success=True, message=f"Queue cleared: {removed} jobs removed")


@router.post("/shutdown", response_model=OperationResponse)
async def shutdown_option_endpoint(body: ShutdownRequest, request: Request):
    try:
        request.app.state.render_queue.set_shutdown_when_completed(body.enabled)
    except _DOMAIN_ERRORS as e:
        raise _http_error(e)
    state = "enabled" if body.enabled else "disabled"
    return OperationResponse(success=True, message=f"Shutdown when completed {state}")


@router.post("/start", response_model=OperationResponse)
async def start_queue_endpoint(request: Request):
    """Start processing Pending jobs on a background thread."""
    try:
        request.app.state.render_queue.start()
    except _DOMAIN_ERRORS as e:
        raise _http_error(e)
    return OperationResponse(success=True, message="Queue processing started")


@router.post("/cancel", response_model=OperationResponse)
async def cancel_queue_endpoint(request: Request):
    if not request.app.state.render_queue.cancel():
        return OperationResponse(success=False, message="Queue is not processing")
    return OperationResponse(success=True, message="Cancellation requested")


@router.get("/progress", response_model=QueueProgress)
async def queue_progress_endpoint(request: Request):
    return request.app.state.render_queue.progress()
