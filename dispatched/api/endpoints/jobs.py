"""
Job endpoints: create, get, reschedule, cancel.
"""
import time
from typing import Optional
from fastapi import APIRouter, Depends, status
from dispatched.api.deps import get_job_service, get_request_id
from dispatched.jobs.service import JobService
from dispatched.models.schemas.base import ErrorResponse
from dispatched.models.schemas.jobs import JobCreate, JobRead, JobUpdate
from dispatched.utils import get_logger, log_performance

router = APIRouter()
logger = get_logger(__name__)

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid state or request"},
    404: {"model": ErrorResponse, "description": "Job not found"},
}

@router.post(
    "/dispatch",
    response_model=JobRead,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create a job"
)
async def create_job(
    job_in: JobCreate,
    service: JobService = Depends(get_job_service),
    request_id: str = Depends(get_request_id),
) -> JobRead:
    """Create a QUEUED job.

    Jobs whose ``scheduledFor`` is omitted or already due are dispatched right
    away; the response reflects the job as of the moment it is built, which is
    usually still ``QUEUED``.
    """
    start_time = time.time()
    logger.info(
        "Job received",
        scheduled_for=job_in.scheduled_for.isoformat() if job_in.scheduled_for else None,
        request_id=request_id
    )
    job = await service.create(job_in.payload, job_in.scheduled_for, request_id=request_id)
    log_performance(
        operation="create_job",
        duration_ms=(time.time() - start_time) * 1000,
        additional_data={"job_id": job.id}
    )
    return JobRead.from_job(job)

@router.get(
    "/{job_id}",
    response_model=JobRead,
    response_model_by_alias=True,
    responses={404: _ERROR_RESPONSES[404]},
    summary="Get a job"
)
async def get_job(
    job_id: str,
    service: JobService = Depends(get_job_service),
) -> JobRead:
    return JobRead.from_job(service.get(job_id))

@router.patch(
    "/{job_id}",
    response_model=JobRead,
    response_model_by_alias=True,
    responses=_ERROR_RESPONSES,
    summary="Reschedule a queued job"
)
async def update_job(
    job_id: str,
    job_update: Optional[JobUpdate] = None,
    service: JobService = Depends(get_job_service),
    request_id: str = Depends(get_request_id),
) -> JobRead:
    """Move a QUEUED job's ``scheduledFor``. A time that is already due triggers dispatch immediately."""
    scheduled_for = job_update.scheduled_for if job_update is not None else None
    job = await service.update(job_id, scheduled_for, request_id=request_id)
    logger.info("Job rescheduled", job_id=job_id, scheduled_for=job.scheduled_for.isoformat(), request_id=request_id)
    return JobRead.from_job(job)

@router.delete(
    "/{job_id}",
    response_model=JobRead,
    response_model_by_alias=True,
    responses=_ERROR_RESPONSES,
    summary="Cancel a queued job"
)
async def cancel_job(
    job_id: str,
    service: JobService = Depends(get_job_service),
    request_id: str = Depends(get_request_id),
) -> JobRead:
    job = service.cancel(job_id, request_id=request_id)
    logger.info("Job cancelled", job_id=job_id, request_id=request_id)
    return JobRead.from_job(job)
