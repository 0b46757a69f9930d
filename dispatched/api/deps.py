"""
Dependencies for the request layer.
"""
from fastapi import HTTPException, Request
from dispatched.jobs.service import JobService
from dispatched.utils.observability import ensure_request_id

def get_job_service(request: Request) -> JobService:
    """
    Job service created by the application lifespan.

    Raises:
        HTTPException: 503 if the lifespan has not run (service not wired yet)
    """
    service = getattr(request.app.state, "job_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Job service not available")
    return service

def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or ensure_request_id(request.headers)
