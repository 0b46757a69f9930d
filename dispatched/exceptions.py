"""Domain errors raised by the job lifecycle core.

Each carries the HTTP status and error code the request layer reports, so the
exception handler in ``dispatched.main`` needs no per-type branching.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class DispatchedError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class JobNotFoundError(DispatchedError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, job_id: str):
        super().__init__("Job not found", details={"job_id": job_id})
        self.job_id = job_id


class InvalidStateError(DispatchedError):
    status_code = 400
    code = "INVALID_STATE"

    def __init__(self, message: str, *, job_id: str, status: str, required: str):
        super().__init__(message, details={"job_id": job_id, "status": status, "required_status": required})


class InvalidRequestError(DispatchedError):
    status_code = 400
    code = "INVALID_REQUEST"


class DeliveryFailure(DispatchedError):
    """Outbound attempt did not succeed. Recorded on the job, never returned to the submitter."""

    code = "DELIVERY_FAILED"

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message, details={"response_status": status_code} if status_code is not None else None)
        self.response_status = status_code


__all__ = [
    "DispatchedError",
    "JobNotFoundError",
    "InvalidStateError",
    "InvalidRequestError",
    "DeliveryFailure",
]
