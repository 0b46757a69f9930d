"""
Pydantic schemas for the job API and the outbound webhook envelope.
Wire format uses camelCase; Python attributes stay snake_case.
"""
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from dispatched.jobs.job import Job
from dispatched.models.enums import JobStatus
from dispatched.utils.time import isoformat_z

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class JobCreate(CamelModel):
    """
    Body of POST /api/jobs/dispatch.
    """
    scheduled_for: Optional[datetime] = Field(None, description="Earliest delivery time; defaults to now")
    payload: Any = Field(default_factory=dict, description="Opaque data forwarded unmodified")

class JobUpdate(CamelModel):
    """
    Body of PATCH /api/jobs/{job_id}.

    ``scheduled_for`` is optional at the schema level so a missing value is
    reported as an invalid request by the service rather than a 422.
    """
    scheduled_for: Optional[datetime] = None

class JobRead(CamelModel):
    id: str
    status: JobStatus
    scheduled_for: datetime
    payload: Any = None
    created_at: datetime

    @field_serializer("scheduled_for", "created_at")
    def _serialize_timestamp(self, value: datetime) -> str:
        return isoformat_z(value)

    @classmethod
    def from_job(cls, job: Job) -> "JobRead":
        return cls(
            id=job.id,
            status=job.status,
            scheduled_for=job.scheduled_for,
            payload=job.payload,
            created_at=job.created_at,
        )

class WebhookEnvelope(CamelModel):
    """Body POSTed to the forward URL for one delivery attempt."""
    job_id: str
    attempt_id: str
    attempt_number: int = 1
    status: JobStatus = JobStatus.DISPATCHED
    payload: Any = None
