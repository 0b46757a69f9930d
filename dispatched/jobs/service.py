"""Job intake and update control.

Entry point for the four request-layer operations. Writes go to the store;
jobs that are already due are handed to the dispatcher as fire-and-forget
tasks, everything else waits for the readiness scanner.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

from dispatched.exceptions import InvalidRequestError, InvalidStateError
from dispatched.jobs.dispatcher import Dispatcher
from dispatched.jobs.job import Job
from dispatched.jobs.store import JobStore
from dispatched.models.enums import JobStatus
from dispatched.utils import get_logger, log_business_event
from dispatched.utils.time import utc_now

logger = get_logger(__name__)


class JobService:
    def __init__(
        self,
        store: JobStore,
        dispatcher: Dispatcher,
        *,
        dispatch_lookahead: float = 0.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.dispatch_lookahead = dispatch_lookahead
        self.clock = clock

    def _dispatch_if_due(self, job: Job, now: datetime) -> bool:
        if not job.is_due(now, self.dispatch_lookahead):
            return False
        self.dispatcher.spawn(job)
        logger.info("Job due, dispatching immediately", job_id=job.id, scheduled_for=job.scheduled_for.isoformat())
        return True

    def _require_queued(self, job: Job, action: str) -> None:
        if job.status is not JobStatus.QUEUED:
            raise InvalidStateError(
                f"Job can only be {action} when status is QUEUED",
                job_id=job.id,
                status=job.status.value,
                required=JobStatus.QUEUED.value,
            )

    async def create(self, payload: Any, scheduled_for: Optional[datetime] = None, *, request_id: Optional[str] = None) -> Job:
        """Store a new QUEUED job and start delivery right away if it is already due.

        Must be called on the event loop. The returned record is the state at
        return time; an immediate dispatch has been scheduled but not awaited.
        """
        now = self.clock()
        job = self.store.put(Job.new(payload, scheduled_for, now=now))
        log_business_event(
            "job_created",
            {"scheduled_for": job.scheduled_for.isoformat()},
            job_id=job.id,
            request_id=request_id,
        )
        if not self._dispatch_if_due(job, now):
            logger.info("Job deferred to scanner", job_id=job.id, scheduled_for=job.scheduled_for.isoformat())
        return self.store.get(job.id)

    def get(self, job_id: str) -> Job:
        return self.store.get(job_id)

    async def update(self, job_id: str, scheduled_for: Optional[datetime], *, request_id: Optional[str] = None) -> Job:
        """Reschedule a QUEUED job. Returns the record before any triggered dispatch lands."""
        job = self.store.get(job_id)
        self._require_queued(job, "updated")
        if scheduled_for is None:
            raise InvalidRequestError("scheduledFor is required", details={"job_id": job_id, "field": "scheduledFor"})

        updated = self.store.put(job.rescheduled(scheduled_for))
        log_business_event(
            "job_rescheduled",
            {"previous": job.scheduled_for.isoformat(), "scheduled_for": updated.scheduled_for.isoformat()},
            job_id=job_id,
            request_id=request_id,
        )
        self._dispatch_if_due(updated, self.clock())
        return updated

    def cancel(self, job_id: str, *, request_id: Optional[str] = None) -> Job:
        job = self.store.get(job_id)
        self._require_queued(job, "cancelled")
        cancelled = self.store.put(job.with_status(JobStatus.CANCELLED))
        log_business_event("job_cancelled", {}, job_id=job_id, request_id=request_id)
        return cancelled


__all__ = ["JobService"]
