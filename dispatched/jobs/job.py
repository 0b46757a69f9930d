"""Job record held by the store.

Records are immutable; every state change produces a new record that replaces
the old one in the store in a single assignment.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Optional

from dispatched.models.enums import JobStatus
from dispatched.utils.observability import new_id
from dispatched.utils.time import ensure_utc, utc_now


@dataclass(frozen=True, slots=True)
class Job:
    id: str
    status: JobStatus
    scheduled_for: datetime
    payload: Any = None
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def new(cls, payload: Any, scheduled_for: Optional[datetime] = None, *, now: Optional[datetime] = None) -> "Job":
        created = now or utc_now()
        return cls(
            id=new_id(),
            status=JobStatus.QUEUED,
            scheduled_for=ensure_utc(scheduled_for) if scheduled_for is not None else created,
            payload={} if payload is None else payload,
            created_at=created,
        )

    def with_status(self, status: JobStatus) -> "Job":
        return replace(self, status=status)

    def rescheduled(self, scheduled_for: datetime) -> "Job":
        return replace(self, scheduled_for=ensure_utc(scheduled_for))

    def is_due(self, now: datetime, lookahead_seconds: float = 0.0) -> bool:
        return self.scheduled_for <= now + timedelta(seconds=lookahead_seconds)

    def is_ready(self, now: datetime, delay_seconds: float) -> bool:
        """scheduled_for + delay has elapsed. Shifts ``now`` so far-future schedules cannot overflow."""
        return self.scheduled_for <= now - timedelta(seconds=delay_seconds)


__all__ = ["Job"]
