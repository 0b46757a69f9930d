"""In-memory job store (single-process, non-durable).

Holds the authoritative mapping of job id -> ``Job``. Python dicts keep
insertion order and replacing an existing key keeps its position, which gives
``list_ready`` its FIFO guarantee for free.

Thread-safe: request handlers run on the event loop while tests and the
health endpoint may read from other threads, so all access goes through one
re-entrant lock.
"""
from __future__ import annotations

import threading
from collections import Counter
from datetime import datetime

from dispatched.exceptions import JobNotFoundError
from dispatched.jobs.job import Job
from dispatched.models.enums import JobStatus
from dispatched.utils import get_logger

logger = get_logger(__name__)


class JobStore:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._jobs: dict[str, Job] = {}

    # ----------------------------- public API ----------------------------- #
    def get(self, job_id: str) -> Job:
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def put(self, job: Job) -> Job:
        with self._lock:
            previous = self._jobs.get(job.id)
            self._jobs[job.id] = job
        if previous is not None and previous.status != job.status:
            logger.debug("Job status changed", job_id=job.id, previous=previous.status.value, status=job.status.value)
        return job

    def list_ready(self, now: datetime, delay_seconds: float) -> list[Job]:
        """QUEUED jobs whose scheduled_for + delay has elapsed, in insertion order."""
        with self._lock:
            return [
                job
                for job in self._jobs.values()
                if job.status is JobStatus.QUEUED and job.is_ready(now, delay_seconds)
            ]

    # ----------------------------- test utilities ----------------------------- #
    def purge(self) -> None:
        """Drop every record. Intended for test isolation only."""
        with self._lock:
            self._jobs.clear()

    # ----------------------------- inspection ----------------------------- #
    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs

    def snapshot(self) -> dict:
        with self._lock:
            counts = Counter(job.status.value for job in self._jobs.values())
            return {
                "total": len(self._jobs),
                **{status.value.lower(): counts.get(status.value, 0) for status in JobStatus},
            }


__all__ = ["JobStore"]
