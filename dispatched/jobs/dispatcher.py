"""Single-attempt webhook dispatcher.

One call to ``dispatch`` performs exactly one delivery attempt for one job:

  1. Re-read the job; abort without sending unless it is still QUEUED.
  2. Mark it DISPATCHED.
  3. POST the envelope to the forward URL with the bearer secret.
  4. 2xx -> COMPLETED, anything else (status or transport error) -> FAILED.

There is no retry. A cancel that lands after step 1 does not stop the send, and
the outcome written in step 4 replaces the CANCELLED record.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from dispatched.config import ENVELOPE_ATTEMPT_NUMBER
from dispatched.exceptions import DeliveryFailure, JobNotFoundError
from dispatched.integrations.base import WebhookTransport, webhook_headers
from dispatched.jobs.job import Job
from dispatched.jobs.store import JobStore
from dispatched.models.enums import JobStatus
from dispatched.models.schemas.jobs import WebhookEnvelope
from dispatched.utils import get_logger, log_business_event
from dispatched.utils.observability import new_id
from dispatched.utils.time import format_elapsed, utc_now

logger = get_logger(__name__)


class Dispatcher:
    def __init__(self, store: JobStore, transport: WebhookTransport, *, forward_url: str, webhook_secret: str):
        self.store = store
        self.transport = transport
        self.forward_url = forward_url
        self._headers = webhook_headers(webhook_secret)
        self._inflight: set[asyncio.Task] = set()

    def build_envelope(self, job: Job) -> WebhookEnvelope:
        return WebhookEnvelope(
            job_id=job.id,
            attempt_id=new_id(),
            attempt_number=ENVELOPE_ATTEMPT_NUMBER,
            status=JobStatus.DISPATCHED,
            payload=job.payload,
        )

    async def dispatch(self, job: Job) -> Optional[Job]:
        """Run one delivery attempt. Returns the final record, or None if skipped."""
        try:
            current = self.store.get(job.id)
        except JobNotFoundError:
            logger.warning("Dispatch skipped, job no longer exists", job_id=job.id)
            return None
        if current.status is not JobStatus.QUEUED:
            logger.info("Dispatch skipped, job not queued", job_id=job.id, status=current.status.value)
            return None

        dispatched = self.store.put(current.with_status(JobStatus.DISPATCHED))
        envelope = self.build_envelope(dispatched)
        body = envelope.model_dump(mode="json", by_alias=True)

        logger.info(
            "Sending webhook",
            job_id=job.id,
            attempt_id=envelope.attempt_id,
            forward_url=self.forward_url,
        )
        start = utc_now()
        try:
            result = await self.transport.post_json(self.forward_url, body, self._headers)
            if not result.ok:
                raise DeliveryFailure(f"Forward URL responded with {result.status_code}", status_code=result.status_code)
        except DeliveryFailure as e:
            final = self.store.put(dispatched.with_status(JobStatus.FAILED))
            logger.warning(
                "Webhook delivery failed",
                job_id=job.id,
                attempt_id=envelope.attempt_id,
                error=e.message,
                response_status=e.response_status,
                elapsed=format_elapsed(start),
            )
            log_business_event("job_failed", {"attempt_id": envelope.attempt_id, "error": e.message}, job_id=job.id)
            return final

        final = self.store.put(dispatched.with_status(JobStatus.COMPLETED))
        logger.info(
            "Webhook delivered",
            job_id=job.id,
            attempt_id=envelope.attempt_id,
            response_status=result.status_code,
            response_body=result.body or None,
            elapsed=format_elapsed(start),
        )
        log_business_event("job_completed", {"attempt_id": envelope.attempt_id}, job_id=job.id)
        return final

    async def _run(self, job: Job) -> Optional[Job]:
        try:
            return await self.dispatch(job)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Unexpected fault inside the attempt; the job must not stay DISPATCHED.
            logger.error("Dispatch crashed", job_id=job.id, error=str(e), error_type=type(e).__name__, exc_info=True)
            try:
                current = self.store.get(job.id)
            except JobNotFoundError:
                return None
            if current.status is JobStatus.DISPATCHED:
                return self.store.put(current.with_status(JobStatus.FAILED))
            return current

    def spawn(self, job: Job) -> asyncio.Task:
        """Start a dispatch in the background and return its handle without awaiting it."""
        task = asyncio.get_running_loop().create_task(self._run(job), name=f"dispatch-{job.id}")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    async def drain(self) -> None:
        """Wait for every in-flight dispatch to finish."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)


__all__ = ["Dispatcher"]
