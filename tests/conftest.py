import asyncio
import time
import pytest
from fastapi.testclient import TestClient

from dispatched.config import ServerConfig
from dispatched.exceptions import DeliveryFailure
from dispatched.integrations.base import DeliveryResult, WebhookTransport
from dispatched.jobs.dispatcher import Dispatcher
from dispatched.jobs.store import JobStore
from dispatched.main import create_app
from dispatched.models.enums import JobStatus

FORWARD_URL = "http://forward.test/webhook"
SECRET = "test-secret"


class RecordingTransport(WebhookTransport):
    """In-process transport double.

    ``status_code`` is returned for every call; ``error`` (if set) is raised as
    a transport failure instead. ``gate`` (an asyncio.Event created inside the
    running loop) holds every send until it is set.
    """

    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.error: str | None = None
        self.gate: asyncio.Event | None = None
        self.calls: list[dict] = []
        self.closed = False

    async def post_json(self, url, body, headers):
        self.calls.append({"url": url, "body": body, "headers": headers})
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise DeliveryFailure(self.error)
        return DeliveryResult(status_code=self.status_code, body="ok")

    async def close(self):
        self.closed = True


@pytest.fixture()
def transport():
    return RecordingTransport()


@pytest.fixture()
def store():
    return JobStore()


@pytest.fixture()
def dispatcher(store, transport):
    return Dispatcher(store, transport, forward_url=FORWARD_URL, webhook_secret=SECRET)


@pytest.fixture()
def server_config():
    # Large delay keeps the background scanner out of the way unless a test wants it.
    return ServerConfig(webhook_secret=SECRET, forward_url=FORWARD_URL, scheduled_delay=3600)


@pytest.fixture()
def app(server_config, transport):
    return create_app(server_config, transport=transport)


@pytest.fixture()
def client(app):
    # Context manager keeps the event loop (and lifespan) alive between requests,
    # so background dispatch tasks get to run.
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def wait_for_status(client):
    """Poll GET /api/jobs/{id} until the job reaches one of ``statuses``."""
    def _wait(job_id: str, statuses=(JobStatus.COMPLETED, JobStatus.FAILED), timeout: float = 3.0) -> dict:
        wanted = {s.value for s in statuses}
        deadline = time.time() + timeout
        while True:
            body = client.get(f"/api/jobs/{job_id}").json()
            if body["status"] in wanted or time.time() > deadline:
                return body
            time.sleep(0.02)
    return _wait
