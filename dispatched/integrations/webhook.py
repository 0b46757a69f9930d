"""
aiohttp-backed webhook transport.
Performs a single JSON POST per call; retries, if ever wanted, belong to the caller.
"""
import asyncio
import json
from typing import Any, Dict, Optional

import aiohttp

from dispatched.config import USER_AGENT
from dispatched.exceptions import DeliveryFailure
from dispatched.integrations.base import DeliveryResult, WebhookTransport
from dispatched.utils import get_logger

logger = get_logger(__name__)

# Response bodies are only kept for logging; cap what we read.
MAX_LOGGED_BODY_CHARS = 2048


class AiohttpWebhookTransport(WebhookTransport):
    """Webhook transport using one shared ``aiohttp.ClientSession``."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        # Sessions bind to the running loop, so create lazily on first use.
        if self._session is None or self._session.closed:
            kwargs: Dict[str, Any] = {"headers": {"User-Agent": USER_AGENT}}
            if self.timeout is not None:
                kwargs["timeout"] = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(**kwargs)
        return self._session

    async def post_json(self, url: str, body: Dict[str, Any], headers: Dict[str, str]) -> DeliveryResult:
        session = self._get_session()
        logger.debug("Sending webhook", url=url, job_id=body.get("jobId"), attempt_id=body.get("attemptId"))
        try:
            async with session.post(url, data=json.dumps(body), headers=headers) as response:
                text = await response.text()
                return DeliveryResult(status_code=response.status, body=text[:MAX_LOGGED_BODY_CHARS])
        except asyncio.TimeoutError:
            logger.warning("Webhook request timed out", url=url, timeout=self.timeout)
            raise DeliveryFailure("Webhook request timed out")
        except aiohttp.ClientError as e:
            logger.warning("Webhook client error", url=url, error=str(e))
            raise DeliveryFailure(f"Webhook client error: {str(e)}")

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


__all__ = ["AiohttpWebhookTransport"]
