from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    """What the transport observed for one POST that got a response."""

    status_code: int
    body: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class WebhookTransport(ABC):
    @abstractmethod
    async def post_json(self, url: str, body: Dict[str, Any], headers: Dict[str, str]) -> DeliveryResult:
        """POST ``body`` as JSON. Raises DeliveryFailure on transport-level errors."""

    async def close(self) -> None:
        """Release pooled connections, if any."""
        return None


def webhook_headers(secret: str) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {secret}",
    }


__all__ = ["DeliveryResult", "WebhookTransport", "webhook_headers"]
