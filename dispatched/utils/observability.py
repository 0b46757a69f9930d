"""Observability helpers (correlation IDs)."""
from __future__ import annotations
import uuid
from typing import Mapping

REQUEST_ID_HEADER = "X-Request-ID"

def ensure_request_id(headers: Mapping[str, str]) -> str:
    return headers.get(REQUEST_ID_HEADER, None) or str(uuid.uuid4())

def new_id() -> str:
    """Opaque random identifier for jobs and delivery attempts."""
    return uuid.uuid4().hex

__all__ = ["ensure_request_id", "new_id", "REQUEST_ID_HEADER"]
