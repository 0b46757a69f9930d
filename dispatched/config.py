"""Core application configuration.

Process-wide defaults are module constants read from the environment so tests
can monkeypatch them; the values a running server actually uses are carried on
a ``ServerConfig`` instance built by the CLI (or ``ServerConfig.from_env``) and
injected into the application factory.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final, Optional
from urllib.parse import urlparse


def _env_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return float(raw)


# ------------------------------- Server ----------------------------------- #
DEFAULT_HOST: str = os.getenv("DISPATCHED_HOST", "127.0.0.1")
DEFAULT_PORT: int = int(os.getenv("DISPATCHED_PORT", "3100"))

# ------------------------------ Scheduling -------------------------------- #
# Seconds added to every job's scheduledFor before the scanner treats it as
# ready; simulates the latency of the hosted platform.
DEFAULT_SCHEDULED_DELAY: float = float(os.getenv("DISPATCHED_SCHEDULED_DELAY", "30"))

# Jobs due within this many seconds of "now" are dispatched at create/update
# time instead of waiting for the scanner. 0 means strictly scheduledFor <= now.
DEFAULT_DISPATCH_LOOKAHEAD: float = float(os.getenv("DISPATCHED_DISPATCH_LOOKAHEAD", "0"))

# Scanner cadence is fixed, not user configurable.
SCANNER_TICK_SECONDS: Final[float] = 1.0

# ------------------------------- Delivery --------------------------------- #
# None defers to aiohttp's own session timeout.
DEFAULT_FORWARD_TIMEOUT: float | None = _env_float("DISPATCHED_FORWARD_TIMEOUT")

ENVELOPE_ATTEMPT_NUMBER: Final[int] = 1
USER_AGENT: Final[str] = "dispatched-local/1.0"

# -------------------------------- Logging --------------------------------- #
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE: str | None = os.getenv("LOG_FILE") or None

SECRET_PREVIEW_CHARS: Final[int] = 6


@dataclass(frozen=True)
class ServerConfig:
    """Validated runtime settings for one server process."""

    webhook_secret: str
    forward_url: str
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    scheduled_delay: float = DEFAULT_SCHEDULED_DELAY
    dispatch_lookahead: float = DEFAULT_DISPATCH_LOOKAHEAD
    forward_timeout: Optional[float] = DEFAULT_FORWARD_TIMEOUT

    def __post_init__(self) -> None:
        if not self.webhook_secret:
            raise ValueError("webhook secret is required")
        parsed = urlparse(self.forward_url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"forward URL must be an absolute http(s) URL, got {self.forward_url!r}")
        if not 0 < self.port < 65536:
            raise ValueError(f"port out of range: {self.port}")
        if self.scheduled_delay < 0:
            raise ValueError("scheduled delay cannot be negative")
        if self.dispatch_lookahead < 0:
            raise ValueError("dispatch lookahead cannot be negative")
        if self.forward_timeout is not None and self.forward_timeout <= 0:
            raise ValueError("forward timeout must be positive")

    @classmethod
    def from_env(cls) -> "ServerConfig":
        return cls(
            webhook_secret=os.getenv("DISPATCHED_SECRET", ""),
            forward_url=os.getenv("DISPATCHED_FORWARD_URL", ""),
            port=DEFAULT_PORT,
            host=DEFAULT_HOST,
            scheduled_delay=DEFAULT_SCHEDULED_DELAY,
            dispatch_lookahead=DEFAULT_DISPATCH_LOOKAHEAD,
            forward_timeout=DEFAULT_FORWARD_TIMEOUT,
        )

    def masked_secret(self) -> str:
        return f"{self.webhook_secret[:SECRET_PREVIEW_CHARS]}..."

    def summary(self) -> dict:
        """Loggable view of the settings (secret masked)."""
        return {
            "forward_url": self.forward_url,
            "port": self.port,
            "host": self.host,
            "scheduled_delay": self.scheduled_delay,
            "dispatch_lookahead": self.dispatch_lookahead,
            "forward_timeout": self.forward_timeout,
            "secret": self.masked_secret(),
        }


__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "DEFAULT_SCHEDULED_DELAY",
    "DEFAULT_DISPATCH_LOOKAHEAD",
    "SCANNER_TICK_SECONDS",
    "DEFAULT_FORWARD_TIMEOUT",
    "ENVELOPE_ATTEMPT_NUMBER",
    "USER_AGENT",
    "LOG_LEVEL",
    "LOG_FILE",
    "ServerConfig",
]
