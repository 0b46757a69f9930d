"""Central Enum definitions for job lifecycle states."""
from __future__ import annotations
import enum


class JobStatus(str, enum.Enum):
    """QUEUED -> DISPATCHED -> COMPLETED | FAILED, or QUEUED -> CANCELLED."""
    QUEUED = "QUEUED"
    DISPATCHED = "DISPATCHED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


__all__ = ["JobStatus"]
