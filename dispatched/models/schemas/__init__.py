from .base import ErrorResponse
from .jobs import JobCreate, JobUpdate, JobRead, WebhookEnvelope

__all__ = ["ErrorResponse", "JobCreate", "JobUpdate", "JobRead", "WebhookEnvelope"]
