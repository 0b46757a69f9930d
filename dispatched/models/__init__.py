from .enums import JobStatus

__all__ = ["JobStatus"]
