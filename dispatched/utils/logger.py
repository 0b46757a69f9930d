"""
Logging for the dispatched server.

Console output is human readable with structured fields appended as key=value;
the optional log file gets one JSON object per line. Job lifecycle events go
to the ``dispatched.audit`` logger, request timings to ``dispatched.performance``.
"""
import logging
import logging.config
import json
import sys
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from pathlib import Path

# Logger name -> fixed level; None follows the configured level.
_MANAGED_LOGGERS: Dict[str, Optional[str]] = {
    "dispatched": None,
    "uvicorn": "INFO",
    "aiohttp.client": "WARNING",
}

_LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
_LOG_FILE_BACKUPS = 5


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, "extra_data", None) or {}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, structured fields merged at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(_extra_fields(record))
        return json.dumps(entry, ensure_ascii=False, default=str)


class KeyValueFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        fields = _extra_fields(record)
        if not fields:
            return base
        return base + " | " + " ".join(f"{k}={v}" for k, v in fields.items())


class StructuredLogger:
    """Thin wrapper so call sites pass context as keyword fields; ``None`` fields are dropped."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log_with_extra(self, level: int, message: str, exc_info: bool = False, **kwargs):
        fields = {k: v for k, v in kwargs.items() if v is not None}
        self.logger.log(level, message, exc_info=exc_info, extra={"extra_data": fields})

    def debug(self, message: str, **kwargs):
        self._log_with_extra(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log_with_extra(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log_with_extra(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log_with_extra(logging.ERROR, message, **kwargs)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True
) -> None:
    """
    Configure the server's loggers.

    Args:
        log_level: Level for the ``dispatched`` loggers and the root logger
        log_file: Optional path for rotating JSON output
        enable_console: Attach the stdout key=value handler
    """
    log_level = log_level.upper()
    handlers: Dict[str, Dict[str, Any]] = {}

    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "stream": sys.stdout,
            "formatter": "standard",
            "level": log_level,
        }
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": _LOG_FILE_MAX_BYTES,
            "backupCount": _LOG_FILE_BACKUPS,
            "formatter": "json",
            "level": log_level,
        }

    names = list(handlers)
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JSONFormatter},
            "standard": {
                "()": KeyValueFormatter,
                "fmt": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": handlers,
        "loggers": {
            name: {"level": level or log_level, "handlers": list(names), "propagate": False}
            for name, level in _MANAGED_LOGGERS.items()
        },
        "root": {"level": log_level, "handlers": list(names)},
    })


def get_logger(name: str) -> StructuredLogger:
    """Structured logger under the ``dispatched`` namespace."""
    if name == "dispatched" or name.startswith("dispatched."):
        return StructuredLogger(name)
    return StructuredLogger(f"dispatched.{name}")


def log_business_event(
    event_type: str,
    details: Dict[str, Any],
    job_id: Optional[str] = None,
    request_id: Optional[str] = None
) -> None:
    """Audit record for a job lifecycle transition (job_created, job_failed, ...)."""
    get_logger("audit").info(
        f"Business event: {event_type}",
        event_type=event_type,
        job_id=job_id,
        request_id=request_id,
        **details
    )


def log_performance(
    operation: str,
    duration_ms: float,
    additional_data: Optional[Dict[str, Any]] = None
) -> None:
    get_logger("performance").info(
        f"Performance: {operation}",
        operation=operation,
        duration_ms=round(duration_ms, 2),
        **(additional_data or {})
    )
