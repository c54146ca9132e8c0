"""Structured JSON logging.

Each line carries the request's correlation id and the active UI language
when they are set, plus any of ``LOG_EXTRA_KEYS`` passed through ``extra=``.
"""
import logging
import json
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

from app.config import settings
from app.core.locale import language_var

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Keys the services attach to upstream fetch and search log records.
LOG_EXTRA_KEYS = ("url", "status", "page", "total", "duration")


def set_correlation_id(request_id: Optional[str] = None) -> str:
    """Set correlation ID for the current context. Returns the ID."""
    cid = request_id or str(uuid.uuid4())
    correlation_id_var.set(cid)
    return cid


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }

        cid = correlation_id_var.get("")
        if cid:
            log_entry["correlation_id"] = cid
        language = language_var.get("")
        if language:
            log_entry["language"] = language

        for key in LOG_EXTRA_KEYS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False)


def setup_logging() -> None:
    """Send JSON logs to stdout at the configured level."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    for noisy in ("urllib3", "httpx", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
