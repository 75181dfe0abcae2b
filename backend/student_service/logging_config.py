"""
Structured JSON logging configuration.

Every log line is a single JSON object on stdout with a channel
(http, store, summary), the current request ID and any business
context attached by the caller.
"""

import logging
import json
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

from student_service.config import LOG_LEVEL

# ──────────────────────────────────────────────────────────────
# Request ID for the HTTP request currently being served.
# Set by the request middleware, read by the formatter.
# ──────────────────────────────────────────────────────────────
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

CHANNELS = ["http", "store", "summary"]


class StructuredJsonFormatter(logging.Formatter):
    """Render a record as one JSON line: timestamp, level, message, channel
    (http, store or summary), context with the request ID and student_id, and
    extra metadata such as duration_ms or status_code."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
            "channel": getattr(record, "channel", record.name.split(".")[-1] if "." in record.name else "app"),
            "context": {
                "request_id": request_id_var.get(""),
                **(getattr(record, "context", {}) or {})
            },
            "extra": getattr(record, "extra_data", {}) or {}
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging():
    """
    Configure the root logger and the channel loggers.

    All output goes to a single stdout handler using the JSON formatter.
    """
    formatter = StructuredJsonFormatter()

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    level = getattr(logging, LOG_LEVEL, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Channel loggers inherit the root handler; distinct names let
    # entries be filtered by channel
    for channel in CHANNELS:
        logging.getLogger(f"student_service.{channel}").setLevel(level)

    return root_logger


def get_logger(channel: str) -> logging.Logger:
    """Get the logger for a channel (http, store, summary)."""
    return logging.getLogger(f"student_service.{channel}")


def log_with_context(logger: logging.Logger, level: str, message: str,
                     context: dict = None, extra_data: dict = None):
    """
    Emit a structured log entry with business context and extra metadata.

    Args:
        logger: The channel logger to use
        level: Log level string (INFO, WARNING, ERROR, DEBUG)
        message: Human-readable log message
        context: Business context dict (student_id, ...)
        extra_data: Additional metadata dict (duration_ms, status_code, ...)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.log(
        log_level,
        message,
        extra={"context": context or {}, "extra_data": extra_data or {}, "channel": logger.name.split(".")[-1]}
    )


def generate_request_id() -> str:
    """Generate a new UUID for request tracking."""
    return str(uuid.uuid4())
