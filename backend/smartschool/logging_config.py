"""
Structured JSON logging for the records service.

Every log line is a single JSON object on stdout with a channel
(http, db, import, transcript, attendance, insight), the current request ID
and any business context (student_id, file name, semester) attached by the
caller through log_with_context().
"""

import logging
import json
import os
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

# Request ID of the HTTP request being served; empty outside a request.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CHANNELS = ("http", "db", "import", "transcript", "attendance", "insight")


class StructuredJsonFormatter(logging.Formatter):
    """
    Formats a LogRecord as one JSON object.

    Fields: timestamp (UTC, millisecond precision), level, message, channel,
    context (request_id plus caller context) and extra (timings, counts).
    """

    def format(self, record: logging.LogRecord) -> str:
        channel = getattr(record, "channel", None)
        if not channel:
            channel = record.name.split(".")[-1] if "." in record.name else "app"

        log_entry = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
            "channel": channel,
            "context": {
                "request_id": request_id_var.get(""),
                **(getattr(record, "context", {}) or {})
            },
            "extra": getattr(record, "extra_data", {}) or {}
        }
        if record.exc_info:
            log_entry["extra"]["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging(level: str = None):
    """
    Install the JSON formatter on the root logger and register the channel
    loggers. Safe to call more than once; handlers are replaced, not stacked.
    """
    level_name = (level or LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredJsonFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    for channel in CHANNELS:
        logging.getLogger(f"smartschool.{channel}").setLevel(log_level)

    return root_logger


def get_logger(channel: str) -> logging.Logger:
    """Return the logger for a channel (http, db, import, ...)."""
    return logging.getLogger(f"smartschool.{channel}")


def log_with_context(logger: logging.Logger, level: str, message: str,
                     context: dict = None, extra_data: dict = None,
                     exc_info: bool = False):
    """
    Emit a structured entry on a channel logger.

    Args:
        logger: Channel logger from get_logger()
        level: Level name (DEBUG, INFO, WARNING, ERROR)
        message: Human-readable message
        context: Business identifiers (student_id, file, semester)
        extra_data: Metadata such as duration_ms or counts
        exc_info: Attach the active exception traceback
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.log(
        log_level,
        message,
        exc_info=exc_info,
        extra={
            "context": context or {},
            "extra_data": extra_data or {},
            "channel": logger.name.split(".")[-1]
        }
    )


def generate_request_id() -> str:
    return str(uuid.uuid4())
