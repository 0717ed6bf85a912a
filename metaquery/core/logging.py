"""Centralized logging configuration.

Log records are structured as ``{level, timestamp, message, context?}``.
Call sites attach context with ``extra={"context": {...}}``.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from metaquery.core.config import settings

# The sink speaks INFO / WARN / ERROR
_LEVEL_NAMES = {"WARNING": "WARN", "CRITICAL": "ERROR"}


def build_log_entry(level: str, message: str, context: dict[str, Any] | None = None) -> dict[str, Any]:
    """Construct one structured log record. Pure apart from reading the clock."""
    entry: dict[str, Any] = {
        "level": _LEVEL_NAMES.get(level, level),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "message": message,
    }
    if context:
        entry["context"] = context
    return entry


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter for production."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = build_log_entry(record.levelname, record.getMessage(), getattr(record, "context", None))
        log_data["logger"] = record.name
        if record.exc_info and record.exc_info[1]:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter that appends the context map, if any."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = getattr(record, "context", None)
        if context:
            line = f"{line} | {json.dumps(context, ensure_ascii=False, default=str)}"
        return line


def setup_logging() -> None:
    """Configure logging for the entire application."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    if settings.log_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            TextFormatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root.addHandler(handler)

    # Suppress noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
