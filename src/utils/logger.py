"""Logging infrastructure for the CulinAI recipe pipeline.

Every module logs through `logger` (or a child from get_logger) so that one
environment switch changes the output for the whole pipeline:
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- LOG_TYPE: text, json (default: text)

Pipeline code may attach `request_id`, `job_id` and `tier` through the
`extra=` argument; the JSON formatter emits them as top-level keys.
"""

import json
import logging
import os
import sys
from typing import Any

# Extra attributes copied from a LogRecord into JSON output when present
CONTEXT_FIELDS = ("request_id", "job_id", "tier")


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


class RichTextFormatter(logging.Formatter):
    """Colored single-line output for terminals."""

    LEVEL_STYLES = {
        "DEBUG": ("\033[36m", "🔍"),
        "INFO": ("\033[32m", "ℹ️"),
        "WARNING": ("\033[33m", "⚠️"),
        "ERROR": ("\033[31m", "❌"),
        "CRITICAL": ("\033[35m", "🔥"),
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Render `<icon> <time> <LEVEL> <logger> <message> [job=...]` in the level color."""
        color, icon = self.LEVEL_STYLES.get(record.levelname, (self.RESET, ""))
        timestamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")

        line = f"{icon} {timestamp} {record.levelname:<8} {record.name:<20} {record.getMessage()}"
        context = " ".join(
            f"{field}={getattr(record, field)}"
            for field in CONTEXT_FIELDS
            if getattr(record, field, None) is not None
        )
        if context:
            line = f"{line} [{context}]"

        text = f"{color}{line}{self.RESET}"
        if record.exc_info:
            text += f"\n{self.formatException(record.exc_info)}"
        return text


def get_logger(name: str) -> logging.Logger:
    """Create and configure logger instance.

    Args:
        name: Logger name, typically "culinai" or a dotted child of it.

    Returns:
        Configured logger instance. Calling again with the same name returns
        the same logger without stacking handlers.
    """
    instance = logging.getLogger(name)
    if instance.handlers:
        return instance

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    formatter = JSONFormatter() if os.getenv("LOG_TYPE", "text").lower() == "json" else RichTextFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)

    instance.setLevel(level)
    instance.addHandler(handler)
    return instance


# Create module-level logger instance
logger = get_logger("culinai")

# aiohttp logs every connection at INFO/DEBUG
logging.getLogger("aiohttp").setLevel(logging.WARNING)
