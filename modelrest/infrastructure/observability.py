"""Structured Logging — JSON formatter and setup for host applications.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (model, operation, error_code, path, status_code) surfaced when present
    - setup_logging() is opt-in: importing modelrest never touches logging config
    - Level and format default to MODELREST_LOG_LEVEL / MODELREST_LOG_FORMAT;
      explicit arguments win

Design Decisions:
    - JSONFormatter over third-party libs: zero dependencies, full control
    - Library modules only call logging.getLogger(__name__); the host decides handlers
"""

import json
import logging
from datetime import datetime, timezone

from modelrest.config import get_settings

_EXTRA_FIELDS = ("model", "operation", "error_code", "path", "status_code")

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, CRUD context fields included."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log.update({
            key: record.__dict__[key]
            for key in _EXTRA_FIELDS
            if record.__dict__.get(key) is not None
        })
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str | None = None, fmt: str | None = None) -> logging.Handler:
    """Install a root handler; returns it so callers (and tests) can remove it."""
    settings = get_settings()
    level = level or settings.log_level
    fmt = fmt or settings.log_format

    handler = logging.StreamHandler()
    handler.setFormatter(
        JSONFormatter() if fmt == "json" else logging.Formatter(_TEXT_FORMAT),
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger("modelrest").debug(
        f"Logging configured: level={level.upper()} format={fmt}",
    )
    return handler
