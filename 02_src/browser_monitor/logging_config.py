"""Structured logging for Browser Monitor.

Every line is one JSON object. Request-level context is passed through
``extra`` using the keys in ``CONTEXT_FIELDS`` and ends up under
``"context"``, e.g.::

    logger.error("Recorder failed: %s", e, extra={"request_id": request.id})
"""

import json
import logging
import logging.config
import logging.handlers
import os
from datetime import datetime, timezone
from pathlib import Path

from .config import DEFAULT_LOG_PATH

# Keys accepted in `extra=` and grouped under "context"
CONTEXT_FIELDS = ("request_id", "target", "endpoint", "event")

# Third-party loggers that are too chatty at DEBUG/INFO
QUIET_LOGGERS = ("websockets", "httpx", "httpcore", "aiosqlite")


def request_context(
    request_id: str | None = None,
    target: str | None = None,
    **fields,
) -> dict:
    """Build an ``extra`` mapping for a log call, skipping unset values."""
    fields.update(request_id=request_id, target=target)
    return {k: v for k, v in fields.items() if v is not None and k in CONTEXT_FIELDS}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with request context grouped."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        context = {
            name: getattr(record, name)
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        }
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Timestamps and enums in context are not JSON-native
        return json.dumps(log_data, default=str, ensure_ascii=False)


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
) -> None:
    """
    Configure JSON logging to a rotating file and stdout.

    Args:
        log_level: Root level. Defaults to LOG_LEVEL env var or INFO.
        log_file: Defaults to 04_logs/app.log.
    """
    log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_file = log_file or str(DEFAULT_LOG_PATH)
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {"()": "browser_monitor.logging_config.JSONFormatter"},
            },
            "handlers": {
                "file": {
                    "class": "logging.handlers.RotatingFileHandler",
                    "filename": log_file,
                    "maxBytes": 10 * 1024 * 1024,
                    "backupCount": 5,
                    "formatter": "json",
                    "encoding": "utf-8",
                },
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                    "stream": "ext://sys.stdout",
                },
            },
            "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
            "root": {"level": log_level, "handlers": ["file", "console"]},
        }
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance (typically for the module's __name__)."""
    return logging.getLogger(name)
