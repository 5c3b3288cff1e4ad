"""Logging for the Boar agent: JSON lines, configured by the host process."""

import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import DEFAULT_LOG_PATH

LOGGER_NAME = "boar"

# Library default: stay silent until the host configures logging.
logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())


class JSONFormatter(logging.Formatter):
    """One JSON object per line; ``extra={"context": {...}}`` is carried over."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if context is not None:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def build_logging_config(level: str, log_file: str | None) -> dict[str, Any]:
    """dictConfig schema: stdout always, a rotating file when ``log_file`` is set."""
    handlers: dict[str, dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stdout",
        },
    }
    if log_file is not None:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,  # 10 MB
            "backupCount": 5,
            "formatter": "json",
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"json": {"()": JSONFormatter}},
        "handlers": handlers,
        "root": {"level": level.upper(), "handlers": list(handlers)},
    }


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    to_file: bool = True,
) -> None:
    """
    Install JSON logging on the root logger.

    Args:
        log_level: Defaults to the LOG_LEVEL env var, then INFO.
        log_file: Defaults to 04_logs/boar.log; ignored when to_file is False.
        to_file: Set to False to log to stdout only.
    """
    level = log_level or os.getenv("LOG_LEVEL", "INFO")

    target = None
    if to_file:
        target = log_file or str(DEFAULT_LOG_PATH)
        Path(target).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(build_logging_config(level, target))


def get_logger(name: str) -> logging.Logger:
    """Module logger, e.g. ``get_logger(__name__)``."""
    return logging.getLogger(name)
