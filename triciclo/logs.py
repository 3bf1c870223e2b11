"""Debug log setup for the terminal app and CLI."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from triciclo.config import LOG_PATH

LOGGER_NAME = "triciclo"


class _IsoFormatter(logging.Formatter):
    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return datetime.fromtimestamp(record.created, timezone.utc).isoformat()


def configure_logging(path: str | Path | None = None, level: int = logging.DEBUG) -> logging.Logger:
    """Attach a file handler to the package logger once and return it."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    if any(getattr(handler, "_triciclo", False) for handler in logger.handlers):
        return logger

    log_file = Path(path or LOG_PATH)
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError:
        # An unwritable log location must not stop the app.
        handler = logging.NullHandler()
    handler.setFormatter(_IsoFormatter("%(asctime)s %(name)s %(message)s"))
    handler._triciclo = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = False
    return logger
