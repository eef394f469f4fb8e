"""Logging setup for the game engine.

Every module logs through ``logging.getLogger(__name__)``, so all game
logs sit under the ``dumpglory`` logger. Call ``configure_logging`` once
at startup; library code never installs handlers itself.

Levels in use:
- DEBUG: individual transfers, thefts and stakes
- INFO: epoch transitions, buybacks, bounty workflow
- WARNING: rejected operations, emergency pause, degraded persistence
"""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

ROOT_LOGGER = "dumpglory"


@dataclass(frozen=True)
class LoggingOptions:
    level: str = "INFO"
    format: str = "text"  # text | json
    file: Optional[str] = None


class JSONFormatter(logging.Formatter):
    """One JSON object per line; ``extra={"context": {...}}`` is carried through."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if context is not None:
            payload["context"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        # Amounts are large ints; default=str covers enums and anything else
        return json.dumps(payload, default=str)


def _normalize_level(level: str) -> str:
    return level.strip().upper()


def _normalize_format(fmt: str) -> str:
    lowered = fmt.strip().lower()
    if lowered in {"text", "json"}:
        return lowered
    raise ValueError(f"Invalid log format: {fmt}")


def load_logging_options_from_env() -> LoggingOptions:
    """Load logging options from environment.

    Env vars:
        - DUMPGLORY_LOG_LEVEL
        - DUMPGLORY_LOG_FORMAT
        - DUMPGLORY_LOG_FILE
    """
    return LoggingOptions(
        level=os.getenv("DUMPGLORY_LOG_LEVEL", "INFO"),
        format=os.getenv("DUMPGLORY_LOG_FORMAT", "text"),
        file=os.getenv("DUMPGLORY_LOG_FILE"),
    )


def _formatter(fmt: str, with_time: bool) -> logging.Formatter:
    if fmt == "json":
        return JSONFormatter()
    if with_time:
        return logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    return logging.Formatter("%(levelname)s %(name)s: %(message)s")


def configure_logging(options: LoggingOptions) -> logging.Logger:
    """Configure the ``dumpglory`` logger hierarchy.

    Logs go to stderr, plus a rotating file when ``options.file`` is set.
    Reconfiguring replaces the previous handlers. Raises ValueError for
    an unknown format.
    """
    fmt = _normalize_format(options.format)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, _normalize_level(options.level), logging.INFO))

    logger.handlers.clear()
    logger.propagate = False

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_formatter(fmt, with_time=False))
    logger.addHandler(handler)

    if options.file:
        file_handler = RotatingFileHandler(
            options.file,
            maxBytes=10 * 1024 * 1024,
            backupCount=3,
        )
        file_handler.setFormatter(_formatter(fmt, with_time=True))
        logger.addHandler(file_handler)

    return logger
