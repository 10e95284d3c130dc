"""Logging helpers."""

from __future__ import annotations

import functools
import logging
from typing import Callable, Optional

LogCallback = Callable[[str], None]


class _LevelColorFormatter(logging.Formatter):
    """Formatter that colors the level name and omits timestamps."""

    _LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",  # Cyan
        logging.INFO: "\033[32m",  # Green
        logging.WARNING: "\033[33m",  # Yellow
        logging.ERROR: "\033[31m",  # Red
        logging.CRITICAL: "\033[35m",  # Magenta
    }
    _RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        original_levelname = record.levelname
        color_prefix = self._LEVEL_COLORS.get(record.levelno, "")
        if color_prefix:
            record.levelname = f"{color_prefix}{record.levelname}{self._RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original_levelname


def configure_logging(level: int = logging.INFO) -> None:
    """Configure application logging with colored level names."""

    handler = logging.StreamHandler()
    handler.setFormatter(_LevelColorFormatter("%(levelname)s %(name)s: %(message)s"))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)


def log_callback(logger: logging.Logger, level: int = logging.INFO) -> LogCallback:
    """Adapt ``logger`` into a plain ``(message) -> None`` trace callback."""

    return functools.partial(logger.log, level)


def trace(
    logger: logging.Logger,
    log: Optional[LogCallback],
    level: int,
    message: str,
) -> None:
    """Write ``message`` to ``logger`` and forward it to the optional callback.

    The callback is a human-readable side channel for callers such as a
    terminal view; failures inside it are the caller's problem and are not
    masked here.
    """

    logger.log(level, message)
    if log is not None:
        log(message)
