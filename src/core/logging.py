"""
Application logging.

All loggers live under the ``trailsifter`` namespace so that one call to
``configure_logging`` routes core, extractor and GUI messages to the same
console stream and rotating log file. Timestamps are always UTC.
"""
from __future__ import annotations

import logging
import time
from logging import Logger
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOG_FILE_NAME = "trailsifter.log"
ROOT_LOGGER_NAME = "trailsifter"
LOG_FORMAT = "%(asctime)sZ %(levelname)s %(name)s %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


class UtcFormatter(logging.Formatter):
    converter = time.gmtime


class TaskLogAdapter(logging.LoggerAdapter):
    """Prefix every message with ``[task]`` for long-running operations."""

    def process(self, msg, kwargs):
        return f"[{self.extra['task']}] {msg}", kwargs


def parse_level(level: Union[int, str, None], default: int = logging.INFO) -> int:
    """Map a configured level ("debug", "WARNING", 10) to a logging constant."""
    if isinstance(level, int):
        return level
    if not level:
        return default
    value = logging.getLevelName(str(level).strip().upper())
    return value if isinstance(value, int) else default


def configure_logging(
    log_dir: Optional[Path],
    level: Union[int, str] = logging.INFO,
    max_bytes: int = 20 * 1024 * 1024,
    backup_count: int = 5,
    console: bool = True,
) -> Logger:
    """
    Install handlers on the application logger, replacing earlier ones.

    Args:
        log_dir: Folder for ``trailsifter.log``; None disables the file handler
        level: Level constant or name
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files to keep
        console: Also log to stderr

    Returns:
        The application logger
    """
    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    app_logger.setLevel(parse_level(level))
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    formatter = UtcFormatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers = []
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_dir / LOG_FILE_NAME,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        )
    if console:
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setFormatter(formatter)
        app_logger.addHandler(handler)

    if log_dir is not None:
        app_logger.debug(
            "Log file %s (rotates at %d bytes, keeps %d)",
            log_dir / LOG_FILE_NAME, max_bytes, backup_count,
        )
    return app_logger


def get_logger(name: Optional[str] = None) -> Logger:
    """Return ``trailsifter`` or one of its children."""
    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    return app_logger.getChild(name) if name else app_logger


def task_logger(task: str, name: Optional[str] = None) -> TaskLogAdapter:
    return TaskLogAdapter(get_logger(name), {"task": task})
