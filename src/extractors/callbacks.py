"""
Progress, log and cancellation hooks passed into archive extraction.

The scanner reports one ``on_progress`` per visited index entry, so
``current`` is the entry's position in the central directory and ``total``
is the directory size (directories and non-matching entries included).
Cancellation is polled before each entry.
"""
from __future__ import annotations

from typing import Protocol

from core.logging import parse_level, task_logger


class ExtractorCallbacks(Protocol):
    """Hooks an extraction call reports through; all methods must be cheap."""

    def on_progress(self, current: int, total: int, message: str = "") -> None:
        """``message`` is the entry path being visited."""
        ...

    def on_log(self, message: str, level: str = "info") -> None:
        ...

    def on_error(self, error: str, details: str = "") -> None:
        """An isolated entry failure; extraction carries on with the next entry."""
        ...

    def on_step(self, step_name: str) -> None:
        """A new phase of a multi-step operation, e.g. "Decoding Cache.sqlite"."""
        ...

    def is_cancelled(self) -> bool:
        ...


class LoggingCallbacks:
    """ExtractorCallbacks for the command line and tests: everything goes to the log."""

    def __init__(self, name: str = "extractors", task: str = "extract") -> None:
        self._log = task_logger(task, name)
        self._cancelled = False

    def on_progress(self, current: int, total: int, message: str = "") -> None:
        self._log.debug("Entry %d/%d %s", current + 1, total, message)

    def on_log(self, message: str, level: str = "info") -> None:
        self._log.log(parse_level(level), "%s", message)

    def on_error(self, error: str, details: str = "") -> None:
        if details:
            self._log.warning("%s: %s", error, details)
        else:
            self._log.warning("%s", error)

    def on_step(self, step_name: str) -> None:
        self._log.info("Step: %s", step_name)

    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
