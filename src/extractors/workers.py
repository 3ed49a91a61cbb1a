"""
Qt plumbing for running case operations off the GUI thread.

``WorkerCallbacks`` satisfies ``ExtractorCallbacks`` by writing each event
to the application log and re-emitting it as a signal. Signals cross thread
boundaries as queued connections, so widgets can connect to them directly.
"""
from __future__ import annotations

import time
import traceback
from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, QThread, Signal

from core.logging import parse_level, task_logger


class WorkerCallbacks(QObject):
    """Signal-emitting extractor callbacks with a cancellation flag."""

    progress = Signal(int, int, str)  # current, total, message
    log_message = Signal(str, str)    # message, level
    error = Signal(str, str)          # error, details
    step = Signal(str)                # step name

    def __init__(self, parent: Optional[QObject] = None, task_name: str = "task") -> None:
        super().__init__(parent)
        self._cancelled = False
        self.set_task_name(task_name)

    def set_task_name(self, name: str) -> None:
        self.task_name = name
        self._log = task_logger(name, "extractors.workers")

    def on_progress(self, current: int, total: int, message: str = "") -> None:
        self.progress.emit(current, total, message)

    def on_log(self, message: str, level: str = "info") -> None:
        self._log.log(parse_level(level), "%s", message)
        self.log_message.emit(message, level)

    def on_error(self, error: str, details: str = "") -> None:
        if details:
            self._log.error("%s: %s", error, details)
        else:
            self._log.error("%s", error)
        self.error.emit(error, details)

    def on_step(self, step_name: str) -> None:
        self._log.info("Step: %s", step_name)
        self.step.emit(step_name)

    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if not self._cancelled:
            self._log.info("Cancellation requested")
        self._cancelled = True


class ExtractionWorker(QThread):
    """
    Run ``task(callbacks)`` on a background thread.

    The task is normally a ``CaseService`` call wrapped in a lambda. Its
    return value is stored on ``result`` and emitted with ``finished``; a
    task that raises emits ``error`` with the formatted traceback followed
    by ``finished(None)``, so listeners can always rely on ``finished``.

    Example:
        worker = ExtractionWorker(
            lambda cb: service.ingest_archive(archive, dest, device_id, callbacks=cb),
            name="ingest",
        )
        worker.callbacks.step.connect(progress_dialog.setLabelText)
        worker.finished.connect(on_ingest_finished)
        worker.start()
    """

    finished = Signal(object)
    error = Signal(str)

    def __init__(
        self,
        task: Callable[[WorkerCallbacks], Any],
        name: str = "extraction",
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.task = task
        self.name = name
        self.callbacks = WorkerCallbacks(task_name=name)
        self.result: Any = None
        self.elapsed: Optional[float] = None

    def run(self) -> None:
        log = task_logger(self.name, "extractors.workers")
        log.info("Worker started")
        started = time.monotonic()
        try:
            self.result = self.task(self.callbacks)
        except Exception as exc:
            self.elapsed = time.monotonic() - started
            log.exception("Worker failed after %.1fs", self.elapsed)
            self.error.emit(f"{type(exc).__name__}: {exc}\n{traceback.format_exc()}")
            self.finished.emit(None)
            return
        self.elapsed = time.monotonic() - started
        log.info("Worker finished in %.1fs", self.elapsed)
        self.finished.emit(self.result)

    def cancel(self) -> None:
        self.callbacks.cancel()
