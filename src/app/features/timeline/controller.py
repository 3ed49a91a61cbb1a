"""
Qt driver for timeline playback.

Wraps TimelineState with a single recurring QTimer. Starting playback
always stops a running timer first, so the index is never advanced twice
per tick.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from core.logging import get_logger
from core.records import Association

from .state import DEFAULT_STEP, TimelineState

LOGGER = get_logger("app.features.timeline.controller")

DEFAULT_TICK_MS = 500


class TimelineController(QObject):
    """
    Step and play through the working sequence.

    Signals:
        index_changed(int): play index after any move
        visible_changed(list): visible trail (list of Association)
        playing_changed(bool): playback started/stopped
        sequence_changed(int): working sequence length after a rebuild
    """

    index_changed = Signal(int)
    visible_changed = Signal(list)
    playing_changed = Signal(bool)
    sequence_changed = Signal(int)

    def __init__(
        self,
        associations: Iterable[Association] = (),
        *,
        step: int = DEFAULT_STEP,
        tick_ms: int = DEFAULT_TICK_MS,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.state = TimelineState(associations, step=step)
        self._timer = QTimer(self)
        self._timer.setInterval(tick_ms)
        self._timer.timeout.connect(self._on_tick)

    # -- properties --------------------------------------------------------

    @property
    def index(self) -> int:
        return self.state.index

    @property
    def visible(self) -> List[Association]:
        return self.state.visible

    @property
    def is_playing(self) -> bool:
        return self._timer.isActive()

    @property
    def tick_ms(self) -> int:
        return self._timer.interval()

    # -- inputs ------------------------------------------------------------

    def set_associations(self, associations: Iterable[Association]) -> None:
        self.pause()
        self.state.set_associations(associations)
        self._emit_rebuilt()

    def set_window(self, start: Optional[datetime], end: Optional[datetime]) -> None:
        """Change the window; playback stops and the index returns to 0."""
        self.pause()
        self.state.set_window(start, end)
        LOGGER.debug("Timeline window %s .. %s: %d associations", start, end, len(self.state))
        self._emit_rebuilt()

    def clear_window(self) -> None:
        self.set_window(None, None)

    # -- navigation --------------------------------------------------------

    def step_forward(self) -> int:
        self.state.step_forward()
        self._emit_moved()
        return self.state.index

    def step_backward(self) -> int:
        self.state.step_backward()
        self._emit_moved()
        return self.state.index

    def seek(self, index: int) -> int:
        self.state.seek(index)
        self._emit_moved()
        return self.state.index

    def play(self) -> None:
        """Advance one position per tick until the end of the sequence."""
        self.pause()
        if self.state.at_end:
            return
        self._timer.start()
        self.playing_changed.emit(True)

    def pause(self) -> None:
        if not self._timer.isActive():
            return
        self._timer.stop()
        self.playing_changed.emit(False)

    def toggle_play(self) -> None:
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def _on_tick(self) -> None:
        if self.state.advance():
            self._emit_moved()
        if self.state.at_end:
            self.pause()

    # -- signals -----------------------------------------------------------

    def _emit_moved(self) -> None:
        self.index_changed.emit(self.state.index)
        self.visible_changed.emit(self.state.visible)

    def _emit_rebuilt(self) -> None:
        self.sequence_changed.emit(len(self.state))
        self._emit_moved()
