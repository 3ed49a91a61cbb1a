from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from PySide6.QtCore import Qt, QDateTime, QModelIndex, Signal
from PySide6.QtWidgets import (
    QCheckBox,
    QDateTimeEdit,
    QGridLayout,
    QGroupBox,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QPushButton,
    QSlider,
    QTableView,
    QVBoxLayout,
    QWidget,
)

from core.records import Association

from .controller import DEFAULT_TICK_MS, TimelineController
from .models import TrailTableModel
from .state import DEFAULT_STEP

DATETIME_FORMAT = "yyyy-MM-dd HH:mm:ss"
FIRST_POINTS_LIMIT = 5
NO_CURRENT_TIME = "Current Time: -"


def _to_qdatetime(value: datetime, round_up: bool = False) -> QDateTime:
    # the editors hold whole seconds; an end bound must not cut off fractional fixes
    seconds = math.ceil(value.timestamp()) if round_up else math.floor(value.timestamp())
    return QDateTime.fromSecsSinceEpoch(seconds, Qt.UTC)


def _from_qdatetime(value: QDateTime) -> datetime:
    return datetime.fromtimestamp(value.toSecsSinceEpoch(), tz=timezone.utc)


class TimelineTab(QWidget):
    """Timeline tab: pick a UTC window and play the device trails through it.

    The window is only applied when the user presses "Apply Window"; until
    then the working sequence is empty and the trail table shows nothing.
    """

    window_applied = Signal(int)  # working sequence length
    association_activated = Signal(object)  # Association of a double-clicked row

    def __init__(
        self,
        associations: Iterable[Association] = (),
        device_names: Optional[Dict[int, str]] = None,
        *,
        step: int = DEFAULT_STEP,
        tick_ms: int = DEFAULT_TICK_MS,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.controller = TimelineController(step=step, tick_ms=tick_ms, parent=self)
        self.table_model = TrailTableModel(device_names)

        main_layout = QVBoxLayout()

        # Window selection
        window_group = QGroupBox("Time Window (UTC)")
        window_layout = QGridLayout()

        window_layout.addWidget(QLabel("Start:"), 0, 0)
        self.start_edit = QDateTimeEdit()
        self.start_edit.setTimeSpec(Qt.UTC)
        self.start_edit.setDisplayFormat(DATETIME_FORMAT)
        self.start_edit.setCalendarPopup(True)
        window_layout.addWidget(self.start_edit, 0, 1)

        window_layout.addWidget(QLabel("End:"), 0, 2)
        self.end_edit = QDateTimeEdit()
        self.end_edit.setTimeSpec(Qt.UTC)
        self.end_edit.setDisplayFormat(DATETIME_FORMAT)
        self.end_edit.setCalendarPopup(True)
        window_layout.addWidget(self.end_edit, 0, 3)

        self.apply_button = QPushButton("Apply Window")
        self.apply_button.clicked.connect(self.apply_window)
        window_layout.addWidget(self.apply_button, 0, 4)

        self.first_points_checkbox = QCheckBox(f"First {FIRST_POINTS_LIMIT} per device")
        self.first_points_checkbox.setToolTip(
            "Ignore the window and show the first correlated points of each device"
        )
        self.first_points_checkbox.toggled.connect(self._refresh_table)
        window_layout.addWidget(self.first_points_checkbox, 1, 0, 1, 5)

        window_group.setLayout(window_layout)
        main_layout.addWidget(window_group)

        # Playback controls
        controls_layout = QHBoxLayout()

        self.step_back_button = QPushButton(f"<< {step}")
        self.step_back_button.clicked.connect(self.controller.step_backward)
        controls_layout.addWidget(self.step_back_button)

        self.play_button = QPushButton("Play")
        self.play_button.clicked.connect(self.controller.toggle_play)
        controls_layout.addWidget(self.play_button)

        self.step_forward_button = QPushButton(f"{step} >>")
        self.step_forward_button.clicked.connect(self.controller.step_forward)
        controls_layout.addWidget(self.step_forward_button)

        self.slider = QSlider(Qt.Horizontal)
        self.slider.setEnabled(False)  # position indicator only
        self.slider.setRange(0, 0)
        controls_layout.addWidget(self.slider, stretch=1)

        self.position_label = QLabel("0/0")
        self.position_label.setMinimumWidth(80)
        self.position_label.setAlignment(Qt.AlignRight | Qt.AlignVCenter)
        controls_layout.addWidget(self.position_label)

        self.current_time_label = QLabel(NO_CURRENT_TIME)
        self.current_time_label.setMinimumWidth(220)
        controls_layout.addWidget(self.current_time_label)

        main_layout.addLayout(controls_layout)

        # Trail table
        self.table = QTableView()
        self.table.setModel(self.table_model)
        self.table.setSelectionBehavior(QTableView.SelectRows)
        self.table.setAlternatingRowColors(True)
        self.table.verticalHeader().setVisible(False)
        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.Interactive)
        self.table.horizontalHeader().setStretchLastSection(True)
        self.table.doubleClicked.connect(self._on_row_activated)
        main_layout.addWidget(self.table)

        self.setLayout(main_layout)

        self.controller.sequence_changed.connect(self._on_sequence_changed)
        self.controller.index_changed.connect(self._on_index_changed)
        self.controller.visible_changed.connect(self._refresh_table)
        self.controller.playing_changed.connect(self._on_playing_changed)

        self.set_associations(associations)

    # -- data ---------------------------------------------------------------

    def set_device_names(self, device_names: Dict[int, str]) -> None:
        self.table_model.device_names = dict(device_names)
        self._refresh_table()

    def set_associations(self, associations: Iterable[Association]) -> None:
        """Load correlated data and preset the window editors to its range."""
        associations = list(associations)
        if associations:
            timestamps = [a.timestamp for a in associations]
            self.start_edit.setDateTime(_to_qdatetime(min(timestamps)))
            self.end_edit.setDateTime(_to_qdatetime(max(timestamps), round_up=True))
        self.controller.set_associations(associations)

    def apply_window(self) -> None:
        start = _from_qdatetime(self.start_edit.dateTime())
        end = _from_qdatetime(self.end_edit.dateTime())
        self.controller.set_window(start, end)
        self.window_applied.emit(len(self.controller.state))

    # -- slots --------------------------------------------------------------

    def _on_sequence_changed(self, length: int) -> None:
        self.slider.setRange(0, max(length - 1, 0))

    def _on_index_changed(self, index: int) -> None:
        self.slider.setValue(index)
        length = len(self.controller.state)
        self.position_label.setText(f"{index + 1 if length else 0}/{length}")
        current = self.controller.state.current
        if current is None:
            self.current_time_label.setText(NO_CURRENT_TIME)
        else:
            self.current_time_label.setText(
                f"Current Time: {current.timestamp.strftime('%Y-%m-%d %H:%M:%S')} UTC"
            )

    def _on_playing_changed(self, playing: bool) -> None:
        self.play_button.setText("Pause" if playing else "Play")

    def _refresh_table(self, *_args) -> None:
        rows: List[Association]
        if self.first_points_checkbox.isChecked():
            rows = self.controller.state.first_per_device(FIRST_POINTS_LIMIT)
        else:
            rows = self.controller.visible
        self.table_model.set_rows(rows)

    def _on_row_activated(self, index: QModelIndex) -> None:
        association = self.table_model.association_at(index.row())
        if association is not None:
            self.association_activated.emit(association)
