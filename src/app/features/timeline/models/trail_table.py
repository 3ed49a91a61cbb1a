"""
Trail table model with matched-snapshot highlighting.

Shows the visible part of the timeline (the trail drawn so far).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt
from PySide6.QtGui import QColor

from core.records import Association


class TrailTableModel(QAbstractTableModel):
    """Table model for the visible trail; rows with a snapshot are tinted."""

    headers = [
        "Timestamp (UTC)",
        "Device",
        "Latitude",
        "Longitude",
        "Speed (m/s)",
        "Snapshot",
    ]

    MATCHED_COLOR = (200, 255, 200)  # Light green

    def __init__(self, device_names: Optional[Dict[int, str]] = None) -> None:
        super().__init__()
        self.device_names: Dict[int, str] = dict(device_names or {})
        self._rows: List[Association] = []

    def set_rows(self, associations: List[Association]) -> None:
        self.beginResetModel()
        self._rows = list(associations)
        self.endResetModel()

    def association_at(self, row: int) -> Optional[Association]:
        if 0 <= row < len(self._rows):
            return self._rows[row]
        return None

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:  # noqa: N802
        if parent.isValid():
            return 0
        return len(self._rows)

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:  # noqa: N802
        return len(self.headers)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole) -> Any:  # noqa: N802
        if not index.isValid() or not (0 <= index.row() < len(self._rows)):
            return None

        assoc = self._rows[index.row()]
        location = assoc.location
        column = index.column()

        if role in (Qt.DisplayRole, Qt.EditRole):
            if column == 0:
                return assoc.timestamp.strftime("%Y-%m-%d %H:%M:%S")
            if column == 1:
                return self.device_names.get(assoc.device_id, str(assoc.device_id))
            if column == 2:
                return _format_coord(location.latitude)
            if column == 3:
                return _format_coord(location.longitude)
            if column == 4:
                return "N/A" if location.speed is None else f"{location.speed:.1f}"
            if column == 5:
                return assoc.snapshot.filepath if assoc.matched and assoc.snapshot else ""

        elif role == Qt.BackgroundRole:
            if assoc.matched:
                r, g, b = self.MATCHED_COLOR
                return QColor(r, g, b)

        elif role == Qt.ToolTipRole:
            lines = [
                f"Time: {assoc.timestamp.isoformat()}",
                f"Horizontal accuracy: {location.horizontal_accuracy}",
                f"Vertical accuracy: {location.vertical_accuracy}",
            ]
            if assoc.matched and assoc.snapshot:
                lines.append(f"Snapshot: {assoc.snapshot.filepath}")
            return "\n".join(lines)

        return None

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.DisplayRole) -> Any:  # noqa: N802
        if orientation == Qt.Horizontal and role == Qt.DisplayRole and 0 <= section < len(self.headers):
            return self.headers[section]
        return None


def _format_coord(value: Optional[float]) -> str:
    return "" if value is None else f"{value:.6f}"
