"""
Timeline working sequence and play index.

The working sequence is the subset of correlated associations whose
timestamp lies inside the ``[start, end]`` window (inclusive), sorted
ascending. Without a window the working sequence is empty.

The visible trail is the prefix of the working sequence up to and
including the play index: playback draws the path travelled so far,
not a single moving point.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from core.records import Association

DEFAULT_STEP = 10


class TimelineState:
    """Filtered, sorted associations plus a clamped play index."""

    def __init__(self, associations: Iterable[Association] = (), step: int = DEFAULT_STEP) -> None:
        self.step = step
        self._associations: List[Association] = list(associations)
        self.start: Optional[datetime] = None
        self.end: Optional[datetime] = None
        self._working: List[Association] = []
        self._index = 0

    # -- inputs ------------------------------------------------------------

    def set_associations(self, associations: Iterable[Association]) -> None:
        """Replace the correlated input and rebuild the working sequence."""
        self._associations = list(associations)
        self._rebuild()

    def set_window(self, start: Optional[datetime], end: Optional[datetime]) -> None:
        """Set the time window; both bounds are required for a non-empty sequence."""
        self.start = start
        self.end = end
        self._rebuild()

    def clear_window(self) -> None:
        self.set_window(None, None)

    def _rebuild(self) -> None:
        if self.start is None or self.end is None:
            self._working = []
        else:
            self._working = sorted(
                (a for a in self._associations if self.start <= a.timestamp <= self.end),
                key=lambda a: a.timestamp,
            )
        self._index = 0

    # -- index -------------------------------------------------------------

    @property
    def index(self) -> int:
        return self._index

    @property
    def last_index(self) -> int:
        return max(len(self._working) - 1, 0)

    def seek(self, index: int) -> int:
        """Move to ``index`` clamped to the working sequence."""
        self._index = min(max(index, 0), self.last_index)
        return self._index

    def step_forward(self) -> int:
        return self.seek(self._index + self.step)

    def step_backward(self) -> int:
        return self.seek(self._index - self.step)

    def advance(self) -> bool:
        """Move one position forward; returns False when already at the end."""
        if self._index >= self.last_index:
            return False
        self._index += 1
        return True

    @property
    def at_end(self) -> bool:
        return self._index >= self.last_index

    # -- outputs -----------------------------------------------------------

    @property
    def working(self) -> List[Association]:
        return list(self._working)

    def __len__(self) -> int:
        return len(self._working)

    @property
    def visible(self) -> List[Association]:
        """Trail drawn so far: working[0 .. index]."""
        return self._working[: self._index + 1]

    @property
    def current(self) -> Optional[Association]:
        if not self._working:
            return None
        return self._working[self._index]

    def first_per_device(self, limit: int = 5) -> List[Association]:
        """First ``limit`` correlated associations of each device, ignoring the window."""
        per_device: Dict[int, List[Association]] = {}
        for association in sorted(self._associations, key=lambda a: a.timestamp):
            bucket = per_device.setdefault(association.device_id, [])
            if len(bucket) < limit:
                bucket.append(association)
        return [a for bucket in per_device.values() for a in bucket]
