"""
Nearest-in-time correlation of location fixes with app snapshots.

For every location the snapshot of the same device with the smallest
absolute time difference is selected. Ties go to the snapshot that
appears first in the input. The pair counts as a match only when that
difference is strictly below the tolerance (30 seconds by default).

Each device's snapshots are sorted once and searched with ``bisect``, so
the cost per location is logarithmic in the number of snapshots.
"""
from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from core.logging import get_logger
from core.records import Association, LocationRecord, SnapshotFile

LOGGER = get_logger("core.correlation")

DEFAULT_TOLERANCE = timedelta(milliseconds=30_000)

__all__ = [
    "DEFAULT_TOLERANCE",
    "CorrelationEngine",
    "correlate",
    "partition_by_device",
]


@dataclass(slots=True)
class _DeviceSnapshots:
    """Snapshots of one device indexed by timestamp."""

    timestamps: List[datetime]  # sorted, unique
    first_by_timestamp: Dict[datetime, Tuple[int, SnapshotFile]]  # earliest input position wins

    @classmethod
    def build(cls, indexed: Sequence[Tuple[int, SnapshotFile]]) -> "_DeviceSnapshots":
        first: Dict[datetime, Tuple[int, SnapshotFile]] = {}
        for position, snapshot in indexed:
            first.setdefault(snapshot.timestamp, (position, snapshot))
        return cls(timestamps=sorted(first), first_by_timestamp=first)

    def nearest(self, instant: datetime) -> Tuple[Optional[SnapshotFile], Optional[timedelta]]:
        """Return the nearest snapshot and its distance, or (None, None) when empty."""
        if not self.timestamps:
            return None, None

        i = bisect_left(self.timestamps, instant)
        candidates = []
        if i > 0:
            candidates.append(self.timestamps[i - 1])
        if i < len(self.timestamps):
            candidates.append(self.timestamps[i])

        best_diff = min(abs(ts - instant) for ts in candidates)
        # Both neighbours may be equally far; the earlier input position wins.
        position, snapshot = min(
            (self.first_by_timestamp[ts] for ts in candidates if abs(ts - instant) == best_diff),
            key=lambda item: item[0],
        )
        return snapshot, best_diff


def partition_by_device(records: Iterable) -> Dict[int, List[Tuple[int, object]]]:
    """Group records by ``device_id``, keeping each record's input position."""
    partitions: Dict[int, List[Tuple[int, object]]] = {}
    for position, record in enumerate(records):
        partitions.setdefault(record.device_id, []).append((position, record))
    return partitions


def correlate(
    locations: Iterable[LocationRecord],
    snapshots: Iterable[SnapshotFile],
    tolerance: timedelta = DEFAULT_TOLERANCE,
) -> List[Association]:
    """
    Pair each location with its nearest snapshot from the same device.

    Args:
        locations: Location records of any number of devices
        snapshots: Snapshot files of any number of devices
        tolerance: Exclusive upper bound on the time difference of a match

    Returns:
        One Association per location, ordered by location timestamp
        (input order for equal timestamps)
    """
    locations = list(locations)
    snapshot_index = {
        device_id: _DeviceSnapshots.build(indexed)
        for device_id, indexed in partition_by_device(snapshots).items()
    }
    empty = _DeviceSnapshots(timestamps=[], first_by_timestamp={})

    associations: List[Association] = []
    matched_count = 0
    for location in locations:
        device_snapshots = snapshot_index.get(location.device_id, empty)
        snapshot, diff = device_snapshots.nearest(location.timestamp)
        if snapshot is not None and diff < tolerance:
            associations.append(Association(location=location, snapshot=snapshot, matched=True))
            matched_count += 1
        else:
            associations.append(Association(location=location))

    associations.sort(key=lambda assoc: assoc.timestamp)
    LOGGER.debug(
        "Correlated %d locations against %d devices with snapshots: %d matched",
        len(associations), len(snapshot_index), matched_count,
    )
    return associations


class CorrelationEngine:
    """
    Correlation with a fixed tolerance and memoization of the last inputs.

    Re-running with equal inputs returns the cached associations, so the
    timeline can be refreshed without recomputing the pairing.
    """

    def __init__(self, tolerance_ms: int = 30_000) -> None:
        self.tolerance = timedelta(milliseconds=tolerance_ms)
        self._last_key: Optional[Tuple[Tuple[LocationRecord, ...], Tuple[SnapshotFile, ...]]] = None
        self._last_result: List[Association] = []

    def correlate(
        self,
        locations: Iterable[LocationRecord],
        snapshots: Iterable[SnapshotFile],
    ) -> List[Association]:
        key = (tuple(locations), tuple(snapshots))
        if key != self._last_key:
            self._last_result = correlate(key[0], key[1], self.tolerance)
            self._last_key = key
        return list(self._last_result)
