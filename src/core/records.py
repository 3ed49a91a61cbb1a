"""
Record types shared by the extraction, correlation and timeline layers.

All timestamps are timezone-aware UTC datetimes. Raw on-device epoch
offsets never leave the decoders.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True, slots=True)
class Device:
    """A device registered in the case store."""

    id: int
    name: str
    icon: str = "circle"
    image_path: Optional[str] = None
    created_at_utc: Optional[str] = None


@dataclass(frozen=True, slots=True)
class LocationRecord:
    """One location fix decoded from a device's Cache.sqlite."""

    device_id: int
    latitude: Optional[float]
    longitude: Optional[float]
    speed: Optional[float]
    vertical_accuracy: Optional[float]
    horizontal_accuracy: Optional[float]
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class SnapshotFile:
    """An app snapshot image extracted to the local filesystem."""

    device_id: int
    filepath: str
    timestamp: datetime
    entry_path: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Association:
    """A location paired with its nearest-in-time snapshot, if close enough."""

    location: LocationRecord
    snapshot: Optional[SnapshotFile] = None
    matched: bool = False

    @property
    def timestamp(self) -> datetime:
        return self.location.timestamp

    @property
    def device_id(self) -> int:
        return self.location.device_id
