"""Record builders shared by timeline tests."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from core.records import Association, LocationRecord, SnapshotFile

BASE = datetime(2023, 5, 17, 12, 0, 0, tzinfo=timezone.utc)


def make_association(minute: int, device_id: int = 1, matched: bool = False) -> Association:
    """Association one ``minute`` after BASE; matched ones point at /x/<minute>.ktx."""
    location = LocationRecord(
        device_id=device_id,
        latitude=47.0 + minute / 1000,
        longitude=8.0,
        speed=1.0,
        vertical_accuracy=3.0,
        horizontal_accuracy=5.0,
        timestamp=BASE + timedelta(minutes=minute),
    )
    snapshot = SnapshotFile(device_id, f"/x/{minute}.ktx", location.timestamp) if matched else None
    return Association(location=location, snapshot=snapshot, matched=matched)
