"""
Device location database helper functions.
"""
from __future__ import annotations

import sqlite3
from typing import Iterable, List

from core.records import LocationRecord
from core.timestamps import parse_iso, to_utc_iso

__all__ = [
    "insert_locations",
    "get_device_locations",
    "delete_device_locations",
]


def insert_locations(conn: sqlite3.Connection, records: Iterable[LocationRecord]) -> int:
    """Insert location records in one transaction. Returns the number inserted."""
    rows = [
        (
            record.device_id,
            record.latitude,
            record.longitude,
            record.speed,
            record.vertical_accuracy,
            record.horizontal_accuracy,
            to_utc_iso(record.timestamp),
        )
        for record in records
    ]
    with conn:
        conn.executemany(
            """
            INSERT INTO device_locations (
                device_id, latitude, longitude, speed,
                vertical_accuracy, horizontal_accuracy, ts_utc
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            rows,
        )
    return len(rows)


def get_device_locations(conn: sqlite3.Connection, device_id: int) -> List[LocationRecord]:
    """Return a device's locations in insertion order."""
    rows = conn.execute(
        """
        SELECT device_id, latitude, longitude, speed,
               vertical_accuracy, horizontal_accuracy, ts_utc
        FROM device_locations
        WHERE device_id = ?
        ORDER BY id
        """,
        (device_id,),
    ).fetchall()
    return [
        LocationRecord(
            device_id=row["device_id"],
            latitude=row["latitude"],
            longitude=row["longitude"],
            speed=row["speed"],
            vertical_accuracy=row["vertical_accuracy"],
            horizontal_accuracy=row["horizontal_accuracy"],
            timestamp=parse_iso(row["ts_utc"]),
        )
        for row in rows
    ]


def delete_device_locations(conn: sqlite3.Connection, device_id: int) -> int:
    """Remove all locations of a device (before re-ingesting its archive)."""
    with conn:
        cursor = conn.execute("DELETE FROM device_locations WHERE device_id = ?", (device_id,))
    return cursor.rowcount
