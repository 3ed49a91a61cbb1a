"""
Devices database helper functions.

This module provides CRUD operations for the devices table. Deleting a
device cascades to its locations and snapshot files.
"""
from __future__ import annotations

import sqlite3
from typing import List, Optional

from core.records import Device
from core.timestamps import utc_now

__all__ = [
    "insert_device",
    "get_devices",
    "get_device",
    "delete_device",
]


def _row_to_device(row: sqlite3.Row) -> Device:
    return Device(
        id=row["id"],
        name=row["name"],
        icon=row["icon"],
        image_path=row["image_path"],
        created_at_utc=row["created_at_utc"],
    )


def insert_device(
    conn: sqlite3.Connection,
    name: str,
    *,
    icon: str = "circle",
    image_path: Optional[str] = None,
    created_at_utc: Optional[str] = None,
) -> int:
    """
    Insert a device record.

    Returns:
        ID of the new device
    """
    with conn:
        cursor = conn.execute(
            "INSERT INTO devices (name, icon, image_path, created_at_utc) VALUES (?, ?, ?, ?)",
            (name, icon, image_path, created_at_utc or utc_now()),
        )
    return int(cursor.lastrowid)


def get_devices(conn: sqlite3.Connection) -> List[Device]:
    """Return all devices ordered by ID."""
    rows = conn.execute(
        "SELECT id, name, icon, image_path, created_at_utc FROM devices ORDER BY id"
    ).fetchall()
    return [_row_to_device(row) for row in rows]


def get_device(conn: sqlite3.Connection, device_id: int) -> Optional[Device]:
    """Return one device, or None if it does not exist."""
    row = conn.execute(
        "SELECT id, name, icon, image_path, created_at_utc FROM devices WHERE id = ?",
        (device_id,),
    ).fetchone()
    return _row_to_device(row) if row else None


def delete_device(conn: sqlite3.Connection, device_id: int) -> bool:
    """Delete a device and everything attached to it. Returns True if it existed."""
    with conn:
        cursor = conn.execute("DELETE FROM devices WHERE id = ?", (device_id,))
    return cursor.rowcount > 0
