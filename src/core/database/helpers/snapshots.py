"""
Snapshot file database helper functions.
"""
from __future__ import annotations

import sqlite3
from typing import Iterable, List

from core.records import SnapshotFile
from core.timestamps import parse_iso, to_utc_iso

__all__ = [
    "insert_snapshot_files",
    "get_snapshot_files",
    "delete_snapshot_files",
]


def insert_snapshot_files(conn: sqlite3.Connection, snapshots: Iterable[SnapshotFile]) -> int:
    """Insert snapshot file records in one transaction. Returns the number inserted."""
    rows = [
        (snap.device_id, snap.filepath, snap.entry_path, to_utc_iso(snap.timestamp))
        for snap in snapshots
    ]
    with conn:
        conn.executemany(
            "INSERT INTO snapshot_files (device_id, filepath, entry_path, ts_utc) VALUES (?, ?, ?, ?)",
            rows,
        )
    return len(rows)


def get_snapshot_files(conn: sqlite3.Connection, device_id: int) -> List[SnapshotFile]:
    """Return a device's snapshot files in insertion order."""
    rows = conn.execute(
        """
        SELECT device_id, filepath, entry_path, ts_utc
        FROM snapshot_files
        WHERE device_id = ?
        ORDER BY id
        """,
        (device_id,),
    ).fetchall()
    return [
        SnapshotFile(
            device_id=row["device_id"],
            filepath=row["filepath"],
            timestamp=parse_iso(row["ts_utc"]),
            entry_path=row["entry_path"],
        )
        for row in rows
    ]


def delete_snapshot_files(conn: sqlite3.Connection, device_id: int) -> int:
    """Remove all snapshot records of a device."""
    with conn:
        cursor = conn.execute("DELETE FROM snapshot_files WHERE device_id = ?", (device_id,))
    return cursor.rowcount
