"""
Decoder for the routine daemon's location cache (Cache.sqlite).

iOS records recent location fixes in
``/private/var/mobile/Library/Caches/com.apple.routined/Cache.sqlite``,
table ``ZRTCLLOCATIONMO``. ``ZTIMESTAMP`` is a Core Data timestamp
(seconds since 2001-01-01 UTC) and is converted to an aware UTC datetime
before a LocationRecord is built.

Design Principle:
    The evidence database is opened read-only, by one session per decode,
    and the connection is closed on every exit path.
"""
from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Union

from core.logging import get_logger
from core.records import LocationRecord
from core.timestamps import cocoa_to_datetime

from ..exceptions import OpenError, QueryError

LOGGER = get_logger("extractors.ios.routined_cache")

LOCATION_TABLE = "ZRTCLLOCATIONMO"
LOCATION_COLUMNS = (
    "Z_PK",
    "ZLATITUDE",
    "ZLONGITUDE",
    "ZSPEED",
    "ZVERTICALACCURACY",
    "ZHORIZONTALACCURACY",
    "ZTIMESTAMP",
)

LOCATION_QUERY = f"""
    SELECT ZLATITUDE AS latitude, ZLONGITUDE AS longitude, ZSPEED AS speed,
           ZVERTICALACCURACY AS verticalAccuracy, ZHORIZONTALACCURACY AS horizontalAccuracy,
           ZTIMESTAMP AS timestamp
    FROM {LOCATION_TABLE}
    ORDER BY Z_PK
"""


@contextmanager
def open_cache_session(db_path: Union[str, Path]) -> Iterator[sqlite3.Connection]:
    """
    Open Cache.sqlite read-only for the duration of one decode.

    Yields:
        sqlite3.Connection (row_factory = sqlite3.Row)

    Raises:
        OpenError: If the file is missing or is not a readable SQLite database
    """
    db_path = Path(db_path)
    if not db_path.is_file():
        raise OpenError(f"Could not open Cache.sqlite: {db_path} does not exist")

    try:
        # as_uri() percent-encodes "#" and "?" so they stay part of the file name
        conn = sqlite3.connect(db_path.resolve().as_uri() + "?mode=ro", uri=True)
    except sqlite3.Error as exc:
        raise OpenError(f"Could not open Cache.sqlite: {exc}") from exc

    try:
        conn.row_factory = sqlite3.Row
        try:
            # sqlite defers header validation until the first read
            conn.execute("SELECT name FROM sqlite_master LIMIT 1").fetchall()
        except sqlite3.DatabaseError as exc:
            raise OpenError(f"Could not open Cache.sqlite: {exc}") from exc
        yield conn
    finally:
        conn.close()


def _check_schema(conn: sqlite3.Connection) -> None:
    table = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name = ?",
        (LOCATION_TABLE,),
    ).fetchone()
    if table is None:
        raise QueryError(f"Table {LOCATION_TABLE} not found")

    present = {row["name"] for row in conn.execute(f"PRAGMA table_info({LOCATION_TABLE})")}
    missing = [col for col in LOCATION_COLUMNS if col not in present]
    if missing:
        raise QueryError(f"Table {LOCATION_TABLE} is missing columns: {', '.join(missing)}")


def _optional_float(value) -> Optional[float]:
    return None if value is None else float(value)


def decode_locations(db_path: Union[str, Path], device_id: int) -> List[LocationRecord]:
    """
    Read every location fix from an extracted Cache.sqlite.

    Args:
        db_path: Path to the extracted database
        device_id: Device the records belong to

    Returns:
        LocationRecords in Z_PK order; rows without a timestamp are skipped

    Raises:
        OpenError: If the database cannot be opened
        QueryError: If the location table or its columns are absent
    """
    records: List[LocationRecord] = []
    skipped = 0

    with open_cache_session(db_path) as conn:
        _check_schema(conn)
        try:
            rows = conn.execute(LOCATION_QUERY).fetchall()
        except sqlite3.Error as exc:
            raise QueryError(f"Error querying {LOCATION_TABLE}: {exc}") from exc

        for row in rows:
            timestamp = cocoa_to_datetime(row["timestamp"])
            if timestamp is None:
                skipped += 1
                continue
            records.append(LocationRecord(
                device_id=device_id,
                latitude=_optional_float(row["latitude"]),
                longitude=_optional_float(row["longitude"]),
                speed=_optional_float(row["speed"]),
                vertical_accuracy=_optional_float(row["verticalAccuracy"]),
                horizontal_accuracy=_optional_float(row["horizontalAccuracy"]),
                timestamp=timestamp,
            ))

    if skipped:
        LOGGER.warning("Skipped %d %s rows without a usable timestamp in %s", skipped, LOCATION_TABLE, db_path)
    LOGGER.info("Decoded %d locations for device %s from %s", len(records), device_id, db_path)
    return records
