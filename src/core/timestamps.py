"""
Timestamp conversion utilities for device artifacts.

Provides the conversions used between the on-device stores, the case
database and the timeline:

- Cocoa: Seconds since 2001-01-01 (Core Data stores such as Cache.sqlite)
- Zip: DOS date/time tuples recorded for each archive entry
- ISO 8601 UTC strings used for persistence
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Tuple, Union

# Seconds between 1970-01-01 (Unix) and 2001-01-01 (Cocoa / Core Data)
COCOA_EPOCH_DIFF = 978307200

_MAX_UNIX_SECONDS = 32503680000  # Year 3000


def cocoa_to_datetime(seconds: Union[int, float, None]) -> Optional[datetime]:
    """
    Convert Cocoa/Core Data timestamp to datetime.

    Cocoa timestamps are seconds since 2001-01-01 00:00:00 UTC, so the value
    is shifted by COCOA_EPOCH_DIFF before being read as a Unix instant.
    A value of 0 is a valid instant (2001-01-01T00:00:00Z).

    Args:
        seconds: Cocoa timestamp (seconds since 2001)

    Returns:
        datetime in UTC, or None if missing or out of range

    Example:
        >>> cocoa_to_datetime(0)
        datetime.datetime(2001, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    if seconds is None:
        return None

    try:
        unix_seconds = seconds + COCOA_EPOCH_DIFF
        if unix_seconds < 0 or unix_seconds > _MAX_UNIX_SECONDS:
            return None
        return datetime.fromtimestamp(unix_seconds, tz=timezone.utc)
    except (ValueError, OSError, OverflowError, TypeError):
        return None


def zip_time_to_datetime(date_time: Tuple[int, int, int, int, int, int]) -> Optional[datetime]:
    """
    Convert a zip entry ``date_time`` tuple to datetime.

    Zip headers carry no time zone; entries written by acquisition tools
    are recorded in UTC, so the tuple is read as UTC.

    Returns:
        datetime in UTC, or None if the header holds an impossible date
    """
    try:
        return datetime(*date_time, tzinfo=timezone.utc)
    except (ValueError, TypeError):
        return None


def to_utc_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime as ISO 8601 UTC, treating naive values as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def parse_iso(iso_string: Optional[str]) -> Optional[datetime]:
    """
    Parse ISO 8601 string to datetime.

    Args:
        iso_string: ISO 8601 formatted string

    Returns:
        datetime in UTC, or None if invalid
    """
    if not iso_string:
        return None

    try:
        dt = datetime.fromisoformat(iso_string.replace('Z', '+00:00'))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except (ValueError, TypeError):
        return None


def utc_now() -> str:
    """Get current UTC time as ISO 8601 string without microseconds."""
    return datetime.now(tz=timezone.utc).replace(microsecond=0).isoformat()
