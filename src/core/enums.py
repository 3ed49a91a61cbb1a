"""
Core Enumerations

Centralized enum definitions for consistent typing across the codebase.
Using StrEnum (Python 3.11+) for string-based enums that serialize naturally.
"""

from enum import StrEnum


class ExtractionStatus(StrEnum):
    """Status values for extraction and ingestion operations."""

    OK = "ok"
    PARTIAL = "partial"  # Scan completed, some entries failed to write
    ERROR = "error"
    CANCELLED = "cancelled"


class ScanState(StrEnum):
    """States of the one-entry-at-a-time archive scanner."""

    OPENING = "opening"
    SCANNING = "scanning"
    COPYING = "copying"
    SKIPPING = "skipping"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


class DeviceIcon(StrEnum):
    """Marker shapes a device can be drawn with on the trail."""

    CIRCLE = "circle"
    SQUARE = "square"
    STAR = "star"
    TRIANGLE = "triangle"
