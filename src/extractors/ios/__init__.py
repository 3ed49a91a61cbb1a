"""Decoders for iOS artifacts pulled out of device archives."""

from .routined_cache import (
    LOCATION_QUERY,
    LOCATION_TABLE,
    decode_locations,
    open_cache_session,
)

__all__ = [
    "LOCATION_QUERY",
    "LOCATION_TABLE",
    "decode_locations",
    "open_cache_session",
]
