"""
Database helper functions package.

This package provides domain-specific CRUD operations for the case tables.

Exports:
- Devices: insert_device, get_devices, get_device, delete_device
- Locations: insert_locations, get_device_locations, delete_device_locations
- Snapshots: insert_snapshot_files, get_snapshot_files, delete_snapshot_files
"""
from .devices import delete_device, get_device, get_devices, insert_device
from .locations import delete_device_locations, get_device_locations, insert_locations
from .snapshots import delete_snapshot_files, get_snapshot_files, insert_snapshot_files

__all__ = [
    "insert_device",
    "get_devices",
    "get_device",
    "delete_device",
    "insert_locations",
    "get_device_locations",
    "delete_device_locations",
    "insert_snapshot_files",
    "get_snapshot_files",
    "delete_snapshot_files",
]
