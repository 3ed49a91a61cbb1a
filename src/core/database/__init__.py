"""
Case database package.

- connection: init_db / case_session / migrate (numbered SQL files in migrations/)
- helpers: CRUD for devices, device_locations and snapshot_files
"""
from .connection import case_session, current_version, init_db, migrate
from .helpers import (
    delete_device,
    delete_device_locations,
    delete_snapshot_files,
    get_device,
    get_device_locations,
    get_devices,
    get_snapshot_files,
    insert_device,
    insert_locations,
    insert_snapshot_files,
)

__all__ = [
    "init_db",
    "case_session",
    "current_version",
    "migrate",
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
