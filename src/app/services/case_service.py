"""
Case operations exposed to the CLI and the GUI.

``CaseService`` is the only entry point the outer layers use. Every method
returns an ``OperationResult`` envelope and never raises: extractor and
decoder exceptions become ``ExtractionStatus.ERROR`` results, unexpected
exceptions are logged with a traceback and reported the same way.

Each call opens its own short-lived database connection so that methods can
run inside an ``ExtractionWorker`` thread.
"""
from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from core.config import AppConfig
from core.correlation import CorrelationEngine
from core.database import (
    case_session,
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
from core.enums import DeviceIcon, ExtractionStatus
from core.logging import get_logger
from core.records import Association, Device, LocationRecord, SnapshotFile
from extractors.archive import ExtractionResult
from extractors.archive import extract_matching_files as _extract_matching
from extractors.archive import extract_single_file
from extractors.callbacks import ExtractorCallbacks
from extractors.exceptions import ExtractorError
from extractors.ios import decode_locations

LOGGER = get_logger("app.services.case_service")

PathLike = Union[str, Path]


@dataclass(slots=True)
class OperationResult:
    """
    Envelope returned by every CaseService method.

    Attributes:
        status: OK, PARTIAL (completed with isolated failures), ERROR or CANCELLED
        data: Operation payload (paths, counts, records, associations)
        error: Human-readable error message when status is ERROR
        warnings: Non-fatal problems (e.g. entries that could not be written)
    """

    status: ExtractionStatus
    data: Any = None
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status in (ExtractionStatus.OK, ExtractionStatus.PARTIAL)

    @classmethod
    def ok(cls, data: Any = None, warnings: Optional[List[str]] = None) -> "OperationResult":
        status = ExtractionStatus.PARTIAL if warnings else ExtractionStatus.OK
        return cls(status=status, data=data, warnings=list(warnings or []))

    @classmethod
    def failed(cls, error: str, data: Any = None) -> "OperationResult":
        return cls(status=ExtractionStatus.ERROR, data=data, error=error)


class CaseService:
    """Device registry, archive ingestion and correlation for one case store."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.engine = CorrelationEngine(tolerance_ms=config.correlation.tolerance_ms)

    def _connection(self):
        return case_session(self.config.database_path)

    def _require_device(self, conn: sqlite3.Connection, device_id: int) -> Device:
        device = get_device(conn, device_id)
        if device is None:
            raise LookupError(f"Device {device_id} not found")
        return device

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    def list_devices(self) -> OperationResult:
        try:
            with self._connection() as conn:
                return OperationResult.ok(get_devices(conn))
        except Exception as exc:
            LOGGER.exception("Failed to list devices")
            return OperationResult.failed(str(exc))

    def add_device(
        self,
        name: str,
        icon: str = DeviceIcon.CIRCLE,
        image_path: Optional[str] = None,
    ) -> OperationResult:
        """Register a device; ``data`` is the new Device."""
        name = (name or "").strip()
        if not name:
            return OperationResult.failed("Device name must not be empty")
        try:
            icon = DeviceIcon(icon)
        except ValueError:
            allowed = ", ".join(i.value for i in DeviceIcon)
            return OperationResult.failed(f"Unknown icon '{icon}' (expected one of: {allowed})")

        try:
            with self._connection() as conn:
                device_id = insert_device(conn, name, icon=icon.value, image_path=image_path)
                device = get_device(conn, device_id)
        except Exception as exc:
            LOGGER.exception("Failed to add device %s", name)
            return OperationResult.failed(str(exc))
        LOGGER.info("Added device %d (%s)", device_id, name)
        return OperationResult.ok(device)

    def remove_device(self, device_id: int) -> OperationResult:
        """Delete a device together with its locations and snapshot records."""
        try:
            with self._connection() as conn:
                removed = delete_device(conn, device_id)
        except Exception as exc:
            LOGGER.exception("Failed to remove device %d", device_id)
            return OperationResult.failed(str(exc))
        if not removed:
            return OperationResult.failed(f"Device {device_id} not found")
        LOGGER.info("Removed device %d", device_id)
        return OperationResult.ok(device_id)

    def get_device_locations(self, device_id: int) -> OperationResult:
        try:
            with self._connection() as conn:
                self._require_device(conn, device_id)
                return OperationResult.ok(get_device_locations(conn, device_id))
        except LookupError as exc:
            return OperationResult.failed(str(exc))
        except Exception as exc:
            LOGGER.exception("Failed to load locations of device %d", device_id)
            return OperationResult.failed(str(exc))

    def get_snapshot_files(self, device_id: int) -> OperationResult:
        try:
            with self._connection() as conn:
                self._require_device(conn, device_id)
                return OperationResult.ok(get_snapshot_files(conn, device_id))
        except LookupError as exc:
            return OperationResult.failed(str(exc))
        except Exception as exc:
            LOGGER.exception("Failed to load snapshot files of device %d", device_id)
            return OperationResult.failed(str(exc))

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def extract_matching_files(
        self,
        archive_path: PathLike,
        dest_dir: PathLike,
        device_id: Optional[int] = None,
        *,
        callbacks: Optional[ExtractorCallbacks] = None,
    ) -> OperationResult:
        """
        Extract snapshot files into ``<dest_dir>/<snapshot_subdir>``.

        ``data`` is the list of written paths. When ``device_id`` is given
        the device's previous snapshot records are replaced by the new ones.
        """
        extraction = self.config.extraction
        target_dir = Path(dest_dir) / extraction.snapshot_subdir
        try:
            if device_id is not None:
                with self._connection() as conn:
                    self._require_device(conn, device_id)

            result = _extract_matching(
                archive_path,
                target_dir,
                extraction.snapshot_pattern,
                callbacks=callbacks,
                chunk_size=extraction.chunk_size,
            )
            warnings = [f"{f.entry_path}: {f.reason}" for f in result.failures]

            if result.cancelled:
                return OperationResult(
                    status=ExtractionStatus.CANCELLED, data=result.paths, warnings=warnings
                )

            if device_id is not None:
                snapshots = _snapshot_records(result, device_id)
                with self._connection() as conn:
                    delete_snapshot_files(conn, device_id)
                    insert_snapshot_files(conn, snapshots)
                LOGGER.info("Stored %d snapshot files for device %d", len(snapshots), device_id)
        except (LookupError, ExtractorError) as exc:
            LOGGER.error("Snapshot extraction from %s failed: %s", archive_path, exc)
            return OperationResult.failed(str(exc))
        except Exception as exc:
            LOGGER.exception("Snapshot extraction from %s failed", archive_path)
            return OperationResult.failed(str(exc))

        return OperationResult.ok(result.paths, warnings)

    def extract_and_decode_locations(
        self,
        archive_path: PathLike,
        dest_dir: PathLike,
        device_id: int,
    ) -> OperationResult:
        """
        Pull the routine cache database out of the archive and store its fixes.

        ``data`` is the number of location records inserted; the device's
        previous locations are replaced.
        """
        extraction = self.config.extraction
        try:
            with self._connection() as conn:
                self._require_device(conn, device_id)

            db_path = extract_single_file(
                archive_path,
                extraction.cache_db_path,
                dest_dir,
                chunk_size=extraction.chunk_size,
            )
            records: List[LocationRecord] = decode_locations(db_path, device_id)

            with self._connection() as conn:
                delete_device_locations(conn, device_id)
                inserted = insert_locations(conn, records)
        except (LookupError, ExtractorError) as exc:
            LOGGER.error("Location extraction from %s failed: %s", archive_path, exc)
            return OperationResult.failed(str(exc))
        except Exception as exc:
            LOGGER.exception("Location extraction from %s failed", archive_path)
            return OperationResult.failed(str(exc))

        LOGGER.info("Stored %d locations for device %d", inserted, device_id)
        return OperationResult.ok(inserted)

    def ingest_archive(
        self,
        archive_path: PathLike,
        dest_dir: PathLike,
        device_id: int,
        *,
        callbacks: Optional[ExtractorCallbacks] = None,
    ) -> OperationResult:
        """
        Run both extractions for one device archive.

        ``data`` is ``{"snapshots": int, "locations": int}``. Locations are
        not attempted when the snapshot scan failed or was cancelled.
        """
        counts = {"snapshots": 0, "locations": 0}

        if callbacks:
            callbacks.on_step("Extracting snapshots")
        snapshots = self.extract_matching_files(archive_path, dest_dir, device_id, callbacks=callbacks)
        counts["snapshots"] = len(snapshots.data or [])
        if not snapshots.success:
            return OperationResult(
                status=snapshots.status, data=counts, error=snapshots.error, warnings=snapshots.warnings
            )

        if callbacks:
            callbacks.on_step("Decoding Cache.sqlite")
        locations = self.extract_and_decode_locations(archive_path, dest_dir, device_id)
        if not locations.success:
            return OperationResult(
                status=ExtractionStatus.ERROR, data=counts, error=locations.error, warnings=snapshots.warnings
            )
        counts["locations"] = locations.data

        LOGGER.info(
            "Ingested %s for device %d: %d snapshots, %d locations",
            archive_path, device_id, counts["snapshots"], counts["locations"],
        )
        return OperationResult.ok(counts, snapshots.warnings)

    # ------------------------------------------------------------------
    # Correlation
    # ------------------------------------------------------------------

    def load_associations(self) -> OperationResult:
        """
        Correlate the stored locations and snapshots of every device.

        Devices are loaded one after another in ID order; ``data`` is the
        list of Associations sorted by location timestamp.
        """
        try:
            locations: List[LocationRecord] = []
            snapshots: List[SnapshotFile] = []
            with self._connection() as conn:
                for device in get_devices(conn):
                    locations.extend(get_device_locations(conn, device.id))
                    snapshots.extend(get_snapshot_files(conn, device.id))
            associations: List[Association] = self.engine.correlate(locations, snapshots)
        except Exception as exc:
            LOGGER.exception("Failed to load associations")
            return OperationResult.failed(str(exc))
        return OperationResult.ok(associations)


def _snapshot_records(result: ExtractionResult, device_id: int) -> List[SnapshotFile]:
    """Build snapshot records, dating each file by its archive entry or disk mtime.

    Entries sharing a basename overwrite each other on disk, so only the
    last one written is recorded.
    """
    by_path: Dict[Path, SnapshotFile] = {}
    for item in result.extracted:
        timestamp = item.modified_utc
        if timestamp is None:
            timestamp = datetime.fromtimestamp(item.local_path.stat().st_mtime, tz=timezone.utc)
        by_path.pop(item.local_path, None)
        by_path[item.local_path] = SnapshotFile(
            device_id=device_id,
            filepath=str(item.local_path),
            timestamp=timestamp,
            entry_path=item.entry_path,
        )
    return list(by_path.values())
