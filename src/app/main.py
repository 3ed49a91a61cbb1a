from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence

from PySide6.QtGui import QAction
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QInputDialog,
    QMainWindow,
    QMessageBox,
    QProgressDialog,
)

from core.app_version import get_app_version
from core.config import AppConfig, load_app_config
from core.enums import DeviceIcon
from core.logging import configure_logging, get_logger
from core.records import Association
from extractors.workers import ExtractionWorker

from .features.timeline import TimelineTab
from .services import CaseService, OperationResult

LOGGER = get_logger("app.main")


def default_base_dir() -> Path:
    """$TRAILSIFTER_HOME, else the source checkout holding config/."""
    home = os.environ.get("TRAILSIFTER_HOME")
    if home:
        return Path(home).expanduser()
    return Path(__file__).resolve().parents[2]


# -----------------------------------------------------------------------------
# GUI
# -----------------------------------------------------------------------------

class MainWindow(QMainWindow):
    """Timeline window with archive ingestion in the File menu."""

    def __init__(self, config: AppConfig, service: CaseService) -> None:
        super().__init__()
        self.config = config
        self.service = service
        self._worker: Optional[ExtractionWorker] = None
        self._progress: Optional[QProgressDialog] = None

        self.setWindowTitle(f"TrailSifter {get_app_version()}")
        self.resize(1100, 720)

        self.timeline_tab = TimelineTab(
            step=config.playback.step,
            tick_ms=config.playback.tick_ms,
        )
        self.timeline_tab.association_activated.connect(self._on_association_activated)
        self.setCentralWidget(self.timeline_tab)

        ingest_action = QAction("Ingest Archive...", self)
        ingest_action.triggered.connect(self._on_ingest)
        reload_action = QAction("Reload", self)
        reload_action.triggered.connect(self.reload)
        file_menu = self.menuBar().addMenu("&File")
        file_menu.addAction(ingest_action)
        file_menu.addAction(reload_action)

        self.reload()

    def reload(self) -> None:
        devices = self.service.list_devices()
        if not devices.success:
            QMessageBox.critical(self, "Devices", devices.error or "Failed to list devices")
            return
        self.timeline_tab.set_device_names({d.id: d.name for d in devices.data})

        result = self.service.load_associations()
        if not result.success:
            QMessageBox.critical(self, "Timeline", result.error or "Failed to correlate")
            return
        self.timeline_tab.set_associations(result.data)
        self.statusBar().showMessage(
            f"{len(devices.data)} device(s), {len(result.data)} location(s)"
        )

    def _on_association_activated(self, association: Association) -> None:
        stamp = association.timestamp.strftime("%Y-%m-%d %H:%M:%S")
        if association.snapshot is not None:
            self.statusBar().showMessage(f"{stamp} UTC: {association.snapshot.filepath}")
        else:
            self.statusBar().showMessage(f"{stamp} UTC: no snapshot within tolerance")

    def _on_ingest(self) -> None:
        devices = self.service.list_devices()
        if not devices.success or not devices.data:
            QMessageBox.information(
                self, "Ingest Archive", "Add a device first (trailsifter add-device NAME)."
            )
            return
        labels = [f"{d.id}: {d.name}" for d in devices.data]
        label, ok = QInputDialog.getItem(self, "Ingest Archive", "Device:", labels, 0, False)
        if not ok:
            return
        device_id = devices.data[labels.index(label)].id

        archive, _ = QFileDialog.getOpenFileName(
            self, "Select Device Archive", "", "Zip archives (*.zip);;All files (*)"
        )
        if not archive:
            return
        dest_dir = QFileDialog.getExistingDirectory(self, "Select Output Folder")
        if not dest_dir:
            return
        self.start_ingest(archive, dest_dir, device_id)

    def start_ingest(self, archive: str, dest_dir: str, device_id: int) -> ExtractionWorker:
        self._worker = ExtractionWorker(
            lambda cb: self.service.ingest_archive(archive, dest_dir, device_id, callbacks=cb),
            name="ingest",
            parent=self,
        )
        self._progress = QProgressDialog("Ingesting archive...", "Cancel", 0, 100, self)
        self._progress.canceled.connect(self._worker.cancel)
        self._worker.callbacks.progress.connect(self._on_progress)
        self._worker.callbacks.step.connect(self._progress.setLabelText)
        self._worker.finished.connect(self._on_ingest_finished)
        self._progress.show()
        self._worker.start()
        return self._worker

    def _on_progress(self, current: int, total: int, message: str) -> None:
        if self._progress is not None:
            self._progress.setValue(current * 100 // max(total, 1))

    def _on_ingest_finished(self, result: Optional[OperationResult]) -> None:
        if self._progress is not None:
            self._progress.close()
            self._progress = None
        self._worker = None
        if result is None or not result.success:
            error = result.error if result is not None else "Unexpected error, see log"
            QMessageBox.warning(self, "Ingest Archive", error or "Ingestion did not complete")
        elif result.warnings:
            QMessageBox.warning(
                self, "Ingest Archive",
                f"Completed with {len(result.warnings)} warning(s):\n" + "\n".join(result.warnings[:10]),
            )
        self.reload()


def run_gui(config: AppConfig, service: CaseService) -> int:
    app = QApplication.instance() or QApplication(sys.argv)
    window = MainWindow(config, service)
    window.show()
    return app.exec()


# -----------------------------------------------------------------------------
# CLI
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trailsifter",
        description="Extract device trails from archives and play them back on a timeline.",
    )
    parser.add_argument("--version", "-V", action="version", version=f"TrailSifter {get_app_version()}")
    parser.add_argument(
        "--base-dir", type=Path, default=None,
        help="Folder holding config/, logs/ and the case database (default: $TRAILSIFTER_HOME or the source checkout)",
    )
    subparsers = parser.add_subparsers(dest="command")

    add_device = subparsers.add_parser("add-device", help="Register a device")
    add_device.add_argument("name", help="Device name")
    add_device.add_argument(
        "--icon", default=DeviceIcon.CIRCLE.value, choices=[i.value for i in DeviceIcon],
        help="Marker shape on the trail",
    )
    add_device.add_argument("--image", dest="image_path", default=None, help="Optional device picture")

    remove_device = subparsers.add_parser("remove-device", help="Delete a device and its data")
    remove_device.add_argument("device_id", type=int)

    subparsers.add_parser("devices", help="List registered devices")

    ingest = subparsers.add_parser("ingest", help="Extract snapshots and locations from an archive")
    ingest.add_argument("archive", type=Path, help="Device archive (zip)")
    ingest.add_argument("dest", type=Path, help="Output folder")
    ingest.add_argument("--device", dest="device_id", type=int, required=True, help="Device ID")

    subparsers.add_parser("timeline", help="Open the timeline window (default)")
    return parser


def _report(result: OperationResult, success_message: str) -> int:
    for warning in result.warnings:
        print(f"warning: {warning}", file=sys.stderr)
    if not result.success:
        print(f"error: {result.error or result.status.value}", file=sys.stderr)
        return 1
    print(success_message)
    return 0


def _print_devices(devices) -> None:
    for device in devices:
        print(f"{device.id}\t{device.name}\t{device.icon}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    base_dir = args.base_dir or default_base_dir()
    config = load_app_config(base_dir)

    configure_logging(
        config.logs_dir,
        level=config.logging.level,
        max_bytes=config.logging.app_log_max_mb * 1024 * 1024,
        backup_count=config.logging.app_log_backup_count,
    )
    LOGGER.info("TrailSifter %s starting (base dir %s)", get_app_version(), base_dir)
    LOGGER.debug("Configuration: %s", config.to_json())

    service = CaseService(config)
    command = args.command or "timeline"

    if command == "add-device":
        result = service.add_device(args.name, icon=args.icon, image_path=args.image_path)
        device = result.data
        return _report(result, f"Added device {device.id}: {device.name}" if result.success else "")

    if command == "remove-device":
        return _report(service.remove_device(args.device_id), f"Removed device {args.device_id}")

    if command == "devices":
        result = service.list_devices()
        if result.success:
            _print_devices(result.data)
        return _report(result, f"{len(result.data or [])} device(s)")

    if command == "ingest":
        result = service.ingest_archive(args.archive, args.dest, args.device_id)
        counts: Dict[str, int] = result.data or {}
        return _report(
            result,
            f"Ingested {counts.get('snapshots', 0)} snapshot(s) and "
            f"{counts.get('locations', 0)} location(s) for device {args.device_id}",
        )

    return run_gui(config, service)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
