"""
One-entry-at-a-time scanner over a zip archive's entry index.

The scanner is a small state machine driven by a generator:

    OPENING -> SCANNING(entry) -> COPYING | SKIPPING -> SCANNING(next)
                                                      | EXHAUSTED
                                                      | FAILED

``ArchiveScanner.entries()`` yields one ``ArchiveEntry`` at a time and will
not advance until that entry has been resolved with ``copy_to()`` or
``skip()``. Entry content is streamed in fixed-size chunks, so memory use
is bounded by one chunk regardless of archive or entry size.

Failures split in two:

- reading the archive (open, local header, decompression, CRC) raises
  ``ArchiveError`` and moves the scanner to FAILED;
- writing an entry to disk raises ``EntryIoError``; the entry counts as
  resolved and scanning may continue with the next entry.

Example:
    with ArchiveScanner(archive_path) as scanner:
        for entry in scanner.entries():
            if entry.path.endswith(".ktx"):
                entry.copy_to(out_dir / entry.basename)
            else:
                entry.skip()
"""
from __future__ import annotations

import os
import zipfile
import zlib
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Dict, FrozenSet, Iterator, List, Optional, Union

from core.enums import ScanState
from core.logging import get_logger
from core.timestamps import zip_time_to_datetime

from ..exceptions import ArchiveError, EntryIoError, ScanProtocolError

LOGGER = get_logger("extractors.archive.scanner")

DEFAULT_CHUNK_SIZE = 1024 * 1024

# Allowed state transitions. EXHAUSTED -> SCANNING restarts a finished scan.
TRANSITIONS: Dict[ScanState, FrozenSet[ScanState]] = {
    ScanState.OPENING: frozenset({ScanState.SCANNING, ScanState.EXHAUSTED, ScanState.FAILED}),
    ScanState.SCANNING: frozenset({ScanState.COPYING, ScanState.SKIPPING, ScanState.FAILED}),
    ScanState.COPYING: frozenset({ScanState.SCANNING, ScanState.EXHAUSTED, ScanState.FAILED}),
    ScanState.SKIPPING: frozenset({ScanState.SCANNING, ScanState.EXHAUSTED, ScanState.FAILED}),
    ScanState.EXHAUSTED: frozenset({ScanState.SCANNING, ScanState.EXHAUSTED}),
    ScanState.FAILED: frozenset(),
}

_READ_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError, OSError, NotImplementedError, RuntimeError)


class ArchiveEntry:
    """A single entry handed out by the scanner; must be copied or skipped."""

    __slots__ = ("_scanner", "_info", "index", "resolved", "dest_path")

    def __init__(self, scanner: "ArchiveScanner", info: zipfile.ZipInfo, index: int) -> None:
        self._scanner = scanner
        self._info = info
        self.index = index
        self.resolved = False
        self.dest_path: Optional[Path] = None

    @property
    def path(self) -> str:
        return self._info.filename

    @property
    def basename(self) -> str:
        return PurePosixPath(self._info.filename).name

    @property
    def size(self) -> int:
        return self._info.file_size

    @property
    def is_dir(self) -> bool:
        return self._info.is_dir()

    @property
    def modified(self) -> Optional[datetime]:
        return zip_time_to_datetime(self._info.date_time)

    def skip(self) -> None:
        """Resolve this entry without reading its content."""
        self._scanner._skip(self)

    def copy_to(self, dest_path: Union[str, Path]) -> Path:
        """Stream this entry's content to ``dest_path`` and resolve it."""
        return self._scanner._copy(self, Path(dest_path))

    def __repr__(self) -> str:
        return f"ArchiveEntry({self.index}, {self.path!r})"


class ArchiveScanner:
    """
    Lazy, restartable scan over the entries of one zip archive.

    Use as a context manager; the archive handle is closed on exit.
    """

    def __init__(self, archive_path: Union[str, Path], *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.archive_path = Path(archive_path)
        self.chunk_size = chunk_size
        self.state = ScanState.OPENING
        self.history: List[ScanState] = [ScanState.OPENING]
        self._zip: Optional[zipfile.ZipFile] = None
        self._infos: List[zipfile.ZipInfo] = []
        self._current: Optional[ArchiveEntry] = None
        self._failure: Optional[ArchiveError] = None
        self._iterating = False

    # -- lifecycle ---------------------------------------------------------

    def open(self) -> "ArchiveScanner":
        if self._zip is not None:
            return self
        try:
            self._zip = zipfile.ZipFile(self.archive_path, "r")
            self._infos = self._zip.infolist()
        except (zipfile.BadZipFile, OSError, ValueError) as exc:
            raise self._fail(f"cannot open archive: {exc}") from exc
        LOGGER.debug("Opened %s (%d entries)", self.archive_path, len(self._infos))
        return self

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    def __enter__(self) -> "ArchiveScanner":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def total(self) -> int:
        return len(self._infos)

    # -- scanning ----------------------------------------------------------

    def entries(self) -> Iterator[ArchiveEntry]:
        """
        Yield entries one at a time.

        Raises:
            ScanProtocolError: If the previous entry was not resolved, the
                scanner is already iterating, or it was never opened
            ArchiveError: If the scanner has failed
        """
        if self._zip is None:
            raise ScanProtocolError("Scanner is not open")
        if self._iterating:
            raise ScanProtocolError("Scanner is already iterating")
        if self.state is ScanState.FAILED:
            raise self._failure

        self._iterating = True
        try:
            for index, info in enumerate(self._infos):
                self._transition(ScanState.SCANNING)
                entry = ArchiveEntry(self, info, index)
                self._current = entry
                yield entry
                if self.state is ScanState.FAILED:
                    raise self._failure
                if not entry.resolved:
                    raise ScanProtocolError(
                        f"Entry {entry.path!r} must be copied or skipped before advancing"
                    )
            self._current = None
            self._transition(ScanState.EXHAUSTED)
        finally:
            self._iterating = False

    # -- transitions -------------------------------------------------------

    def _transition(self, new_state: ScanState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise ScanProtocolError(f"Illegal scanner transition {self.state} -> {new_state}")
        self.state = new_state
        self.history.append(new_state)

    def _fail(self, reason: str) -> ArchiveError:
        self.state = ScanState.FAILED
        self.history.append(ScanState.FAILED)
        self._failure = ArchiveError(self.archive_path, reason)
        LOGGER.error("%s", self._failure)
        return self._failure

    def _claim(self, entry: ArchiveEntry) -> None:
        if entry is not self._current or entry.resolved:
            raise ScanProtocolError(f"Entry {entry.path!r} is not the pending entry")

    def _skip(self, entry: ArchiveEntry) -> None:
        self._claim(entry)
        self._transition(ScanState.SKIPPING)
        entry.resolved = True

    def _copy(self, entry: ArchiveEntry, dest_path: Path) -> Path:
        self._claim(entry)
        self._transition(ScanState.COPYING)

        try:
            source = self._zip.open(entry._info, "r")
        except _READ_ERRORS as exc:
            raise self._fail(f"cannot read entry {entry.path}: {exc}") from exc

        with source:
            try:
                target = open(dest_path, "wb")
            except OSError as exc:
                entry.resolved = True
                raise EntryIoError(entry.path, dest_path, str(exc)) from exc

            read_error: Optional[BaseException] = None
            try:
                # closing flushes the last buffered chunk and can fail too
                with target:
                    while True:
                        try:
                            chunk = source.read(self.chunk_size)
                        except _READ_ERRORS as exc:
                            read_error = exc
                            break
                        if not chunk:
                            break
                        target.write(chunk)
            except OSError as exc:
                _discard(dest_path)
                entry.resolved = True
                raise EntryIoError(entry.path, dest_path, str(exc)) from exc

            if read_error is not None:
                _discard(dest_path)
                raise self._fail(f"stream failed on entry {entry.path}: {read_error}") from read_error

        modified = entry.modified
        if modified is not None:
            stamp = modified.timestamp()
            try:
                os.utime(dest_path, (stamp, stamp))
            except OSError as exc:
                LOGGER.debug("Could not set mtime on %s: %s", dest_path, exc)

        entry.resolved = True
        entry.dest_path = dest_path
        return dest_path


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        LOGGER.warning("Could not remove partial file %s: %s", path, exc)
