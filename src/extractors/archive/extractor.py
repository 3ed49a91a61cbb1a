"""
Pattern-based and targeted extraction from device archives.

Both operations drive ``ArchiveScanner`` and therefore process entries
strictly one at a time.

- ``extract_matching_files`` copies every entry whose path matches a
  wildcard pattern into one flat folder (base filenames only; a later
  entry with the same name overwrites an earlier one). It returns only
  after the whole archive has been scanned.
- ``extract_single_file`` copies the one entry whose path equals a given
  path and returns as soon as it is written.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from core.logging import get_logger
from core.matching import PathPattern, compile_path_pattern

from ..callbacks import ExtractorCallbacks
from ..exceptions import EntryIoError, NotFoundError
from .scanner import DEFAULT_CHUNK_SIZE, ArchiveScanner

LOGGER = get_logger("extractors.archive")


@dataclass(slots=True)
class ExtractedFile:
    """A file written by the extractor and the entry it came from."""

    entry_path: str
    local_path: Path
    size_bytes: int
    modified_utc: Optional[datetime]


@dataclass(slots=True)
class EntryFailure:
    """An entry that matched but could not be written."""

    entry_path: str
    dest_path: str
    reason: str


@dataclass(slots=True)
class ExtractionResult:
    """
    Outcome of a completed pattern extraction.

    Attributes:
        archive_path: Archive that was scanned
        dest_dir: Flat folder the matching entries were written to
        extracted: Files written, in archive order
        failures: Matching entries whose write failed
        entries_scanned: Number of index entries visited
        entries_matched: Number of entries that matched the pattern
        cancelled: True if the scan stopped early on request
    """

    archive_path: Path
    dest_dir: Path
    extracted: List[ExtractedFile] = field(default_factory=list)
    failures: List[EntryFailure] = field(default_factory=list)
    entries_scanned: int = 0
    entries_matched: int = 0
    cancelled: bool = False

    @property
    def paths(self) -> List[Path]:
        return [item.local_path for item in self.extracted]

    @property
    def complete(self) -> bool:
        return not self.cancelled and not self.failures


def extract_matching_files(
    archive_path: Union[str, Path],
    dest_dir: Union[str, Path],
    pattern: Union[str, PathPattern],
    *,
    callbacks: Optional[ExtractorCallbacks] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> ExtractionResult:
    """
    Extract every entry matching ``pattern`` into ``dest_dir``.

    Args:
        archive_path: Zip archive to scan
        dest_dir: Flat output folder (created if missing)
        pattern: Wildcard pattern or a compiled PathPattern
        callbacks: Optional progress/log/cancel callbacks
        chunk_size: Bytes read per chunk while copying

    Returns:
        ExtractionResult listing every written file; an archive with no
        matching entries gives an empty result

    Raises:
        ArchiveError: If the archive cannot be opened or read
    """
    archive_path = Path(archive_path)
    dest_dir = Path(dest_dir)
    matcher = pattern if isinstance(pattern, PathPattern) else compile_path_pattern(pattern)
    dest_dir.mkdir(parents=True, exist_ok=True)

    result = ExtractionResult(archive_path=archive_path, dest_dir=dest_dir)
    LOGGER.info("Extracting entries matching %s from %s to %s", matcher.pattern, archive_path, dest_dir)

    with ArchiveScanner(archive_path, chunk_size=chunk_size) as scanner:
        total = scanner.total
        for entry in scanner.entries():
            if callbacks and callbacks.is_cancelled():
                entry.skip()
                result.cancelled = True
                LOGGER.warning("Extraction cancelled after %d of %d entries", result.entries_scanned, total)
                break

            result.entries_scanned += 1
            if callbacks:
                callbacks.on_progress(entry.index, total, entry.path)

            if entry.is_dir or not matcher.matches(entry.path):
                entry.skip()
                continue

            result.entries_matched += 1
            dest_path = dest_dir / entry.basename
            try:
                entry.copy_to(dest_path)
            except EntryIoError as exc:
                LOGGER.warning("%s", exc)
                result.failures.append(EntryFailure(exc.entry_path, exc.dest_path, exc.reason))
                if callbacks:
                    callbacks.on_error(f"Failed to extract {entry.path}", exc.reason)
                continue

            LOGGER.debug("Extracted %s -> %s", entry.path, dest_path)
            result.extracted.append(ExtractedFile(
                entry_path=entry.path,
                local_path=dest_path,
                size_bytes=entry.size,
                modified_utc=entry.modified,
            ))

    LOGGER.info(
        "Extraction finished: %d scanned, %d matched, %d written, %d failed%s",
        result.entries_scanned, result.entries_matched, len(result.extracted),
        len(result.failures), " (cancelled)" if result.cancelled else "",
    )
    if callbacks:
        callbacks.on_log(f"Extracted {len(result.extracted)} files to {dest_dir}")
    return result


def extract_single_file(
    archive_path: Union[str, Path],
    target_path: str,
    dest_dir: Union[str, Path],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Path:
    """
    Extract the entry whose path equals ``target_path`` into ``dest_dir``.

    Returns:
        Local path of the extracted file (``dest_dir / basename``)

    Raises:
        NotFoundError: If no entry has exactly this path
        ArchiveError: If the archive cannot be opened or read
        EntryIoError: If the file cannot be written
    """
    archive_path = Path(archive_path)
    dest_dir = Path(dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)

    with ArchiveScanner(archive_path, chunk_size=chunk_size) as scanner:
        for entry in scanner.entries():
            if entry.path != target_path:
                entry.skip()
                continue
            dest_path = entry.copy_to(dest_dir / entry.basename)
            LOGGER.info("Extracted %s from %s to %s", target_path, archive_path, dest_path)
            return dest_path

    raise NotFoundError(target_path)
