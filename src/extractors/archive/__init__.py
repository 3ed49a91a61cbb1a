"""Streaming extraction from zip-compatible device archives."""

from .extractor import (
    EntryFailure,
    ExtractedFile,
    ExtractionResult,
    extract_matching_files,
    extract_single_file,
)
from .scanner import TRANSITIONS, ArchiveEntry, ArchiveScanner

__all__ = [
    "ArchiveEntry",
    "ArchiveScanner",
    "TRANSITIONS",
    "EntryFailure",
    "ExtractedFile",
    "ExtractionResult",
    "extract_matching_files",
    "extract_single_file",
]
