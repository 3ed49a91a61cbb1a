"""
Exceptions for extractor modules.
"""

from pathlib import Path
from typing import Union


class ExtractorError(Exception):
    """Base exception for extractor errors."""
    pass


class ArchiveError(ExtractorError):
    """Raised when an archive cannot be opened or its stream fails mid-scan."""

    def __init__(self, archive_path: Union[str, Path], reason: str):
        self.archive_path = str(archive_path)
        self.reason = reason
        super().__init__(f"Archive {self.archive_path}: {reason}")


class EntryIoError(ExtractorError):
    """Raised when a single archive entry cannot be written to disk."""

    def __init__(self, entry_path: str, dest_path: Union[str, Path], reason: str):
        self.entry_path = entry_path
        self.dest_path = str(dest_path)
        self.reason = reason
        super().__init__(f"Failed to write {entry_path} to {self.dest_path}: {reason}")


class NotFoundError(ExtractorError):
    """Raised when targeted extraction exhausts an archive without a match."""

    def __init__(self, target_path: str):
        self.target_path = target_path
        super().__init__(f'File "{target_path}" not found in the ZIP archive.')


class DecodeError(ExtractorError):
    """Raised when an embedded database cannot be decoded."""
    pass


class OpenError(DecodeError):
    """Raised when the database file is missing, corrupt or not SQLite."""
    pass


class QueryError(DecodeError):
    """Raised when the expected table or columns are absent."""
    pass


class ScanProtocolError(ExtractorError):
    """Raised when the archive scanner is driven out of order."""
    pass
