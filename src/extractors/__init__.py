"""
Extraction layer for device archives.

Folder Structure:
- archive/         Streaming scan of zip archives (pattern and targeted extraction)
- ios/             Decoders for iOS artifacts (routined Cache.sqlite)
"""

from .callbacks import ExtractorCallbacks, LoggingCallbacks
from .workers import ExtractionWorker, WorkerCallbacks
from .exceptions import (
    ArchiveError,
    DecodeError,
    EntryIoError,
    ExtractorError,
    NotFoundError,
    OpenError,
    QueryError,
    ScanProtocolError,
)
from .archive import (
    ArchiveScanner,
    ExtractionResult,
    extract_matching_files,
    extract_single_file,
)
from .ios import decode_locations

__all__ = [
    'ExtractorCallbacks',
    'LoggingCallbacks',
    'ExtractionWorker',
    'WorkerCallbacks',
    'ExtractorError',
    'ArchiveError',
    'EntryIoError',
    'NotFoundError',
    'DecodeError',
    'OpenError',
    'QueryError',
    'ScanProtocolError',
    # Archive
    'ArchiveScanner',
    'ExtractionResult',
    'extract_matching_files',
    'extract_single_file',
    # iOS
    'decode_locations',
]
