"""Version string shown by ``trailsifter --version`` and the window title."""

from __future__ import annotations

import re
from functools import lru_cache
from importlib import metadata
from pathlib import Path

DISTRIBUTION_NAME = "trailsifter"
UNKNOWN_VERSION = "0.0.0"

_VERSION_LINE = re.compile(r'^\s*version\s*=\s*"([^"]+)"\s*$', re.MULTILINE)


@lru_cache(maxsize=1)
def get_app_version() -> str:
    """Installed distribution version, else the one in a source checkout's pyproject."""
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return _version_from_pyproject(Path(__file__).resolve().parents[2] / "pyproject.toml")


def _version_from_pyproject(pyproject_path: Path) -> str:
    try:
        match = _VERSION_LINE.search(pyproject_path.read_text(encoding="utf-8"))
    except OSError:
        return UNKNOWN_VERSION
    return match.group(1) if match else UNKNOWN_VERSION
