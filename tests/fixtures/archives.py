"""Device archive and Cache.sqlite fixtures for tests."""
from __future__ import annotations

import sqlite3
import zipfile
from itertools import count
from pathlib import Path
from typing import Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

import pytest

from core.config import DEFAULT_CACHE_DB_PATH

SNAPSHOT_DIR = (
    "filesystem1/private/var/mobile/Containers/Data/Application/{app}"
    "/Library/SplashBoard/Snapshots/{scene}"
)

ZIP_TIME = (2023, 5, 17, 12, 0, 0)

EntryContent = Union[bytes, str, None]

# Cocoa seconds for 2023-05-17T12:00:00Z
COCOA_BASE = 706017600.0


def snapshot_entry(name: str, app: str = "APP-1", scene: str = "sceneID:com.example") -> str:
    """Archive path of a snapshot file laid out the way iOS stores them."""
    return f"{SNAPSHOT_DIR.format(app=app, scene=scene)}/{name}"


def write_zip(
    path: Path,
    entries: Union[Mapping[str, EntryContent], Iterable[Tuple[str, EntryContent]]],
    *,
    date_time: Tuple[int, int, int, int, int, int] = ZIP_TIME,
) -> Path:
    """
    Write a zip archive.

    ``entries`` maps entry path -> content; a path ending in "/" (or a None
    content) produces a directory entry. Entries are written in the given
    order, which is also the archive's index order.
    """
    items = entries.items() if isinstance(entries, Mapping) else entries
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, content in items:
            if content is None and not name.endswith("/"):
                name = name + "/"
            info = zipfile.ZipInfo(name, date_time=date_time)
            if name.endswith("/"):
                info.external_attr = 0o40755 << 16
                zf.writestr(info, b"")
                continue
            info.compress_type = zipfile.ZIP_DEFLATED
            data = content.encode("utf-8") if isinstance(content, str) else content
            zf.writestr(info, data)
    return path


def write_cache_db(
    path: Path,
    rows: Sequence[Dict[str, Optional[float]]] = (),
    *,
    with_table: bool = True,
    columns: Optional[Sequence[str]] = None,
    pk_is_rowid: bool = True,
) -> Path:
    """
    Write a routined Cache.sqlite with a ZRTCLLOCATIONMO table.

    Each row is a dict with keys lat, lon, speed, vacc, hacc and ts (Cocoa
    seconds); missing keys are stored as NULL. An explicit "pk" key sets Z_PK.
    With ``pk_is_rowid=False`` Z_PK is a plain column, so physical row order
    follows insertion rather than Z_PK.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    try:
        if with_table:
            cols = columns or (
                "ZLATITUDE", "ZLONGITUDE", "ZSPEED",
                "ZVERTICALACCURACY", "ZHORIZONTALACCURACY", "ZTIMESTAMP",
            )
            conn.execute(
                "CREATE TABLE ZRTCLLOCATIONMO (Z_PK INTEGER"
                + (" PRIMARY KEY, " if pk_is_rowid else ", ")
                + ", ".join(f"{c} REAL" for c in cols)
                + ")"
            )
            keys = {
                "ZLATITUDE": "lat",
                "ZLONGITUDE": "lon",
                "ZSPEED": "speed",
                "ZVERTICALACCURACY": "vacc",
                "ZHORIZONTALACCURACY": "hacc",
                "ZTIMESTAMP": "ts",
            }
            for position, row in enumerate(rows, start=1):
                names = ["Z_PK", *cols]
                values = [row.get("pk", position), *(row.get(keys[c]) for c in cols)]
                conn.execute(
                    f"INSERT INTO ZRTCLLOCATIONMO ({', '.join(names)}) VALUES ({', '.join('?' for _ in names)})",
                    values,
                )
        else:
            conn.execute("CREATE TABLE ZOTHER (Z_PK INTEGER PRIMARY KEY)")
        conn.commit()
    finally:
        conn.close()
    return path


def location_row(offset_s: float, lat: float = 47.0, lon: float = 8.0, speed: Optional[float] = 1.5) -> Dict:
    return {
        "lat": lat,
        "lon": lon,
        "speed": speed,
        "vacc": 3.0,
        "hacc": 5.0,
        "ts": COCOA_BASE + offset_s,
    }


@pytest.fixture
def zip_factory(tmp_path: Path) -> Callable[..., Path]:
    """Create zip archives under tmp_path."""
    counter = count(1)

    def _create(entries, name: Optional[str] = None, **kwargs) -> Path:
        filename = name or f"archive_{next(counter)}.zip"
        return write_zip(tmp_path / "archives" / filename, entries, **kwargs)

    return _create


@pytest.fixture
def cache_db_factory(tmp_path: Path) -> Callable[..., Path]:
    """Create Cache.sqlite files under tmp_path."""
    counter = count(1)

    def _create(rows=(), **kwargs) -> Path:
        return write_cache_db(tmp_path / "caches" / f"cache_{next(counter)}" / "Cache.sqlite", rows, **kwargs)

    return _create


@pytest.fixture
def device_archive(tmp_path: Path) -> Path:
    """
    A device archive with three snapshots, unrelated files and a Cache.sqlite.

    The snapshots are dated 12:00:00, 12:00:40 and 12:05:00 UTC; the cache
    holds five fixes at 12:00:00 + (0, 20, 40, 100, 300) seconds.
    """
    cache = write_cache_db(
        tmp_path / "build" / "Cache.sqlite",
        [location_row(offset) for offset in (0, 20, 40, 100, 300)],
    )
    entries = [
        ("filesystem1/", None),
        ("filesystem1/private/var/mobile/Library/Preferences/com.apple.springboard.plist", b"plist"),
        (snapshot_entry("A.ktx"), b"KTX-A" * 100),
        (snapshot_entry("notes.txt"), b"not a snapshot"),
        (snapshot_entry("B.ktx", app="APP-2"), b"KTX-B" * 100),
        (DEFAULT_CACHE_DB_PATH, cache.read_bytes()),
        (snapshot_entry("C.ktx", app="APP-3", scene="sceneID:other"), b"KTX-C" * 100),
    ]
    archive = tmp_path / "archives" / "device.zip"
    archive.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        stamps = {
            "A.ktx": (2023, 5, 17, 12, 0, 0),
            "B.ktx": (2023, 5, 17, 12, 0, 40),
            "C.ktx": (2023, 5, 17, 12, 5, 0),
        }
        for name, content in entries:
            info = zipfile.ZipInfo(name, date_time=stamps.get(name.rsplit("/", 1)[-1], ZIP_TIME))
            if content is None:
                info.external_attr = 0o40755 << 16
                zf.writestr(info, b"")
            else:
                info.compress_type = zipfile.ZIP_DEFLATED
                zf.writestr(info, content)
    return archive
