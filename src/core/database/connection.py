"""
Case database connection and schema migrations.

This module provides:
- init_db: open/create the case database and bring its schema up to date
- case_session: init_db as a context manager that always closes
- migrate: apply numbered ``NNNN_name.sql`` files from migrations/
- current_version: highest applied migration
"""
from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Set, Tuple

from core.logging import get_logger
from core.timestamps import utc_now

LOGGER = get_logger("core.database.connection")

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

sqlite3.register_adapter(Path, str)


def init_db(db_path: Path) -> sqlite3.Connection:
    """
    Open (or create) the case database and run migrations.

    Args:
        db_path: Path to the database file; parent folders are created

    Returns:
        Connection with foreign keys on, WAL journaling and ``sqlite3.Row`` rows
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    LOGGER.debug("Opening case database at %s", db_path)

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute("PRAGMA journal_mode = WAL;")
    conn.execute("PRAGMA busy_timeout = 10000;")  # ms
    try:
        migrate(conn)
    except Exception:
        conn.close()
        raise
    LOGGER.debug("Case database %s at schema version %d", db_path, current_version(conn))
    return conn


@contextmanager
def case_session(db_path: Path) -> Iterator[sqlite3.Connection]:
    """Open the case database for one unit of work; the connection is always closed."""
    conn = init_db(db_path)
    try:
        yield conn
    finally:
        conn.close()


def migrate(conn: sqlite3.Connection, migrations_dir: Optional[Path] = None) -> List[int]:
    """
    Apply pending migrations in version order.

    Each script is wrapped in an explicit BEGIN/COMMIT together with its
    ``schema_version`` row, so a script that fails partway is rolled back
    and leaves neither tables nor a version behind. Scripts must not
    manage transactions themselves.

    Returns:
        Versions applied by this call (empty when the schema is current)

    Raises:
        RuntimeError: If a migration script fails
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER PRIMARY KEY,
            applied_at_utc TEXT NOT NULL
        )
        """
    )
    applied = _applied_versions(conn)
    newly_applied: List[int] = []

    for version, script in _discover(migrations_dir or MIGRATIONS_DIR):
        if version in applied:
            continue
        LOGGER.info("Applying migration %s", script.name)
        # executescript commits before it runs, so the transaction lives in the script
        sql = (
            "BEGIN;\n"
            f"{script.read_text(encoding='utf-8')}\n;\n"
            "INSERT INTO schema_version (version, applied_at_utc) "
            f"VALUES ({version:d}, '{utc_now()}');\n"
            "COMMIT;"
        )
        try:
            conn.executescript(sql)
        except sqlite3.DatabaseError as exc:
            if conn.in_transaction:
                conn.rollback()
            LOGGER.exception("Migration %s failed", script.name)
            raise RuntimeError(f"Failed to apply migration {script}") from exc
        newly_applied.append(version)

    return newly_applied


def current_version(conn: sqlite3.Connection) -> int:
    """Highest applied migration version, 0 for an empty database."""
    versions = _applied_versions(conn)
    return max(versions) if versions else 0


def _discover(migrations_dir: Path) -> List[Tuple[int, Path]]:
    # '0001_devices.sql' -> (1, path)
    found = []
    for script in migrations_dir.glob("*.sql"):
        prefix = script.name.split("_", 1)[0]
        if not prefix.isdigit():
            LOGGER.warning("Ignoring migration without numeric prefix: %s", script.name)
            continue
        found.append((int(prefix), script))
    return sorted(found)


def _applied_versions(conn: sqlite3.Connection) -> Set[int]:
    try:
        rows = conn.execute("SELECT version FROM schema_version").fetchall()
    except sqlite3.OperationalError:
        return set()
    return {int(row[0]) for row in rows}
