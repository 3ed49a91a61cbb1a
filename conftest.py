import os
from pathlib import Path

import pytest

from core.config import AppConfig, load_app_config
from core.database import init_db

pytest_plugins = ["tests.fixtures.archives"]


@pytest.fixture()
def base_dir(tmp_path: Path, monkeypatch) -> Path:
    """Create an empty application folder (config/, logs/ and the case database)."""
    monkeypatch.delenv("TRAILSIFTER_DB_PATH", raising=False)
    monkeypatch.delenv("TRAILSIFTER_LOG_LEVEL", raising=False)
    folder = tmp_path / "trailsifter_home"
    (folder / "config").mkdir(parents=True, exist_ok=True)
    return folder


@pytest.fixture()
def app_config(base_dir: Path) -> AppConfig:
    """Default configuration rooted at ``base_dir``."""
    return load_app_config(base_dir)


@pytest.fixture()
def case_conn(tmp_path: Path):
    """Migrated case database connection, closed after the test."""
    conn = init_db(tmp_path / "case" / "trailsifter.sqlite")
    yield conn
    conn.close()


@pytest.fixture(scope="session")
def device_archive_env() -> Path:
    """Provide a real device archive for tests that need one."""
    env_path = os.environ.get("TRAILSIFTER_ARCHIVE")
    if not env_path or not Path(env_path).exists():
        pytest.skip("Set TRAILSIFTER_ARCHIVE to a device archive to run this test")
    return Path(env_path)
