"""Tests for configuration loading from config/config.yml."""

import json
from pathlib import Path

import pytest
import yaml

from core.config import (
    DEFAULT_CACHE_DB_PATH,
    DEFAULT_SNAPSHOT_PATTERN,
    load_app_config,
)


def _write_config(base_dir: Path, data) -> None:
    (base_dir / "config" / "config.yml").write_text(yaml.safe_dump(data), encoding="utf-8")


class TestDefaults:

    def test_defaults_without_config_file(self, base_dir):
        config = load_app_config(base_dir)

        assert config.logs_dir == base_dir / "logs"
        assert config.logs_dir.is_dir()
        assert config.database_path == base_dir / "trailsifter.sqlite"
        assert config.logging.level == "INFO"
        assert config.extraction.snapshot_pattern == DEFAULT_SNAPSHOT_PATTERN
        assert config.extraction.cache_db_path == DEFAULT_CACHE_DB_PATH
        assert config.extraction.snapshot_subdir == "ktx_files"
        assert config.extraction.chunk_size == 1024 * 1024
        assert config.correlation.tolerance_ms == 30_000
        assert config.playback.step == 10
        assert config.playback.tick_ms == 500

    def test_empty_config_file(self, base_dir):
        (base_dir / "config" / "config.yml").write_text("", encoding="utf-8")
        assert load_app_config(base_dir).playback.step == 10


class TestOverrides:

    def test_sections_override_defaults(self, base_dir):
        _write_config(base_dir, {
            "logging": {"level": "debug", "app_log_max_mb": 1},
            "extraction": {"snapshot_subdir": "snaps", "chunk_size": 4096},
            "correlation": {"tolerance_ms": 10_000},
            "playback": {"step": 5, "tick_ms": 50},
        })
        config = load_app_config(base_dir)

        assert config.logging.level == "DEBUG"
        assert config.logging.app_log_max_mb == 1
        assert config.extraction.snapshot_subdir == "snaps"
        assert config.extraction.chunk_size == 4096
        assert config.extraction.snapshot_pattern == DEFAULT_SNAPSHOT_PATTERN
        assert config.correlation.tolerance_ms == 10_000
        assert config.playback.step == 5
        assert config.playback.tick_ms == 50

    def test_relative_database_path(self, base_dir):
        _write_config(base_dir, {"database_path": "data/case.sqlite"})
        assert load_app_config(base_dir).database_path == base_dir / "data" / "case.sqlite"

    def test_env_overrides(self, base_dir, monkeypatch, tmp_path):
        db_path = tmp_path / "elsewhere" / "case.sqlite"
        monkeypatch.setenv("TRAILSIFTER_DB_PATH", str(db_path))
        monkeypatch.setenv("TRAILSIFTER_LOG_LEVEL", "warning")
        _write_config(base_dir, {"logging": {"level": "DEBUG"}})

        config = load_app_config(base_dir)
        assert config.database_path == db_path
        assert config.logging.level == "WARNING"


class TestInvalidConfig:

    def test_non_mapping_document(self, base_dir):
        (base_dir / "config" / "config.yml").write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_app_config(base_dir)

    def test_non_mapping_section(self, base_dir):
        _write_config(base_dir, {"playback": [1, 2]})
        with pytest.raises(ValueError, match="playback"):
            load_app_config(base_dir)


def test_to_json(base_dir):
    data = json.loads(load_app_config(base_dir).to_json())
    assert data["tolerance_ms"] == 30_000
    assert data["snapshot_pattern"] == DEFAULT_SNAPSHOT_PATTERN
