from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_SNAPSHOT_PATTERN = (
    "filesystem1/private/var/mobile/Containers/Data/Application/*"
    "/Library/SplashBoard/Snapshots/*/*.ktx"
)
DEFAULT_CACHE_DB_PATH = (
    "filesystem1/private/var/mobile/Library/Caches/com.apple.routined/Cache.sqlite"
)
DEFAULT_DATABASE_NAME = "trailsifter.sqlite"


@dataclass(slots=True)
class LoggingConfig:
    """Logging configuration from config.yml."""

    level: str = "INFO"
    app_log_max_mb: int = 20
    app_log_backup_count: int = 5


@dataclass(slots=True)
class ExtractionConfig:
    """Archive extraction configuration from config.yml."""

    snapshot_pattern: str = DEFAULT_SNAPSHOT_PATTERN
    cache_db_path: str = DEFAULT_CACHE_DB_PATH
    snapshot_subdir: str = "ktx_files"  # Flat folder under the chosen destination
    chunk_size: int = 1024 * 1024


@dataclass(slots=True)
class CorrelationConfig:
    """Location/snapshot correlation settings."""

    tolerance_ms: int = 30_000


@dataclass(slots=True)
class PlaybackConfig:
    """Timeline playback settings."""

    step: int = 10
    tick_ms: int = 500


@dataclass(slots=True)
class AppConfig:
    """Top-level configuration resolved from disk."""

    base_dir: Path
    logs_dir: Path
    database_path: Path
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    correlation: CorrelationConfig = field(default_factory=CorrelationConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)

    def to_json(self) -> str:
        """Serialize the configuration into a JSON string for diagnostics."""
        data = {
            "logs_dir": str(self.logs_dir),
            "database_path": str(self.database_path),
            "snapshot_pattern": self.extraction.snapshot_pattern,
            "cache_db_path": self.extraction.cache_db_path,
            "tolerance_ms": self.correlation.tolerance_ms,
        }
        return json.dumps(data, indent=2, sort_keys=True)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle) or {}
        if not isinstance(content, dict):
            raise ValueError(f"Config file {path} must contain a mapping at the top level.")
        return content


def _section(overrides: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = overrides.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{name}' must be a mapping.")
    return section


def load_app_config(base_dir: Path) -> AppConfig:
    """Load application configuration from disk, providing sensible defaults."""

    config_yaml = base_dir / "config" / "config.yml"
    config_overrides = _load_yaml(config_yaml)

    logs_dir = base_dir / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    database_path = Path(config_overrides.get("database_path") or base_dir / DEFAULT_DATABASE_NAME)
    if "TRAILSIFTER_DB_PATH" in os.environ:
        database_path = Path(os.environ["TRAILSIFTER_DB_PATH"])
    if not database_path.is_absolute():
        database_path = base_dir / database_path

    logging_cfg = _section(config_overrides, "logging")
    logging_config = LoggingConfig(
        level=os.environ.get("TRAILSIFTER_LOG_LEVEL", logging_cfg.get("level", "INFO")).upper(),
        app_log_max_mb=int(logging_cfg.get("app_log_max_mb", 20)),
        app_log_backup_count=int(logging_cfg.get("app_log_backup_count", 5)),
    )

    extraction_cfg = _section(config_overrides, "extraction")
    extraction_config = ExtractionConfig(
        snapshot_pattern=extraction_cfg.get("snapshot_pattern", DEFAULT_SNAPSHOT_PATTERN),
        cache_db_path=extraction_cfg.get("cache_db_path", DEFAULT_CACHE_DB_PATH),
        snapshot_subdir=extraction_cfg.get("snapshot_subdir", "ktx_files"),
        chunk_size=int(extraction_cfg.get("chunk_size", 1024 * 1024)),
    )

    correlation_cfg = _section(config_overrides, "correlation")
    correlation_config = CorrelationConfig(
        tolerance_ms=int(correlation_cfg.get("tolerance_ms", 30_000)),
    )

    playback_cfg = _section(config_overrides, "playback")
    playback_config = PlaybackConfig(
        step=int(playback_cfg.get("step", 10)),
        tick_ms=int(playback_cfg.get("tick_ms", 500)),
    )

    return AppConfig(
        base_dir=base_dir,
        logs_dir=logs_dir,
        database_path=database_path,
        logging=logging_config,
        extraction=extraction_config,
        correlation=correlation_config,
        playback=playback_config,
    )
