"""Core layer: configuration, logging, records, correlation and the case store."""

from .config import AppConfig, load_app_config  # noqa: F401
from .database import init_db, migrate  # noqa: F401
