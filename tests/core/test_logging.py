"""Tests for application logging setup."""

import logging

import pytest

from core.logging import (
    LOG_FILE_NAME,
    ROOT_LOGGER_NAME,
    configure_logging,
    get_logger,
    parse_level,
    task_logger,
)


@pytest.fixture
def app_logger():
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


def _flush(logger):
    for handler in logger.handlers:
        handler.flush()


def test_configure_logging_writes_utc_file(tmp_path, app_logger):
    log_dir = tmp_path / "logs"
    configure_logging(log_dir, level="debug", max_bytes=1024 * 1024, backup_count=2)
    get_logger("core.test").info("hello %s", "world")
    _flush(app_logger)

    content = (log_dir / LOG_FILE_NAME).read_text(encoding="utf-8")
    assert "INFO trailsifter.core.test hello world" in content
    assert content.split(" ", 1)[0].endswith("Z")
    assert app_logger.level == logging.DEBUG


def test_configure_logging_replaces_handlers(tmp_path, app_logger):
    configure_logging(tmp_path / "a")
    configure_logging(tmp_path / "b")
    assert len(app_logger.handlers) == 2


def test_configure_logging_console_only(app_logger):
    configure_logging(None)
    assert len(app_logger.handlers) == 1
    assert not isinstance(app_logger.handlers[0], logging.FileHandler)


def test_configure_logging_without_console(tmp_path, app_logger):
    configure_logging(tmp_path, console=False)
    assert [type(h).__name__ for h in app_logger.handlers] == ["RotatingFileHandler"]


@pytest.mark.parametrize(
    "value, expected",
    [
        ("debug", logging.DEBUG),
        (" WARNING ", logging.WARNING),
        (logging.ERROR, logging.ERROR),
        ("chatty", logging.INFO),
        (None, logging.INFO),
        ("", logging.INFO),
    ],
)
def test_parse_level(value, expected):
    assert parse_level(value) == expected


def test_task_logger_prefixes_messages(tmp_path, app_logger):
    configure_logging(tmp_path, console=False)
    task_logger("ingest", "extractors.workers").warning("entry %d skipped", 3)
    _flush(app_logger)

    content = (tmp_path / LOG_FILE_NAME).read_text(encoding="utf-8")
    assert "WARNING trailsifter.extractors.workers [ingest] entry 3 skipped" in content


def test_get_logger_namespace():
    assert get_logger("extractors.archive").name == f"{ROOT_LOGGER_NAME}.extractors.archive"
    assert get_logger().name == ROOT_LOGGER_NAME
