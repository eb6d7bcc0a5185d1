"""Tests for logging setup."""

import logging

import pytest

from spritefield import logging_utils
from spritefield.logging_utils import LogMode, get_log_mode, is_perf_logging_enabled, set_log_mode, setup_logging


@pytest.fixture
def scoped_logger():
    name = "spritefield.tests.scoped"
    logger = logging.getLogger(name)
    yield name
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    set_log_mode(LogMode.NORMAL)


def _handlers(logger):
    files = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
    consoles = [h for h in logger.handlers if not isinstance(h, logging.FileHandler)]
    return files, consoles


def test_setup_adds_file_and_console(tmp_path, scoped_logger):
    log_file = tmp_path / "logs" / "run.log"
    logger = setup_logging(level="DEBUG", log_file=log_file, logger_name=scoped_logger)
    files, consoles = _handlers(logger)
    assert len(files) == 1 and len(consoles) == 1
    logger.debug("hello %s", "file")
    files[0].flush()
    text = log_file.read_text()
    assert "DEBUG spritefield.tests.scoped: hello file" in text


def test_kv_format(tmp_path, scoped_logger):
    log_file = tmp_path / "kv.log"
    logger = setup_logging(log_file=log_file, logger_name=scoped_logger, kv_format=True, add_console=False)
    logger.info("ping")
    logger.handlers[0].flush()
    assert "level=INFO logger=spritefield.tests.scoped msg=ping" in log_file.read_text()


def test_repeat_call_only_adjusts_levels(tmp_path, scoped_logger):
    logger = setup_logging(level="INFO", log_file=tmp_path / "a.log", logger_name=scoped_logger)
    count = len(logger.handlers)
    setup_logging(level="ERROR", log_file=tmp_path / "b.log", logger_name=scoped_logger)
    assert len(logger.handlers) == count
    assert logger.level == logging.ERROR
    assert not (tmp_path / "b.log").exists()


def test_quiet_mode_raises_console_floor(tmp_path, scoped_logger):
    logger = setup_logging(level="DEBUG", log_file=tmp_path / "q.log", logger_name=scoped_logger, log_mode="quiet")
    files, consoles = _handlers(logger)
    assert files[0].level == logging.DEBUG
    assert consoles[0].level == logging.WARNING
    assert get_log_mode() is LogMode.QUIET


def test_perf_mode_forces_debug(scoped_logger):
    logger = setup_logging(level="WARNING", logger_name=scoped_logger, log_mode=LogMode.PERF, add_file=False)
    assert logger.level == logging.DEBUG
    assert is_perf_logging_enabled()


def test_unknown_mode_falls_back_to_normal():
    assert set_log_mode("chatty") is LogMode.NORMAL
    assert set_log_mode(None) is LogMode.NORMAL


def test_default_log_dir_honours_environment(tmp_path, monkeypatch):
    target = tmp_path / "custom"
    monkeypatch.setenv(logging_utils.LOG_DIR_ENV, str(target))
    assert logging_utils.get_default_log_dir() == target
    assert target.is_dir()
    assert logging_utils.get_default_log_path() == target / "spritefield.log"
