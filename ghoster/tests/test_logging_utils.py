"""Tests for centralized logging configuration."""

import json
import logging
from pathlib import Path

from ..logging_utils import (
    LogMode,
    _TickTraceFilter,
    get_log_mode,
    is_quiet_logging_enabled,
    is_trace_logging_enabled,
    set_log_mode,
    setup_logging,
)


def _record(msg: str) -> logging.LogRecord:
    return logging.LogRecord("ghoster.test", logging.DEBUG, __file__, 1, msg, None, None)


def test_setup_logging_file_and_console_handlers(tmp_path: Path):
    log_file = tmp_path / "test.log"
    logger = setup_logging(
        level="DEBUG",
        log_file=str(log_file),
        json_format=False,
        add_console=True,
        logger_name="test_logging_utils.file_console",
    )
    logger.info("hello")
    for handler in logger.handlers:
        handler.flush()
    assert log_file.exists()
    assert "hello" in log_file.read_text(encoding="utf-8")


def test_setup_logging_idempotent(tmp_path: Path):
    log_file = tmp_path / "test2.log"
    name = "test_logging_utils.idempotent"
    logger1 = setup_logging(level="INFO", log_file=str(log_file), logger_name=name)
    count = len(logger1.handlers)
    logger2 = setup_logging(level="WARNING", log_file=str(log_file), logger_name=name)
    assert logger1 is logger2
    assert len(logger2.handlers) == count
    assert logger2.level == logging.WARNING


def test_log_mode_helpers_roundtrip():
    set_log_mode(LogMode.TRACE)
    assert get_log_mode() is LogMode.TRACE
    assert is_trace_logging_enabled() is True
    set_log_mode("quiet")
    assert get_log_mode() is LogMode.QUIET
    assert is_quiet_logging_enabled() is True
    set_log_mode("bogus")
    assert get_log_mode() is LogMode.NORMAL
    # Reset to default to avoid leaking state into other tests
    set_log_mode(LogMode.NORMAL)


def test_setup_logging_trace_forces_debug(tmp_path: Path):
    logger = setup_logging(
        level="INFO",
        log_file=str(tmp_path / "trace.log"),
        log_mode=LogMode.TRACE,
        logger_name="test_logging_utils.trace",
    )
    assert logger.level == logging.DEBUG
    set_log_mode(LogMode.NORMAL)


def test_quiet_mode_raises_console_level(tmp_path: Path):
    logger = setup_logging(
        level="INFO",
        log_file=str(tmp_path / "quiet.log"),
        log_mode=LogMode.QUIET,
        logger_name="test_logging_utils.quiet",
    )
    console = [h for h in logger.handlers if type(h) is logging.StreamHandler]
    assert console and console[0].level == logging.WARNING
    set_log_mode(LogMode.NORMAL)


def test_tick_lines_filtered_unless_enabled(monkeypatch):
    tick_filter = _TickTraceFilter()
    monkeypatch.delenv("GHOSTER_TICK_TRACE", raising=False)
    set_log_mode(LogMode.NORMAL)
    assert tick_filter.filter(_record("[tick] [scheduler] e=1.00/6.00")) is False
    assert tick_filter.filter(_record("[scheduler] Paused")) is True

    monkeypatch.setenv("GHOSTER_TICK_TRACE", "1")
    assert tick_filter.filter(_record("[tick] [scheduler] e=1.00/6.00")) is True

    monkeypatch.delenv("GHOSTER_TICK_TRACE")
    set_log_mode(LogMode.TRACE)
    assert tick_filter.filter(_record("[tick] [events] Emitting")) is True
    set_log_mode(LogMode.NORMAL)


def test_json_format_writes_one_object_per_line(tmp_path: Path):
    log_file = tmp_path / "json.log"
    logger = setup_logging(
        level="INFO",
        log_file=str(log_file),
        json_format=True,
        add_console=False,
        logger_name="test_logging_utils.json",
    )
    logger.info("shot %d", 3)
    for handler in logger.handlers:
        handler.flush()
    entry = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
    assert entry["message"] == "shot 3"
    assert entry["level"] == "INFO"
    assert entry["logger"] == "test_logging_utils.json"
