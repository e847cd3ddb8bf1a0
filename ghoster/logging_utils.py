"""Logging setup shared by the CLI, the workout window and run.py.

One call to ``setup_logging`` attaches a rotating log file in the per-user
Ghoster directory plus a stderr console handler. The scheduler logs a
``[tick]`` line on every 100 ms progress tick; those lines are dropped by
a filter unless the trace preset (or ``GHOSTER_TICK_TRACE=1``) is active.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
from enum import Enum
from pathlib import Path
from typing import Optional

from .platform_paths import ensure_dir, get_log_dir


DEFAULT_LOG_FILENAME = "ghoster.log"
LOG_FILE_MAX_BYTES = 1_000_000
LOG_FILE_BACKUPS = 3

_PLAIN_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%H:%M:%S"
_TICK_PREFIX = "[tick]"
_TICK_TRACE_FLAG = "GHOSTER_TICK_TRACE"


class LogMode(str, Enum):
    """Verbosity presets selected with ``--log-mode`` or GHOSTER_LOG_MODE."""

    QUIET = "quiet"    # console shows warnings and errors only
    NORMAL = "normal"
    TRACE = "trace"    # DEBUG everywhere, tick lines included


_active_mode: LogMode = LogMode.NORMAL


def get_default_log_dir() -> Path:
    try:
        return ensure_dir(get_log_dir())
    except OSError:
        return Path.cwd()


def get_default_log_path() -> Path:
    return get_default_log_dir() / DEFAULT_LOG_FILENAME


def set_log_mode(mode: LogMode | str | None) -> LogMode:
    """Select the active preset; unknown names fall back to normal."""
    global _active_mode
    if isinstance(mode, LogMode):
        _active_mode = mode
    else:
        try:
            _active_mode = LogMode((mode or "normal").lower())
        except ValueError:
            _active_mode = LogMode.NORMAL
    return _active_mode


def get_log_mode() -> LogMode:
    return _active_mode


def is_trace_logging_enabled() -> bool:
    return _active_mode is LogMode.TRACE


def is_quiet_logging_enabled() -> bool:
    return _active_mode is LogMode.QUIET


class _TickTraceFilter(logging.Filter):
    """Drops scheduler tick lines unless tick tracing is on."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not str(record.msg).startswith(_TICK_PREFIX):
            return True
        if os.environ.get(_TICK_TRACE_FLAG, "").strip().lower() in ("1", "true", "yes", "on"):
            return True
        return is_trace_logging_enabled()


class _JsonFormatter(logging.Formatter):
    """One JSON object per line (``--log-format json``)."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record, _DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


_tick_filter = _TickTraceFilter()


def _level_number(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def _is_console(handler: logging.Handler) -> bool:
    # File handlers subclass StreamHandler too
    return isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler)


def _open_log_file(path: Path) -> Optional[logging.Handler]:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return logging.handlers.RotatingFileHandler(
            path, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding="utf-8"
        )
    except OSError as e:
        logging.getLogger(__name__).warning("Log file %s unavailable (%s); logging to console only", path, e)
        return None


def setup_logging(
    *,
    level: str | int = "INFO",
    log_file: Optional[str | Path] = None,
    json_format: bool = False,
    logger_name: Optional[str] = None,
    log_mode: LogMode | str | None = None,
    add_console: bool = True,
) -> logging.Logger:
    """Configure the root logger (or ``logger_name``) and return it.

    Args:
        level: DEBUG / INFO / WARNING / ERROR (or a logging level number)
        log_file: Rotating log file path (default: per-user log directory)
        json_format: Write one JSON object per record instead of plain text
        logger_name: Configure this logger instead of the root logger
        log_mode: quiet / normal / trace preset; None keeps the current one
        add_console: Also log to stderr

    Calling it again only adjusts levels; handlers are never duplicated.
    """
    mode = set_log_mode(log_mode) if log_mode is not None else get_log_mode()
    file_level = _level_number(level)
    if mode is LogMode.TRACE:
        file_level = min(file_level, logging.DEBUG)
    console_level = max(file_level, logging.WARNING) if mode is LogMode.QUIET else file_level

    logger = logging.getLogger(logger_name) if logger_name else logging.getLogger()
    logger.setLevel(file_level)

    if not logger.handlers:
        formatter = _JsonFormatter() if json_format else logging.Formatter(_PLAIN_FORMAT, _DATE_FORMAT)
        handlers = [_open_log_file(Path(log_file) if log_file else get_default_log_path())]
        if add_console:
            handlers.append(logging.StreamHandler())
        for handler in handlers:
            if handler is None:
                continue
            handler.setFormatter(formatter)
            logger.addHandler(handler)

    for handler in logger.handlers:
        handler.setLevel(console_level if _is_console(handler) else file_level)
        if _tick_filter not in handler.filters:
            handler.addFilter(_tick_filter)
    return logger
