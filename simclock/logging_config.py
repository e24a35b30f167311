"""Logging configuration utilities for simclock.

The library is silent by default (the ``simclock`` logger only carries a
NullHandler). Applications opt in with the helpers below:

    import simclock

    # Console logging; pass a clock to stamp records with simulation time
    simclock.enable_console_logging(level="DEBUG", clock=clock)

    # Rotating file logging
    simclock.enable_file_logging("simulation.log", max_bytes=10_000_000)

    # JSON lines for log aggregation
    simclock.enable_json_logging()

    # Configure from environment variables
    simclock.configure_from_env()

Environment variables:
    SIMCLOCK_LOGGING: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    SIMCLOCK_LOG_FILE: Path to log file (enables rotating file logging)
    SIMCLOCK_LOG_JSON: Set to "1" for JSON output
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from simclock.core.clock import Clock

__all__ = [
    "SimTimeFilter",
    "JsonFormatter",
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_file_logging",
    "enable_json_logging",
    "enable_timed_file_logging",
    "set_level",
    "set_module_level",
]

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
SIM_TIME_FORMAT = "%(asctime)s - t=%(sim_time)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5

LOGGER_NAME = "simclock"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class SimTimeFilter(logging.Filter):
    """Adds the clock's current time to every record as ``sim_time``."""

    def __init__(self, clock: Clock):
        super().__init__()
        self._clock = clock

    def filter(self, record: logging.LogRecord) -> bool:
        record.sim_time = self._clock.now
        return True


class JsonFormatter(logging.Formatter):
    """Formats log records as one JSON object per line.

    Example output:
        {"timestamp": "2024-01-15T10:30:00.123456+00:00", "level": "INFO",
         "logger": "simclock.core.clock", "message": "[Clock] Halted at t=3.0",
         "sim_time": 3.0}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        sim_time = getattr(record, "sim_time", None)
        if sim_time is not None:
            log_data["sim_time"] = sim_time
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def _get_level(level: str | int) -> int:
    """Convert a level string or int to a logging level constant."""
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def _get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def _clear_handlers() -> None:
    """Remove and close all handlers from the simclock logger except NullHandler."""
    logger = _get_logger()
    for handler in logger.handlers[:]:
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
            handler.close()


def _install(handler: logging.Handler, level: LogLevel | int, formatter: logging.Formatter, clock: Clock | None) -> None:
    logger = _get_logger()
    logger.setLevel(_get_level(level))
    handler.setLevel(_get_level(level))
    handler.setFormatter(formatter)
    if clock is not None:
        handler.addFilter(SimTimeFilter(clock))
    logger.addHandler(handler)


def enable_console_logging(
    level: LogLevel | int = "INFO",
    format: str | None = None,
    date_format: str = DEFAULT_DATE_FORMAT,
    clock: Clock | None = None,
) -> logging.StreamHandler:
    """Enable console (stderr) logging for simclock.

    Args:
        level: Log level name or int.
        format: Log message format. Defaults to DEFAULT_FORMAT, or
            SIM_TIME_FORMAT when a clock is given.
        date_format: Date format string for %(asctime)s.
        clock: Optional clock whose time is attached to each record.

    Returns:
        The created StreamHandler.
    """
    if format is None:
        format = SIM_TIME_FORMAT if clock is not None else DEFAULT_FORMAT
    handler = logging.StreamHandler()
    _install(handler, level, logging.Formatter(format, date_format), clock)
    return handler


def enable_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    format: str | None = None,
    date_format: str = DEFAULT_DATE_FORMAT,
    clock: Clock | None = None,
) -> RotatingFileHandler:
    """Enable rotating file logging for simclock.

    Args:
        path: Path to the log file. Parent directories are created automatically.
        level: Log level name or int.
        max_bytes: Maximum size of each log file in bytes. Default 10 MB.
        backup_count: Number of backup files to keep. Default 5.
        format: Log message format (see enable_console_logging).
        date_format: Date format string for %(asctime)s.
        clock: Optional clock whose time is attached to each record.
    """
    if format is None:
        format = SIM_TIME_FORMAT if clock is not None else DEFAULT_FORMAT
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
    _install(handler, level, logging.Formatter(format, date_format), clock)
    return handler


def enable_timed_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    when: str = "midnight",
    interval: int = 1,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    format: str | None = None,
    date_format: str = DEFAULT_DATE_FORMAT,
    clock: Clock | None = None,
) -> TimedRotatingFileHandler:
    """Enable file logging rotated on a wall-clock schedule.

    `when` and `interval` are passed to TimedRotatingFileHandler ("S", "M",
    "H", "D", "midnight", "W0"-"W6").
    """
    if format is None:
        format = SIM_TIME_FORMAT if clock is not None else DEFAULT_FORMAT
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(path, when=when, interval=interval, backupCount=backup_count)
    _install(handler, level, logging.Formatter(format, date_format), clock)
    return handler


def enable_json_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    clock: Clock | None = None,
) -> RotatingFileHandler:
    """Enable JSON lines written to a rotating file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
    _install(handler, level, JsonFormatter(), clock)
    return handler


def enable_json_logging(
    level: LogLevel | int = "INFO",
    path: str | Path | None = None,
    clock: Clock | None = None,
) -> logging.Handler:
    """Enable JSON logging to stderr, or to a rotating file when `path` is given."""
    if path is not None:
        return enable_json_file_logging(path, level=level, clock=clock)
    handler = logging.StreamHandler()
    _install(handler, level, JsonFormatter(), clock)
    return handler


def configure_from_env() -> None:
    """Configure logging from SIMCLOCK_LOGGING, SIMCLOCK_LOG_FILE and SIMCLOCK_LOG_JSON.

    Does nothing when neither a level nor a file is set.
    """
    level = os.environ.get("SIMCLOCK_LOGGING", "").upper()
    log_file = os.environ.get("SIMCLOCK_LOG_FILE", "")
    use_json = os.environ.get("SIMCLOCK_LOG_JSON", "") == "1"

    if not level and not log_file:
        return

    level = level or "INFO"

    if use_json:
        enable_json_logging(level=level, path=log_file or None)
    elif log_file:
        enable_file_logging(log_file, level=level)
    else:
        enable_console_logging(level=level)


def set_level(level: LogLevel | int) -> None:
    """Set the global log level for simclock."""
    _get_logger().setLevel(_get_level(level))


def set_module_level(module: str, level: LogLevel | int) -> None:
    """Set the log level for one submodule, e.g. set_module_level("core.clock", "DEBUG")."""
    logging.getLogger(f"{LOGGER_NAME}.{module}").setLevel(_get_level(level))


def disable_logging() -> None:
    """Remove all handlers and silence the simclock logger."""
    logger = _get_logger()
    _clear_handlers()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.CRITICAL + 1)
