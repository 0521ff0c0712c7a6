"""
Logging configuration for psychNet.

All modules obtain loggers through ``get_logger(__name__)`` so they live
under the ``psychNet`` hierarchy. Nothing is emitted until the application
calls ``setup_logging()``, which attaches console and/or rotating file
handlers to the ``psychNet`` root logger. Settings not passed explicitly are
read from environment variables.
"""

import json
import logging
import logging.handlers
import os
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any


ROOT_LOGGER_NAME = "psychNet"

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s.%(funcName)s:%(lineno)d | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
DEFAULT_BACKUP_COUNT = 5

ENV_LOG_LEVEL = "PSYNET_LOG_LEVEL"
ENV_LOG_FILE = "PSYNET_LOG_FILE"
ENV_LOG_CONSOLE = "PSYNET_LOG_CONSOLE"
ENV_LOG_JSON = "PSYNET_LOG_JSON"

# LogRecord attributes that are not user-supplied ``extra`` fields
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "exc_info", "exc_text",
    "stack_info", "message", "taskName",
})


class JSONFormatter(logging.Formatter):
    """
    Render log records as one JSON object per line.

    Fields passed through ``extra=`` (e.g. the timing details emitted by
    ``LoggingTimer``) are included as top-level keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_obj[key] = value

        return json.dumps(log_obj, default=str)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a psychNet module.

    Parameters
    ----------
    name : str
        Logger name, typically ``__name__``

    Examples
    --------
    >>> logger = get_logger(__name__)
    >>> logger.debug("Inserted node %d into face %d", 12, 3)
    """
    return logging.getLogger(name)


def _env_flag(env_var: str, default: bool) -> bool:
    value = os.getenv(env_var, "").strip().lower()
    if value in ("true", "yes", "1", "on"):
        return True
    if value in ("false", "no", "0", "off"):
        return False
    return default


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    console: Optional[bool] = None,
    json_format: Optional[bool] = None,
    format_string: Optional[str] = None,
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    force_setup: bool = False,
    library_levels: Optional[Dict[str, str]] = None
) -> logging.Logger:
    """
    Configure the ``psychNet`` root logger.

    Parameters
    ----------
    level : str, optional
        DEBUG, INFO, WARNING, ERROR or CRITICAL. Falls back to
        ``PSYNET_LOG_LEVEL`` and then INFO.
    log_file : str, optional
        Path of a rotating log file. Falls back to ``PSYNET_LOG_FILE``;
        no file handler when neither is set.
    console : bool, optional
        Log to stdout. Falls back to ``PSYNET_LOG_CONSOLE`` and then True.
    json_format : bool, optional
        Use ``JSONFormatter``. Falls back to ``PSYNET_LOG_JSON`` and then False.
    format_string : str, optional
        Custom format for the plain-text formatter.
    max_file_size : int, default 10MB
        Size at which the log file rotates.
    backup_count : int, default 5
        Number of rotated files kept.
    force_setup : bool, default False
        Replace existing handlers instead of returning early.
    library_levels : Dict[str, str], optional
        Levels for third-party loggers, passed to
        ``configure_external_library_logging``.

    Returns
    -------
    logging.Logger
        The configured ``psychNet`` logger

    Raises
    ------
    ValueError
        If the logging level is unknown

    Examples
    --------
    >>> logger = setup_logging(level="DEBUG", log_file="logs/psychnet.log")
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)

    if root_logger.handlers and not force_setup:
        return root_logger
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    level = level or os.getenv(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL)
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Invalid logging level: {level}")
    root_logger.setLevel(log_level)

    log_file = log_file or os.getenv(ENV_LOG_FILE)
    if console is None:
        console = _env_flag(ENV_LOG_CONSOLE, True)
    if json_format is None:
        json_format = _env_flag(ENV_LOG_JSON, False)

    if json_format:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            fmt=format_string or DEFAULT_LOG_FORMAT,
            datefmt=DEFAULT_DATE_FORMAT
        )

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.propagate = False
    configure_external_library_logging(library_levels)

    root_logger.info(
        "Logging configured: level=%s, console=%s, file=%s, json=%s",
        level.upper(), console, log_file or "None", json_format
    )
    return root_logger


def configure_external_library_logging(levels: Optional[Dict[str, str]] = None) -> None:
    """
    Quiet chatty third-party loggers.

    Parameters
    ----------
    levels : Dict[str, str], optional
        Library name to level. Defaults silence the process pool used for
        parallel betweenness below WARNING. Unknown level names are ignored.
    """
    levels = levels or {
        "concurrent.futures": "WARNING",
    }
    for library_name, level in levels.items():
        library_level = logging.getLevelName(level.upper())
        if isinstance(library_level, int):
            logging.getLogger(library_name).setLevel(library_level)


def log_function_entry(func_name: str, **kwargs) -> None:
    """Trace entry into a public operation at DEBUG level."""
    logger = get_logger(f"{ROOT_LOGGER_NAME}.debug")
    if logger.isEnabledFor(logging.DEBUG):
        param_str = ", ".join(f"{k}={v}" for k, v in kwargs.items())
        logger.debug("Entering %s(%s)", func_name, param_str)


def log_performance_metric(
    operation: str,
    duration: float,
    details: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log how long an operation took.

    Parameters
    ----------
    operation : str
        Name of the timed operation
    duration : float
        Duration in seconds
    details : Dict[str, Any], optional
        Problem size information (nodes, edges, ...)
    """
    logger = get_logger(f"{ROOT_LOGGER_NAME}.performance")

    message = f"Performance: {operation} completed in {duration:.3f}s"
    if details:
        message += " (" + ", ".join(f"{k}={v}" for k, v in details.items()) + ")"

    logger.info(message, extra={"operation": operation, "duration": duration})


class LoggingTimer:
    """
    Context manager that times a block and logs the duration.

    Examples
    --------
    >>> with LoggingTimer("build_tmfg", {"nodes": 48}):
    ...     pass
    """

    def __init__(self, operation: str, details: Optional[Dict[str, Any]] = None):
        self.operation = operation
        self.details = details or {}
        self.start_time: Optional[float] = None
        self.duration: Optional[float] = None

    def __enter__(self) -> "LoggingTimer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is not None:
            self.duration = time.perf_counter() - self.start_time
            log_performance_metric(self.operation, self.duration, self.details)
