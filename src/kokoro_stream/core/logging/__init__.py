"""
Structured logging for kokoro-stream.

Every line carries a tag, the request id of the synthesis call it
belongs to, and optional ``event``/``seconds`` fields plus arbitrary
key=value pairs. Lines go to stderr and, when a log directory is set,
to a rotating JSONL file.

Levels (see levels.py): 1 MINIMAL, 2 NORMAL (default), 3 VERBOSE, 4 DEBUG.

Set through KOKORO_STREAM_LOG_LEVEL / KOKORO_STREAM_LOG_DIR /
KOKORO_STREAM_NO_COLOR or the ``logging`` section of settings.yaml:

    logging:
      level: 2
      log_dir: logs
      jsonl_file: kokoro-stream.jsonl

Usage:
    _LOG = get_logger("kokoro-stream.engine")
    info(_LOG, "synth_done", voice="af_heart", segments=2, seconds=0.31)
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from . import styles
from .context import STATE, get_level, get_request_id, read_logging_config, set_level, set_request_id
from .formatters import ColoredConsoleFormatter, JsonlFormatter
from .levels import LogLevel, coerce_level

PACKAGE_LOGGER = "kokoro-stream"


def _file_handler(options: dict) -> Optional[logging.Handler]:
    log_dir = options.get("log_dir")
    if not log_dir:
        return None
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        directory / str(options.get("jsonl_file", "kokoro-stream.jsonl")),
        maxBytes=int(options.get("rotate_max_bytes", 10 * 1024 * 1024)),
        backupCount=int(options.get("rotate_backup_count", 5)),
        encoding="utf-8",
        delay=True,
    )
    handler.setLevel(1)
    handler.setFormatter(JsonlFormatter())
    return handler


def configure_logging(level: Optional[int | str | LogLevel] = None, force: bool = False) -> None:
    """
    Attach handlers to the ``kokoro-stream`` logger.

    The root logger is left alone so that applications embedding the
    engine keep control of their own logging. Calling again is a no-op
    unless ``force`` is set.
    """
    if STATE.configured and not force:
        return

    styles.USE_COLORS = styles.color_enabled()
    STATE.options = read_logging_config()
    set_level(coerce_level(level if level is not None else STATE.options.get("level", LogLevel.NORMAL)))

    pkg = logging.getLogger(PACKAGE_LOGGER)
    pkg.setLevel(1)
    pkg.propagate = False
    while pkg.handlers:
        old = pkg.handlers[0]
        pkg.removeHandler(old)
        old.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(get_level().python_level)
    console.setFormatter(ColoredConsoleFormatter())
    pkg.addHandler(console)

    file_handler = _file_handler(STATE.options)
    if file_handler is not None:
        pkg.addHandler(file_handler)

    STATE.configured = True


def get_logger(name: str = PACKAGE_LOGGER) -> logging.Logger:
    """Logger under the kokoro-stream tree; configures logging on first use."""
    configure_logging()
    return logging.getLogger(name)


def _emit(logger: logging.Logger, tag: str, verbosity: LogLevel, msg: str,
          fields: dict, python_level: Optional[int] = None) -> None:
    if verbosity > get_level():
        return
    event = fields.pop("event", None)
    seconds = fields.pop("seconds", None)
    logger.log(
        python_level if python_level is not None else verbosity.python_level,
        msg,
        extra={
            "tag": tag,
            "request_id": get_request_id(),
            "event": event,
            "seconds": seconds,
            "extra_data": fields or None,
            "numeric_level": int(verbosity),
        },
    )


def info(logger: logging.Logger, msg: str, **fields: Any) -> None:
    _emit(logger, "INFO", LogLevel.NORMAL, msg, fields)


def warn(logger: logging.Logger, msg: str, **fields: Any) -> None:
    _emit(logger, "WARN", LogLevel.NORMAL, msg, fields, logging.WARNING)


def error(logger: logging.Logger, msg: str, **fields: Any) -> None:
    _emit(logger, "ERROR", LogLevel.MINIMAL, msg, fields, logging.ERROR)


def success(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Milestones such as a finished model load; shown even at MINIMAL."""
    _emit(logger, "SUCCESS", LogLevel.MINIMAL, msg, fields)


def fail(logger: logging.Logger, msg: str, **fields: Any) -> None:
    _emit(logger, "FAIL", LogLevel.MINIMAL, msg, fields, logging.ERROR)


def verbose(logger: logging.Logger, msg: str, **fields: Any) -> None:
    _emit(logger, "INFO", LogLevel.VERBOSE, msg, fields)


def debug(logger: logging.Logger, msg: str, **fields: Any) -> None:
    _emit(logger, "DEBUG", LogLevel.DEBUG, msg, fields)


__all__ = [
    "LogLevel",
    "coerce_level",
    "get_request_id",
    "set_request_id",
    "get_level",
    "JsonlFormatter",
    "ColoredConsoleFormatter",
    "configure_logging",
    "get_logger",
    "info",
    "warn",
    "error",
    "success",
    "fail",
    "verbose",
    "debug",
]
