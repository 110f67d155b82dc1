"""
Verbosity levels.

Four numeric levels, higher is chattier:

    1 = MINIMAL  - model load/unload, failures
    2 = NORMAL   - one line per synthesis call (default)
    3 = VERBOSE  - per-stage and per-segment timings
    4 = DEBUG    - tensor shapes, phoneme ids

Each level is emitted at a Python logging level so that handler
thresholds keep working: WARNING, INFO, DEBUG and 5.
"""
from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any


class LogLevel(IntEnum):
    MINIMAL = 1
    NORMAL = 2
    VERBOSE = 3
    DEBUG = 4

    @property
    def python_level(self) -> int:
        return _PYTHON_LEVELS[self]


_PYTHON_LEVELS = {
    LogLevel.MINIMAL: logging.WARNING,
    LogLevel.NORMAL: logging.INFO,
    LogLevel.VERBOSE: logging.DEBUG,
    LogLevel.DEBUG: logging.DEBUG - 5,
}

# Aliases accepted on top of the member names and "1".."4".
_ALIASES = {
    "TRACE": LogLevel.DEBUG,
    "CRITICAL": LogLevel.MINIMAL,
    "ERROR": LogLevel.MINIMAL,
    "WARNING": LogLevel.MINIMAL,
    "WARN": LogLevel.MINIMAL,
    "INFO": LogLevel.NORMAL,
}


def _from_python_level(value: int) -> LogLevel:
    if value >= logging.WARNING:
        return LogLevel.MINIMAL
    if value >= logging.INFO:
        return LogLevel.NORMAL
    return LogLevel.DEBUG


def coerce_level(value: Any) -> LogLevel:
    """
    Read a level from settings or the environment.

    Accepts a LogLevel, an int 1-4, a Python logging level (10, 20, ...),
    a member name, a Python level name or a digit string. Anything else
    gives NORMAL.

        >>> coerce_level("info")
        <LogLevel.NORMAL: 2>
        >>> coerce_level(logging.DEBUG)
        <LogLevel.DEBUG: 4>
    """
    if isinstance(value, bool) or value is None:
        return LogLevel.NORMAL
    if isinstance(value, int):
        if LogLevel.MINIMAL <= value <= LogLevel.DEBUG:
            return LogLevel(value)
        return _from_python_level(value)
    if not isinstance(value, str):
        return LogLevel.NORMAL

    key = value.strip().upper()
    if key.isdigit():
        return coerce_level(int(key))
    if key in LogLevel.__members__:
        return LogLevel[key]
    return _ALIASES.get(key, LogLevel.NORMAL)
