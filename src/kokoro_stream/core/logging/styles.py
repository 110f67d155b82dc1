"""
ANSI styling for console log lines.

Styling is off when stderr is not a terminal, when NO_COLOR is set
(https://no-color.org/) or when KOKORO_STREAM_NO_COLOR=1.
"""
from __future__ import annotations

import os
import sys

RESET = "\033[0m"
DIM = "\033[2m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
MAGENTA = "\033[35m"
CYAN = "\033[36m"
GRAY = "\033[90m"

TAG_STYLES = {
    "SUCCESS": "\033[92m",
    "FAIL": "\033[91m",
    "ERROR": "\033[91m",
    "WARN": "\033[93m",
    "INFO": "\033[96m",
    "DEBUG": GRAY,
}


def color_enabled(stream=None) -> bool:
    """True when ANSI sequences should be written to ``stream`` (stderr by default)."""
    if os.getenv("KOKORO_STREAM_NO_COLOR", "0") == "1" or os.getenv("NO_COLOR"):
        return False
    stream = stream if stream is not None else sys.stderr
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


USE_COLORS = color_enabled()


def paint(text: str, style: str) -> str:
    if not USE_COLORS or not style:
        return text
    return f"{style}{text}{RESET}"


def by_threshold(value: float, green_below: float, yellow_below: float) -> str:
    """Green, yellow or red depending on where ``value`` falls."""
    if value < green_below:
        return GREEN
    if value < yellow_below:
        return YELLOW
    return RED
