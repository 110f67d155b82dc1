"""
Per-request and process-wide logging state.

The request id lives in a ContextVar, so every line logged during one
synthesize() call carries the same id. The streaming producer thread
runs under a copy of the caller's context, so its lines correlate too.

The verbosity level and the resolved handler settings are process-wide
and are held in a single ``_State`` instance.
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .levels import LogLevel

_request_id: ContextVar[str] = ContextVar("kokoro_stream_request_id", default="-")

# Environment variable -> (settings key, converter)
_ENV_OVERRIDES = {
    "KOKORO_STREAM_LOG_LEVEL": ("level", str),
    "KOKORO_STREAM_LOG_DIR": ("log_dir", str),
    "KOKORO_STREAM_JSONL_FILE": ("jsonl_file", str),
    "KOKORO_STREAM_LOG_ROTATE_BYTES": ("rotate_max_bytes", int),
    "KOKORO_STREAM_LOG_ROTATE_BACKUP": ("rotate_backup_count", int),
}


@dataclass
class _State:
    level: LogLevel = LogLevel.NORMAL
    configured: bool = False
    options: Dict[str, Any] = field(default_factory=dict)


STATE = _State()


def get_request_id() -> str:
    """Request id of the current context, "-" outside a request."""
    return _request_id.get()


def set_request_id(rid: str) -> None:
    _request_id.set(rid)


def get_level() -> LogLevel:
    return STATE.level


def set_level(level: LogLevel) -> None:
    STATE.level = level


def _settings_section(path: str) -> Optional[Dict[str, Any]]:
    if not os.path.isfile(path):
        return None
    from kokoro_stream.core.config import ConfigValidationError, load_settings

    try:
        settings = load_settings(path)
    except ConfigValidationError:
        return None
    return dict(settings.raw.get("logging") or {})


def read_logging_config() -> Dict[str, Any]:
    """
    Resolve handler settings.

    Environment variables win over the ``logging`` section of the
    settings file named by KOKORO_STREAM_SETTINGS. A missing or invalid
    settings file is ignored here; load_settings() reports it elsewhere.
    Malformed integer variables are ignored.
    """
    options = _settings_section(os.getenv("KOKORO_STREAM_SETTINGS", "config/settings.yaml")) or {}
    for var, (key, convert) in _ENV_OVERRIDES.items():
        raw = os.getenv(var)
        if not raw:
            continue
        try:
            options[key] = convert(raw)
        except ValueError:
            continue
    return options
