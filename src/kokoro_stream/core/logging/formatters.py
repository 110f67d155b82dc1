"""
Record formatters.

JsonlFormatter writes one JSON object per line for the rotating file:

    {"ts":"2026-01-15T14:30:05+03:00","level":3,"tag":"INFO","message":"segment_done","request_id":"a1b2c3d4","seconds":0.041,"extra":{"index":0,"total":2}}

ColoredConsoleFormatter writes a short line for the terminal:

    14:30:05 [ INFO  ] (a1b2c3d4) segment_done index=0 total=2 0.041s
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from . import styles

_HIGHLIGHT_KEYS = frozenset({"voice", "variant", "mode"})


@dataclass
class _Fields:
    """Structured attributes attached by the level helpers."""
    tag: str
    level: int
    request_id: str
    event: Optional[str]
    seconds: Optional[float]
    extra: Dict[str, Any]

    @classmethod
    def of(cls, record: logging.LogRecord) -> "_Fields":
        return cls(
            tag=getattr(record, "tag", record.levelname),
            level=getattr(record, "numeric_level", 2),
            request_id=getattr(record, "request_id", "-"),
            event=getattr(record, "event", None),
            seconds=getattr(record, "seconds", None),
            extra=getattr(record, "extra_data", None) or {},
        )


class JsonlFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        f = _Fields.of(record)
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "level": f.level,
            "tag": f.tag,
            "message": record.getMessage(),
            "request_id": f.request_id,
        }
        if f.event:
            payload["event"] = f.event
        if f.seconds is not None:
            payload["seconds"] = f.seconds
        if f.extra:
            payload["extra"] = f.extra
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """
    One line per record. Durations are colored green under 0.1s, yellow
    under 1s and red above; ``rtf`` values green under 0.5, yellow under 1.
    """

    def format(self, record: logging.LogRecord) -> str:
        f = _Fields.of(record)
        paint = styles.paint

        out = [
            paint(datetime.fromtimestamp(record.created).strftime("%H:%M:%S"), styles.DIM),
            paint(f"[{f.tag:^7}]", styles.TAG_STYLES.get(f.tag.upper(), "")),
        ]
        if f.request_id != "-":
            out.append(paint(f"({f.request_id})", styles.DIM + styles.CYAN))
        out.append(record.getMessage())
        if f.event:
            out.append(paint(f"event={f.event}", styles.BLUE))
        out.extend(paint(f"{k}={v}", self._style_for(k, v)) for k, v in f.extra.items())
        if f.seconds is not None:
            out.append(paint(f"{f.seconds:.3f}s", styles.by_threshold(f.seconds, 0.1, 1.0)))
        return " ".join(out)

    @staticmethod
    def _style_for(key: str, value: Any) -> str:
        if key == "rtf" and isinstance(value, (int, float)):
            return styles.by_threshold(value, 0.5, 1.0)
        if key in _HIGHLIGHT_KEYS:
            return styles.MAGENTA
        return styles.DIM
