"""
Stage timing for the synthesis pipeline.

    with timeit("infer", meta={"tokens": len(ids)}) as t:
        audio = session.infer(ids, style)
    accumulate(timings, "infer", t.seconds)
"""
from __future__ import annotations

from dataclasses import dataclass
from time import perf_counter
from typing import Any, Dict, Optional


@dataclass
class Timing:
    name: str
    seconds: float
    meta: Optional[Dict[str, Any]] = None


class timeit:
    """Measures a block with perf_counter(); ``timing`` is set on exit, also when the block raised."""

    def __init__(self, name: str, meta: Optional[Dict[str, Any]] = None):
        self.name = name
        self.meta = meta
        self.timing: Optional[Timing] = None
        self._start = 0.0

    def __enter__(self) -> "timeit":
        self._start = perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.timing = Timing(self.name, perf_counter() - self._start, self.meta)

    @property
    def seconds(self) -> float:
        """Elapsed seconds, or -1.0 while the block is still running."""
        return -1.0 if self.timing is None else self.timing.seconds


def accumulate(timings: Dict[str, float], key: str, seconds: float) -> None:
    """Add ``seconds`` to ``timings[key]``, starting from zero."""
    timings[key] = timings.get(key, 0.0) + seconds
