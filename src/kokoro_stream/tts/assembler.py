"""
Segment Audio Assembly.

Adjacent segment waveforms are joined with a short linear crossfade to
hide the click at the cut. The overlap at each joint is

    ov = min(crossfade_samples, len(previous segment), len(next segment))

and the last ``ov`` output samples are blended with the first ``ov``
samples of the next segment:

    t = (i + 1) / (ov + 1)
    out[i] = out[i] * (1 - t) + next[i] * t

Streaming holds back the last ``crossfade_samples`` of output until the
next segment (or flush) arrives, so the concatenation of everything
push()/flush() return is exactly what assemble() returns for the same
waveforms.
"""
from __future__ import annotations

from typing import Iterable

import numpy as np

SAMPLE_RATE = 24000
DEFAULT_CROSSFADE_MS = 10

_EMPTY = np.zeros(0, dtype=np.float32)


def crossfade_samples(crossfade_ms: float, sample_rate: int = SAMPLE_RATE) -> int:
    """Crossfade width in samples (10 ms at 24 kHz -> 240)."""
    if crossfade_ms < 0:
        raise ValueError(f"crossfade_ms must be non-negative, got {crossfade_ms}")
    return int(round(crossfade_ms * sample_rate / 1000.0))


def _blend(dst: np.ndarray, src: np.ndarray) -> None:
    n = len(dst)
    t = (np.arange(1, n + 1, dtype=np.float32) / np.float32(n + 1))
    dst *= (np.float32(1.0) - t)
    dst += src * t


class StreamAssembler:
    """
    Crossfading joiner for one call's segment waveforms.

    Usage:
        asm = StreamAssembler(crossfade=240)
        for wav in segment_waveforms:
            send(asm.push(wav))
        send(asm.flush())
    """

    def __init__(self, crossfade: int = 240):
        if crossfade < 0:
            raise ValueError(f"crossfade must be non-negative, got {crossfade}")
        self.crossfade = int(crossfade)
        self._tail = _EMPTY
        self._prev_len = 0
        self._emitted = 0

    @classmethod
    def from_ms(cls, crossfade_ms: float, sample_rate: int = SAMPLE_RATE) -> "StreamAssembler":
        return cls(crossfade_samples(crossfade_ms, sample_rate))

    @property
    def samples_emitted(self) -> int:
        return self._emitted

    def push(self, waveform: np.ndarray) -> np.ndarray:
        """
        Add the next segment and return the audio that is now final.

        Empty waveforms are skipped and return an empty array.
        """
        wav = np.asarray(waveform, dtype=np.float32).reshape(-1)
        if wav.size == 0:
            return _EMPTY

        if self._prev_len == 0:
            out = wav.copy()
        else:
            ov = min(self.crossfade, self._prev_len, len(wav))
            head = self._tail.copy()
            if ov:
                _blend(head[len(head) - ov:], wav[:ov])
            out = np.concatenate([head, wav[ov:]])
        self._prev_len = len(wav)

        keep = min(self.crossfade, len(out))
        if keep:
            self._tail = out[len(out) - keep:]
            ready = out[:len(out) - keep]
        else:
            self._tail = _EMPTY
            ready = out
        self._emitted += len(ready)
        return ready

    def flush(self) -> np.ndarray:
        """Return the held-back tail and reset."""
        tail = self._tail
        self._tail = _EMPTY
        self._prev_len = 0
        self._emitted += len(tail)
        return tail

    def assemble(self, waveforms: Iterable[np.ndarray]) -> np.ndarray:
        """Crossfade all waveforms into one buffer."""
        asm = StreamAssembler(self.crossfade)
        parts = [asm.push(w) for w in waveforms]
        parts.append(asm.flush())
        parts = [p for p in parts if p.size]
        if not parts:
            return _EMPTY.copy()
        return np.concatenate(parts)


def assemble(waveforms: Iterable[np.ndarray], crossfade: int = 240) -> np.ndarray:
    """Module-level shortcut for StreamAssembler(crossfade).assemble(waveforms)."""
    return StreamAssembler(crossfade).assemble(waveforms)
