"""
Audio Utilities.

All audio produced by kokoro-stream is mono float32 in [-1, 1] at 24 kHz.
These helpers encode it for storage or transport:

    wav_bytes_from_float32: in-memory WAV (PCM 16-bit by default)
    write_wav: WAV file on disk
    float32_to_pcm16: raw little-endian int16 samples, for players and sockets

Dependencies:
    - numpy
    - soundfile (libsndfile)
"""
from __future__ import annotations

import io
from pathlib import Path
from typing import Dict, Union

import numpy as np
import soundfile as sf

from kokoro_stream.core.logging import get_logger, verbose
from kokoro_stream.utils.timeit import timeit

_LOG = get_logger("kokoro-stream.audio")

_SUBTYPES = ("PCM_16", "FLOAT")


def _as_mono(waveform: np.ndarray) -> np.ndarray:
    wav = np.asarray(waveform, dtype=np.float32)
    if wav.ndim > 1:
        wav = wav.reshape(-1)
    return wav


def wav_bytes_from_float32(
    waveform: np.ndarray,
    sample_rate: int,
    subtype: str = "PCM_16",
) -> tuple[bytes, Dict[str, float]]:
    """
    Encode a float32 waveform as WAV bytes.

    Args:
        waveform: Samples, flattened to mono if multi-dimensional.
        sample_rate: Sample rate in Hz.
        subtype: "PCM_16" or "FLOAT".

    Returns:
        Tuple of (wav_bytes, timings) with timings["wav_encode"] in seconds.
    """
    if subtype not in _SUBTYPES:
        raise ValueError(f"unsupported WAV subtype: {subtype}")

    timings: Dict[str, float] = {}
    with timeit("wav_encode") as t:
        buf = io.BytesIO()
        sf.write(buf, _as_mono(waveform), sample_rate, format="WAV", subtype=subtype)
        out = buf.getvalue()

    timings["wav_encode"] = t.seconds
    verbose(_LOG, "wav_encoded", bytes=len(out), sr=sample_rate, seconds=round(t.seconds, 4))
    return out, timings


def wav_bytes_to_float32(wav_bytes: bytes) -> tuple[np.ndarray, int]:
    """Decode WAV bytes to (mono float32 samples, sample_rate)."""
    wav, sr = sf.read(io.BytesIO(wav_bytes), dtype="float32")
    if wav.ndim > 1:
        wav = wav.mean(axis=1)
    return np.asarray(wav, dtype=np.float32), int(sr)


def write_wav(
    path: Union[str, Path],
    waveform: np.ndarray,
    sample_rate: int,
    subtype: str = "PCM_16",
) -> Path:
    """
    Write a waveform to a WAV file, creating parent directories.

    Returns:
        The path written.
    """
    if subtype not in _SUBTYPES:
        raise ValueError(f"unsupported WAV subtype: {subtype}")
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    sf.write(str(p), _as_mono(waveform), sample_rate, format="WAV", subtype=subtype)
    verbose(_LOG, "wav_written", path=str(p), samples=int(np.size(waveform)), sr=sample_rate)
    return p


def float32_to_pcm16(waveform: np.ndarray) -> bytes:
    """Clip to [-1, 1] and convert to little-endian int16 bytes."""
    wav = np.clip(_as_mono(waveform), -1.0, 1.0)
    return (wav * 32767.0).astype("<i2").tobytes()
