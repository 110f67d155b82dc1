"""
Voice Style Store.

Kokoro voices ship as one numpy ``.npz`` archive (``voices-v1.0.bin``)
holding an array per voice. Row *i* of a voice's table is the style
vector to use for a phoneme sequence of length *i*:

    af_heart: float32[510, 1, 256]   (or [510, 256])

The store is loaded once per model load and never mutated afterwards;
style lookups hand out read-only views.
"""
from __future__ import annotations

import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np

from kokoro_stream.core.logging import get_logger, info
from kokoro_stream.services.errors import (
    ModelFilesMissingError,
    UnknownVoiceError,
    VoiceResourceCorruptError,
)
from kokoro_stream.tts.phonemizer import voice_language
from kokoro_stream.utils.timeit import timeit

_LOG = get_logger("kokoro-stream.voices")


@dataclass(frozen=True)
class Voice:
    """
    One voice's conditioning table.

    Attributes:
        voice_id: Archive entry name, e.g. "af_heart".
        language: Language implied by the id prefix.
        styles: float32[N, D], read-only.
    """
    voice_id: str
    language: str
    styles: np.ndarray

    @property
    def num_styles(self) -> int:
        return int(self.styles.shape[0])

    def style_for(self, length: int) -> np.ndarray:
        """Row min(length, N-1) as float32[1, D]; negative lengths map to row 0."""
        idx = min(max(int(length), 0), self.num_styles - 1)
        return self.styles[idx:idx + 1]


def _as_style_table(name: str, arr: np.ndarray, path: Path) -> np.ndarray:
    if not np.issubdtype(arr.dtype, np.floating):
        raise VoiceResourceCorruptError(
            f"voice {name!r} has non-float dtype {arr.dtype}",
            {"path": str(path), "voice": name},
        )
    if arr.ndim == 3 and arr.shape[1] == 1:
        arr = arr.reshape(arr.shape[0], arr.shape[2])
    if arr.ndim != 2 or arr.shape[0] < 1 or arr.shape[1] < 1:
        raise VoiceResourceCorruptError(
            f"voice {name!r} has unsupported shape {tuple(arr.shape)}",
            {"path": str(path), "voice": name},
        )
    table = np.ascontiguousarray(arr, dtype=np.float32)
    table.setflags(write=False)
    return table


class VoiceStore:
    """
    All voices of one model, keyed by id.

    Usage:
        store = VoiceStore.load("models/kokoro/voices-v1.0.bin")
        style = store.get_style("af_heart", length=42)   # float32[1, 256]
    """

    def __init__(self, voices: Dict[str, Voice]):
        if not voices:
            raise VoiceResourceCorruptError("voice store is empty")
        dims = {v.styles.shape[1] for v in voices.values()}
        if len(dims) != 1:
            raise VoiceResourceCorruptError(
                f"voices disagree on style dimension: {sorted(dims)}",
                {"dims": sorted(int(d) for d in dims)},
            )
        self._voices = dict(voices)
        self._dim = int(dims.pop())

    @classmethod
    def load(cls, path: Union[str, Path], expected_dim: Optional[int] = None) -> "VoiceStore":
        """
        Load a voices archive.

        Args:
            path: The .npz voices file.
            expected_dim: Style width the model expects, checked when given.

        Raises:
            ModelFilesMissingError: If the file does not exist.
            VoiceResourceCorruptError: If it cannot be parsed, is empty, or
                holds arrays of the wrong dtype, shape or width.
        """
        p = Path(path)
        if not p.is_file():
            raise ModelFilesMissingError(
                f"voices file not found: {p}",
                {"path": str(p), "file": p.name},
            )

        with timeit("voices_load") as t:
            voices: Dict[str, Voice] = {}
            try:
                archive = np.load(p, allow_pickle=False)
                if not hasattr(archive, "files"):
                    raise VoiceResourceCorruptError(
                        f"{p.name} is a single array, not a voice archive",
                        {"path": str(p)},
                    )
                with archive:
                    for name in archive.files:
                        styles = _as_style_table(name, archive[name], p)
                        voices[name] = Voice(name, voice_language(name), styles)
            except (OSError, ValueError, EOFError, zipfile.BadZipFile) as e:
                raise VoiceResourceCorruptError(
                    f"cannot parse voices file {p.name}: {e}",
                    {"path": str(p)},
                ) from e

            if not voices:
                raise VoiceResourceCorruptError(f"{p.name} contains no voices", {"path": str(p)})
            store = cls(voices)

        if expected_dim is not None and store.dim != expected_dim:
            raise VoiceResourceCorruptError(
                f"voice style width {store.dim} does not match model width {expected_dim}",
                {"path": str(p), "dim": store.dim, "expected": expected_dim},
            )

        info(_LOG, "voices_loaded", path=str(p), voices=len(store), dim=store.dim, seconds=round(t.seconds, 3))
        return store

    @property
    def dim(self) -> int:
        return self._dim

    def __len__(self) -> int:
        return len(self._voices)

    def __contains__(self, voice_id: object) -> bool:
        return voice_id in self._voices

    def list_voices(self) -> List[str]:
        return sorted(self._voices)

    def get_voice(self, voice_id: str) -> Voice:
        try:
            return self._voices[voice_id]
        except KeyError:
            raise UnknownVoiceError(
                f"voice {voice_id!r} not found; see list_voices()",
                {"voice": voice_id},
            ) from None

    def get_style(self, voice_id: str, length: int) -> np.ndarray:
        """
        Style vector for a phoneme sequence of the given length.

        Returns:
            float32[1, D], row min(length, N-1) of the voice's table.

        Raises:
            UnknownVoiceError: If voice_id is not in the store.
        """
        return self.get_voice(voice_id).style_for(length)
