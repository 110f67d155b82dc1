"""Shared fixtures: a deterministic fake inference backend and synthetic model directories."""
from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pytest

from kokoro_stream.core.config import EngineConfig, ModelConfig, SegmenterConfig, StreamingConfig
from kokoro_stream.tts.session import InputSpec

STYLE_DIM = 256
STYLE_ROWS = 40
SAMPLES_PER_TOKEN = 30


class FakeBackend:
    """
    InferenceBackend stand-in.

    Each token becomes SAMPLES_PER_TOKEN samples of value id/256, so the
    output is a deterministic function of the input ids. Every call's
    inputs are recorded.
    """

    def __init__(
        self,
        token_name: str = "input_ids",
        speed_type: str = "tensor(float)",
        style_width: int = STYLE_DIM,
        fail_on_call: Optional[int] = None,
        fail_on_load: bool = False,
        delay: float = 0.0,
        empty_output: bool = False,
    ):
        self.token_name = token_name
        self.speed_type = speed_type
        self.style_width = style_width
        self.fail_on_call = fail_on_call
        self.fail_on_load = fail_on_load
        self.delay = delay
        self.empty_output = empty_output
        self.loaded: List[Path] = []
        self.calls: List[Dict[str, np.ndarray]] = []
        self._lock = threading.Lock()

    def load(self, path, options):
        if self.fail_on_load:
            raise RuntimeError("cannot parse graph")
        self.loaded.append(Path(path))
        return {"path": Path(path), "options": options}

    def input_specs(self, handle):
        return [
            InputSpec(self.token_name, "tensor(int64)", (1, "tokens")),
            InputSpec("style", "tensor(float)", (1, self.style_width)),
            InputSpec("speed", self.speed_type, (1,)),
        ]

    def run(self, handle, inputs):
        with self._lock:
            call_no = len(self.calls)
            self.calls.append({k: np.array(v, copy=True) for k, v in inputs.items()})
        if self.delay:
            time.sleep(self.delay)
        if self.fail_on_call is not None and call_no == self.fail_on_call:
            raise RuntimeError("kernel exploded")
        if self.empty_output:
            return [np.zeros((1, 0), dtype=np.float32)]
        ids = inputs[self.token_name][0, 1:-1]
        wav = np.repeat(ids.astype(np.float32) / 256.0, SAMPLES_PER_TOKEN)
        return [wav.reshape(1, -1)]

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.calls)


def make_styles(rows: int = STYLE_ROWS, dim: int = STYLE_DIM, offset: float = 0.0) -> np.ndarray:
    """Style table whose row i is filled with offset + i / 100."""
    values = offset + np.arange(rows, dtype=np.float32) / 100.0
    return np.repeat(values[:, None, None], dim, axis=2).astype(np.float32)


def write_voices(path: Path, voices: Dict[str, np.ndarray]) -> Path:
    with path.open("wb") as f:
        np.savez(f, **voices)
    return path


def write_model_dir(root: Path, voices: Optional[Dict[str, np.ndarray]] = None) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    for name in ("kokoro-v1.0.onnx", "kokoro-v1.0.fp16.onnx", "kokoro-v1.0.int8.onnx"):
        (root / name).write_bytes(b"fake-onnx")
    if voices is None:
        voices = {
            "af_test": make_styles(),
            "bm_test": make_styles(offset=1.0),
            "ef_test": make_styles(offset=2.0),
            "ff_test": make_styles(offset=3.0),
        }
    write_voices(root / "voices-v1.0.bin", voices)
    return root


def make_config(model_dir: Path, max_tokens: int = 510, lookahead: int = 1, **model_kwargs) -> EngineConfig:
    return EngineConfig(
        model=ModelConfig(model_dir=str(model_dir), **model_kwargs),
        segmenter=SegmenterConfig(max_tokens=max_tokens),
        streaming=StreamingConfig(lookahead=lookahead),
    )


LONG_TEXT = (
    "Hello, world. This is a test of the streaming engine, and it keeps going. "
    "We want several segments here; each one should arrive in order! "
    "Does it work? It should, because the segmenter cuts at punctuation."
)


@pytest.fixture(autouse=True)
def _no_settings_file(monkeypatch, tmp_path):
    """Keep tests independent of any config/settings.yaml in the working tree."""
    monkeypatch.setenv("KOKORO_STREAM_SETTINGS", str(tmp_path / "absent-settings.yaml"))
    monkeypatch.setenv("KOKORO_STREAM_NO_COLOR", "1")
    yield


@pytest.fixture
def model_dir(tmp_path) -> Path:
    return write_model_dir(tmp_path / "kokoro")


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def engine(model_dir, backend):
    from kokoro_stream.services.engine import Engine

    eng = Engine(make_config(model_dir, max_tokens=24), backend=backend)
    eng.load_model()
    yield eng
    eng.unload_model()
