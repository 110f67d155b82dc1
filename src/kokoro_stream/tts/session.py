"""
Kokoro Inference Session.

Wraps one loaded Kokoro graph behind ``infer(ids, style, speed)``.

Model signature (Kokoro v1.0 ONNX):
    inputs:  input_ids | tokens  int64[1, L]   (L = len(ids) + 2, zero padded)
             style               float32[1, 256]
             speed               float32[1] or int32[1]
    outputs: waveform            float32[..., n] at 24 kHz (first output)

The runtime itself sits behind the InferenceBackend protocol so tests
and alternative runtimes can plug in. OnnxRuntimeBackend is the default.

Optimized-graph cache:
    With a cache path configured, the first load optimizes the graph at
    ORT_ENABLE_ALL and serializes it; later loads read the serialized
    graph with optimizations disabled, which cuts cold start to well
    under a second.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Union

import numpy as np

from kokoro_stream.core.logging import debug, get_logger, info, warn
from kokoro_stream.services.errors import (
    InferenceError,
    InvalidInputError,
    ModelFilesMissingError,
    VoiceResourceCorruptError,
)
from kokoro_stream.tts.segmenter import MAX_TOKENS
from kokoro_stream.tts.vocab import PAD_ID
from kokoro_stream.utils.timeit import timeit

_LOG = get_logger("kokoro-stream.session")

SAMPLE_RATE = 24000
STYLE_DIM = 256

_TOKEN_INPUT_NAMES = ("input_ids", "tokens")


class ModelVariant(str, Enum):
    """Precision variants of the Kokoro graph."""
    FULL = "full"
    HALF = "half"
    QUANTIZED = "quantized"

    @property
    def default_filename(self) -> str:
        return _DEFAULT_FILES[self]

    @classmethod
    def parse(cls, value: Union[str, "ModelVariant"]) -> "ModelVariant":
        if isinstance(value, ModelVariant):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidInputError(
                f"unknown model variant {value!r}; expected one of {', '.join(v.value for v in cls)}",
                {"variant": str(value)},
            ) from None


_DEFAULT_FILES = {
    ModelVariant.FULL: "kokoro-v1.0.onnx",
    ModelVariant.HALF: "kokoro-v1.0.fp16.onnx",
    ModelVariant.QUANTIZED: "kokoro-v1.0.int8.onnx",
}


@dataclass(frozen=True)
class InputSpec:
    """Name, element type (e.g. "tensor(int64)") and shape of a graph input."""
    name: str
    type: str
    shape: Sequence[Any] = ()


@dataclass(frozen=True)
class RuntimeOptions:
    """
    Backend load options.

    Attributes:
        num_threads: Intra/inter-op threads; 0 lets the runtime decide.
        optimized_cache_path: Where to keep the optimized graph, or None.
    """
    num_threads: int = 0
    optimized_cache_path: Optional[Path] = None


class InferenceBackend(Protocol):
    """What InferenceSession needs from a neural runtime."""

    def load(self, path: Path, options: RuntimeOptions) -> Any:
        ...

    def run(self, handle: Any, inputs: Dict[str, np.ndarray]) -> List[np.ndarray]:
        ...

    def input_specs(self, handle: Any) -> List[InputSpec]:
        ...


class OnnxRuntimeBackend:
    """onnxruntime on the CPU execution provider."""

    def load(self, path: Path, options: RuntimeOptions) -> Any:
        import onnxruntime as ort

        so = ort.SessionOptions()
        load_path = Path(path)
        cache = options.optimized_cache_path
        if cache is not None and cache.exists():
            info(_LOG, "optimized_graph_cached", path=str(cache))
            so.graph_optimization_level = ort.GraphOptimizationLevel.ORT_DISABLE_ALL
            load_path = cache
        else:
            so.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
            if cache is not None:
                info(_LOG, "optimized_graph_build", path=str(cache))
                cache.parent.mkdir(parents=True, exist_ok=True)
                so.optimized_model_filepath = str(cache)

        if options.num_threads > 0:
            so.intra_op_num_threads = options.num_threads
            so.inter_op_num_threads = options.num_threads

        return ort.InferenceSession(str(load_path), sess_options=so, providers=["CPUExecutionProvider"])

    def run(self, handle: Any, inputs: Dict[str, np.ndarray]) -> List[np.ndarray]:
        return handle.run(None, inputs)

    def input_specs(self, handle: Any) -> List[InputSpec]:
        return [InputSpec(i.name, str(i.type), tuple(i.shape or ())) for i in handle.get_inputs()]


def resolve_model_file(
    model_dir: Union[str, Path],
    variant: ModelVariant,
    file_names: Optional[Mapping[ModelVariant, str]] = None,
) -> Path:
    """
    Path of the graph file for variant.

    Raises:
        ModelFilesMissingError: If the directory or the file is missing.
    """
    d = Path(model_dir)
    if not d.is_dir():
        raise ModelFilesMissingError(f"model directory not found: {d}", {"path": str(d)})
    name = (file_names or {}).get(variant) or variant.default_filename
    p = d / name
    if not p.is_file():
        raise ModelFilesMissingError(
            f"{variant.value} model file not found: {p}",
            {"path": str(p), "file": name, "variant": variant.value},
        )
    return p


class InferenceSession:
    """
    One loaded Kokoro graph.

    ``infer`` calls are serialized with a lock; use a SessionPool of
    several sessions for parallel synthesis.
    """

    def __init__(
        self,
        backend: InferenceBackend,
        handle: Any,
        model_path: Path,
        variant: ModelVariant,
        token_input: str,
        speed_dtype: type,
        style_dim: int = STYLE_DIM,
    ):
        self.backend = backend
        self.model_path = model_path
        self.variant = variant
        self.token_input = token_input
        self.speed_dtype = speed_dtype
        self.style_dim = style_dim
        self.sample_rate = SAMPLE_RATE
        self._handle = handle
        self._lock = threading.Lock()

    @classmethod
    def open(
        cls,
        model_dir: Union[str, Path],
        variant: ModelVariant = ModelVariant.QUANTIZED,
        backend: Optional[InferenceBackend] = None,
        style_dim: int = STYLE_DIM,
        file_names: Optional[Mapping[ModelVariant, str]] = None,
        options: Optional[RuntimeOptions] = None,
    ) -> "InferenceSession":
        """
        Load the variant's graph from model_dir.

        Raises:
            ModelFilesMissingError: If the graph file is missing.
            InferenceError: If the backend cannot load it.
            VoiceResourceCorruptError: If the graph's style width differs
                from style_dim.
        """
        variant = ModelVariant.parse(variant)
        path = resolve_model_file(model_dir, variant, file_names)
        backend = backend if backend is not None else OnnxRuntimeBackend()
        options = options or RuntimeOptions()

        with timeit("model_load") as t:
            try:
                handle = backend.load(path, options)
                specs = backend.input_specs(handle)
            except Exception as e:
                raise InferenceError(
                    f"failed to load {path.name}: {e}",
                    {"path": str(path), "variant": variant.value},
                ) from e

        token_input = _detect_token_input(specs)
        speed_dtype = _detect_speed_dtype(specs)
        _check_style_width(specs, style_dim, path)

        info(
            _LOG, "session_opened",
            variant=variant.value, file=path.name, token_input=token_input,
            speed_dtype=np.dtype(speed_dtype).name, seconds=round(t.seconds, 3),
        )
        return cls(backend, handle, path, variant, token_input, speed_dtype, style_dim)

    def infer(self, phoneme_ids: Sequence[int], style: np.ndarray, speed: float = 1.0) -> np.ndarray:
        """
        Synthesize one segment.

        Args:
            phoneme_ids: 1..510 token ids (unpadded).
            style: float32[1, D] or float32[D] style vector.
            speed: Positive speed multiplier.

        Returns:
            Mono float32 waveform at 24 kHz.

        Raises:
            InvalidInputError: On empty/oversized ids, bad style width or speed <= 0.
            InferenceError: If the backend fails. Not retried.
        """
        n = len(phoneme_ids)
        if n == 0 or n > MAX_TOKENS:
            raise InvalidInputError(
                f"segment must hold 1..{MAX_TOKENS} tokens, got {n}",
                {"tokens": n},
            )
        if not np.isfinite(speed) or speed <= 0:
            raise InvalidInputError(f"speed must be positive, got {speed}", {"speed": speed})

        style_arr = np.asarray(style, dtype=np.float32).reshape(1, -1)
        if style_arr.shape[1] != self.style_dim:
            raise InvalidInputError(
                f"style vector has width {style_arr.shape[1]}, model expects {self.style_dim}",
                {"width": int(style_arr.shape[1]), "expected": self.style_dim},
            )

        tokens = np.zeros((1, n + 2), dtype=np.int64)
        tokens[0, 1:-1] = np.asarray(phoneme_ids, dtype=np.int64)
        tokens[0, 0] = tokens[0, -1] = PAD_ID

        inputs = {
            self.token_input: tokens,
            "style": style_arr,
            "speed": self._speed_tensor(speed),
        }
        debug(_LOG, "infer_inputs", tokens=tokens.shape, style=style_arr.shape, speed=float(speed))

        with self._lock:
            if self._handle is None:
                raise InferenceError("session is closed", {"path": str(self.model_path)})
            try:
                outputs = self.backend.run(self._handle, inputs)
            except Exception as e:
                raise InferenceError(
                    f"inference failed: {e}",
                    {"tokens": n, "variant": self.variant.value},
                ) from e

        if not outputs:
            raise InferenceError("model returned no outputs", {"variant": self.variant.value})
        return np.asarray(outputs[0], dtype=np.float32).reshape(-1)

    def _speed_tensor(self, speed: float) -> np.ndarray:
        if self.speed_dtype is np.int32:
            rounded = max(1, int(round(speed)))
            if rounded != speed:
                warn(_LOG, "speed_rounded", requested=float(speed), used=rounded)
            return np.array([rounded], dtype=np.int32)
        return np.array([speed], dtype=np.float32)

    def close(self) -> None:
        with self._lock:
            self._handle = None

    @property
    def closed(self) -> bool:
        return self._handle is None


def _detect_token_input(specs: Sequence[InputSpec]) -> str:
    for spec in specs:
        if spec.name in _TOKEN_INPUT_NAMES:
            return spec.name
    warn(_LOG, "token_input_not_found", inputs=[s.name for s in specs])
    return _TOKEN_INPUT_NAMES[0]


def _detect_speed_dtype(specs: Sequence[InputSpec]) -> type:
    for spec in specs:
        if spec.name == "speed":
            if "int32" in spec.type:
                return np.int32
            if "float" in spec.type:
                return np.float32
    # Current Kokoro exports take int32 when the type is not reported.
    return np.int32


def _check_style_width(specs: Sequence[InputSpec], style_dim: int, path: Path) -> None:
    for spec in specs:
        if spec.name != "style":
            continue
        width = spec.shape[-1] if spec.shape else None
        if isinstance(width, int) and width > 0 and width != style_dim:
            raise VoiceResourceCorruptError(
                f"{path.name} expects style width {width}, voices provide {style_dim}",
                {"path": str(path), "model_width": width, "voice_width": style_dim},
            )
        return
