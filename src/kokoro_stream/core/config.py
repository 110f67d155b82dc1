"""
Configuration Management for kokoro-stream.

    - Default values (Defaults class)
    - Dataclass-based configuration objects
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages

Configuration Hierarchy (highest priority first):
    1. Environment variables (KOKORO_STREAM_MODEL_DIR, KOKORO_STREAM_VOICE, ...)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    model:
      model_dir: models/kokoro
      variant: quantized
      num_threads: 4

    segmenter:
      max_tokens: 510

    streaming:
      lookahead: 1
      crossfade_ms: 10

    logging:
      level: 2
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


class ConfigValidationError(Exception):
    """Raised when a configuration value is out of bounds or malformed."""
    pass


class Defaults:
    """
    Centralized default configuration values.

    Sections:
        - Model: files, variant, runtime threads
        - Synthesis: default voice and speed
        - Segmenter: token window
        - Streaming: lookahead and crossfade
        - Phonemizer: backend and lexicons
        - Logging / Metrics
    """

    # Model
    MODEL_DIR = "models/kokoro"
    MODEL_VARIANT = "quantized"
    MODEL_FULL_FILE = "kokoro-v1.0.onnx"
    MODEL_HALF_FILE = "kokoro-v1.0.fp16.onnx"
    MODEL_QUANTIZED_FILE = "kokoro-v1.0.int8.onnx"
    VOICES_FILE = "voices-v1.0.bin"
    CONFIG_FILE = "config.json"
    NUM_THREADS = 0                 # 0 lets onnxruntime decide
    OPTIMIZED_CACHE_DIR = ""        # Where to serialize optimized graphs; empty disables
    POOL_TIMEOUT_S = 30.0           # Wait for a free session; 0 waits forever
    POOL_SIZE = 1                   # Independent sessions for concurrent calls
    STYLE_DIM = 256
    SAMPLE_RATE = 24000

    # Synthesis
    DEFAULT_VOICE = "af_heart"
    DEFAULT_SPEED = 1.0
    MAX_TEXT_CHARS = 100_000

    # Segmenter (model context 512 minus two pad tokens)
    SEGMENTER_MAX_TOKENS = 510

    # Streaming
    STREAMING_LOOKAHEAD = 1         # Segments synthesized ahead of the consumer
    STREAMING_CROSSFADE_MS = 10

    # Phonemizer
    PHONEMIZER_BACKEND = "rules"    # rules | espeak
    PHONEMIZER_ESPEAK_BINARY = "espeak-ng"
    PHONEMIZER_ESPEAK_TIMEOUT_S = 30.0
    PHONEMIZER_ESPEAK_DATA_PATH = ""    # Passed as ESPEAK_DATA_PATH when set

    # Logging
    LOGGING_LEVEL = 2
    LOGGING_TEXT_PREVIEW_CHARS = 80

    # Metrics
    METRICS_ENABLED = True


@dataclass
class ModelConfig:
    """Where the model lives and how its runtime is set up."""
    model_dir: str = Defaults.MODEL_DIR
    variant: str = Defaults.MODEL_VARIANT
    full_file: str = Defaults.MODEL_FULL_FILE
    half_file: str = Defaults.MODEL_HALF_FILE
    quantized_file: str = Defaults.MODEL_QUANTIZED_FILE
    voices_file: str = Defaults.VOICES_FILE
    config_file: str = Defaults.CONFIG_FILE
    num_threads: int = Defaults.NUM_THREADS
    optimized_cache_dir: str = Defaults.OPTIMIZED_CACHE_DIR
    pool_size: int = Defaults.POOL_SIZE
    pool_timeout_s: float = Defaults.POOL_TIMEOUT_S
    style_dim: int = Defaults.STYLE_DIM


@dataclass
class SynthesisConfig:
    default_voice: str = Defaults.DEFAULT_VOICE
    default_speed: float = Defaults.DEFAULT_SPEED
    max_text_chars: int = Defaults.MAX_TEXT_CHARS


@dataclass
class SegmenterConfig:
    """``max_tokens`` can never exceed the model's 510-token context."""
    max_tokens: int = Defaults.SEGMENTER_MAX_TOKENS

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if isinstance(self.max_tokens, bool) or not isinstance(self.max_tokens, int):
            raise ConfigValidationError(f"segmenter.max_tokens must be an integer, got {self.max_tokens!r}")
        if not 1 <= self.max_tokens <= Defaults.SEGMENTER_MAX_TOKENS:
            raise ConfigValidationError(
                f"segmenter.max_tokens must be between 1 and {Defaults.SEGMENTER_MAX_TOKENS}, got {self.max_tokens}"
            )


@dataclass
class StreamingConfig:
    """
    Streaming configuration.

    ``lookahead`` bounds how many finished chunks may wait for the
    consumer; the producer blocks once the queue is full.
    """
    lookahead: int = Defaults.STREAMING_LOOKAHEAD
    crossfade_ms: int = Defaults.STREAMING_CROSSFADE_MS


@dataclass
class PhonemizerConfig:
    backend: str = Defaults.PHONEMIZER_BACKEND
    espeak_binary: str = Defaults.PHONEMIZER_ESPEAK_BINARY
    espeak_timeout_s: float = Defaults.PHONEMIZER_ESPEAK_TIMEOUT_S
    espeak_data_path: str = Defaults.PHONEMIZER_ESPEAK_DATA_PATH
    lexicon_files: List[str] = field(default_factory=list)


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL, 2 = NORMAL (default), 3 = VERBOSE, 4 = DEBUG
    """
    level: int = Defaults.LOGGING_LEVEL
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS


@dataclass
class MetricsConfig:
    enabled: bool = Defaults.METRICS_ENABLED


_VARIANTS = ("full", "half", "quantized")
_BACKENDS = ("rules", "espeak")


@dataclass
class EngineConfig:
    """
    Validated configuration for Engine.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = EngineConfig.from_settings(settings)
        engine = Engine(config)
    """
    model: ModelConfig = field(default_factory=ModelConfig)
    synthesis: SynthesisConfig = field(default_factory=SynthesisConfig)
    segmenter: SegmenterConfig = field(default_factory=SegmenterConfig)
    streaming: StreamingConfig = field(default_factory=StreamingConfig)
    phonemizer: PhonemizerConfig = field(default_factory=PhonemizerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "EngineConfig":
        """
        Build an EngineConfig from raw Settings.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw
        try:
            return cls._build(raw)
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(f"invalid configuration value: {e}") from e

    @classmethod
    def _build(cls, raw: Dict[str, Any]) -> "EngineConfig":
        model_raw = raw.get("model", {}) or {}
        model = ModelConfig(
            model_dir=str(model_raw.get("model_dir", Defaults.MODEL_DIR)),
            variant=str(model_raw.get("variant", Defaults.MODEL_VARIANT)).lower(),
            full_file=str(model_raw.get("full_file", Defaults.MODEL_FULL_FILE)),
            half_file=str(model_raw.get("half_file", Defaults.MODEL_HALF_FILE)),
            quantized_file=str(model_raw.get("quantized_file", Defaults.MODEL_QUANTIZED_FILE)),
            voices_file=str(model_raw.get("voices_file", Defaults.VOICES_FILE)),
            config_file=str(model_raw.get("config_file", Defaults.CONFIG_FILE)),
            num_threads=int(model_raw.get("num_threads", Defaults.NUM_THREADS)),
            optimized_cache_dir=str(model_raw.get("optimized_cache_dir", Defaults.OPTIMIZED_CACHE_DIR) or ""),
            pool_size=int(model_raw.get("pool_size", Defaults.POOL_SIZE)),
            pool_timeout_s=float(model_raw.get("pool_timeout_s", Defaults.POOL_TIMEOUT_S)),
            style_dim=int(model_raw.get("style_dim", Defaults.STYLE_DIM)),
        )
        cls._validate_choice("model.variant", model.variant, _VARIANTS)
        cls._validate_non_negative("model.num_threads", model.num_threads)
        cls._validate_positive("model.pool_size", model.pool_size)
        cls._validate_non_negative("model.pool_timeout_s", model.pool_timeout_s)
        cls._validate_positive("model.style_dim", model.style_dim)

        synth_raw = raw.get("synthesis", {}) or {}
        synthesis = SynthesisConfig(
            default_voice=str(synth_raw.get("default_voice", Defaults.DEFAULT_VOICE)),
            default_speed=float(synth_raw.get("default_speed", Defaults.DEFAULT_SPEED)),
            max_text_chars=int(synth_raw.get("max_text_chars", Defaults.MAX_TEXT_CHARS)),
        )
        if not synthesis.default_voice:
            raise ConfigValidationError("synthesis.default_voice must not be empty")
        cls._validate_positive("synthesis.default_speed", synthesis.default_speed)
        cls._validate_positive("synthesis.max_text_chars", synthesis.max_text_chars)

        seg_raw = raw.get("segmenter", {}) or {}
        segmenter = SegmenterConfig(
            max_tokens=int(seg_raw.get("max_tokens", Defaults.SEGMENTER_MAX_TOKENS)),
        )

        stream_raw = raw.get("streaming", {}) or {}
        streaming = StreamingConfig(
            lookahead=int(stream_raw.get("lookahead", Defaults.STREAMING_LOOKAHEAD)),
            crossfade_ms=int(stream_raw.get("crossfade_ms", Defaults.STREAMING_CROSSFADE_MS)),
        )
        cls._validate_positive("streaming.lookahead", streaming.lookahead)
        cls._validate_non_negative("streaming.crossfade_ms", streaming.crossfade_ms)

        ph_raw = raw.get("phonemizer", {}) or {}
        lexicon_files = ph_raw.get("lexicon_files", []) or []
        if isinstance(lexicon_files, str):
            lexicon_files = [lexicon_files]
        phonemizer = PhonemizerConfig(
            backend=str(ph_raw.get("backend", Defaults.PHONEMIZER_BACKEND)).lower(),
            espeak_binary=str(ph_raw.get("espeak_binary", Defaults.PHONEMIZER_ESPEAK_BINARY)),
            espeak_timeout_s=float(ph_raw.get("espeak_timeout_s", Defaults.PHONEMIZER_ESPEAK_TIMEOUT_S)),
            espeak_data_path=str(ph_raw.get("espeak_data_path", Defaults.PHONEMIZER_ESPEAK_DATA_PATH) or ""),
            lexicon_files=[str(p) for p in lexicon_files],
        )
        cls._validate_choice("phonemizer.backend", phonemizer.backend, _BACKENDS)
        cls._validate_positive("phonemizer.espeak_timeout_s", phonemizer.espeak_timeout_s)

        logging_raw = raw.get("logging", {}) or {}
        # Local import: the logging package reads settings through this module.
        from kokoro_stream.core.logging.levels import coerce_level
        logging_cfg = LoggingConfig(
            level=int(coerce_level(logging_raw.get("level", Defaults.LOGGING_LEVEL))),
            text_preview_chars=int(logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS)),
        )
        cls._validate_non_negative("logging.text_preview_chars", logging_cfg.text_preview_chars)

        metrics_raw = raw.get("metrics", {}) or {}
        metrics = MetricsConfig(
            enabled=bool(metrics_raw.get("enabled", Defaults.METRICS_ENABLED)),
        )

        return cls(
            model=model,
            synthesis=synthesis,
            segmenter=segmenter,
            streaming=streaming,
            phonemizer=phonemizer,
            logging=logging_cfg,
            metrics=metrics,
        )

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")

    @staticmethod
    def _validate_choice(name: str, value: str, choices: tuple) -> None:
        if value not in choices:
            raise ConfigValidationError(f"{name} must be one of {', '.join(choices)}, got {value!r}")


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    Use get_engine_config() for the validated, typed view.
    """
    raw: Dict[str, Any]

    @property
    def model_dir(self) -> str:
        return str((self.raw.get("model", {}) or {}).get("model_dir", Defaults.MODEL_DIR))

    @property
    def variant(self) -> str:
        return str((self.raw.get("model", {}) or {}).get("variant", Defaults.MODEL_VARIANT))

    @property
    def default_voice(self) -> str:
        return str((self.raw.get("synthesis", {}) or {}).get("default_voice", Defaults.DEFAULT_VOICE))

    def get_engine_config(self) -> EngineConfig:
        return EngineConfig.from_settings(self)


def load_settings(path: str = "config/settings.yaml") -> Settings:
    """
    Load settings from a YAML file.

    Environment variable overrides:
        - KOKORO_STREAM_MODEL_DIR: model.model_dir
        - KOKORO_STREAM_VARIANT: model.variant
        - KOKORO_STREAM_VOICE: synthesis.default_voice

    Raises:
        FileNotFoundError: If the settings file doesn't exist.
        ConfigValidationError: If the file is not a YAML mapping.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    with p.open("r", encoding="utf-8") as f:
        try:
            raw: Optional[Dict[str, Any]] = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"cannot parse {p}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigValidationError(f"{p} must contain a mapping at top level")

    return Settings(raw=apply_env_overrides(raw))


def apply_env_overrides(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of raw with KOKORO_STREAM_* environment overrides applied."""
    merged = {k: (dict(v) if isinstance(v, dict) else v) for k, v in raw.items()}

    model_dir = os.getenv("KOKORO_STREAM_MODEL_DIR")
    if model_dir:
        merged.setdefault("model", {})["model_dir"] = model_dir

    variant = os.getenv("KOKORO_STREAM_VARIANT")
    if variant:
        merged.setdefault("model", {})["variant"] = variant

    voice = os.getenv("KOKORO_STREAM_VOICE")
    if voice:
        merged.setdefault("synthesis", {})["default_voice"] = voice

    return merged
