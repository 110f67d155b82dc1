"""
kokoro-stream: Kokoro-82M text-to-speech on CPU with low-latency streaming.

Turns text into 24 kHz mono speech with the pretrained Kokoro ONNX model.

Key Features:
    - Buffered synthesis (Engine.synthesize) and streaming synthesis
      (Engine.synthesize_streaming) with bounded lookahead and cancellation
    - Full, half and quantized model variants
    - Built-in English/Spanish phonemization, espeak-ng for other languages
    - Crossfaded segment joins
    - Structured logging and Prometheus metrics per engine

Example Usage:
    >>> from kokoro_stream import Engine, ModelVariant
    >>>
    >>> engine = Engine()
    >>> engine.load_model("models/kokoro", ModelVariant.QUANTIZED)
    >>> result = engine.synthesize("Hello, world.", voice_id="af_heart")
    >>> with open("output.wav", "wb") as f:
    ...     f.write(result.to_wav_bytes())
"""
from kokoro_stream.core.config import EngineConfig, Settings, load_settings
from kokoro_stream.services.engine import AudioChunk, AudioStream, Engine, EngineState, SynthesisResult
from kokoro_stream.services.errors import (
    ErrorCode,
    InferenceError,
    InvalidInputError,
    ModelConfigError,
    ModelFilesMissingError,
    ModelNotLoadedError,
    SessionTimeoutError,
    TTSError,
    UnknownVoiceError,
    UnsupportedLanguageError,
    VoiceResourceCorruptError,
)
from kokoro_stream.tts.session import InferenceBackend, ModelVariant, OnnxRuntimeBackend

__version__ = "0.1.0"
__all__ = [
    "__version__",
    "Engine",
    "EngineConfig",
    "EngineState",
    "Settings",
    "load_settings",
    "SynthesisResult",
    "AudioChunk",
    "AudioStream",
    "ModelVariant",
    "InferenceBackend",
    "OnnxRuntimeBackend",
    "ErrorCode",
    "TTSError",
    "InvalidInputError",
    "UnsupportedLanguageError",
    "ModelFilesMissingError",
    "ModelConfigError",
    "VoiceResourceCorruptError",
    "UnknownVoiceError",
    "InferenceError",
    "ModelNotLoadedError",
    "SessionTimeoutError",
]
