"""
Engine - Kokoro Synthesis Facade.

Single entry point for loading a Kokoro model directory and turning
text into 24 kHz mono float32 audio.

Pipeline:
    text -> normalize -> phonemize -> segment -> {style lookup + infer}
         -> crossfade assembly -> SynthesisResult | AudioChunk stream

Lifecycle:
    UNLOADED --load_model()--> LOADED --unload_model()--> UNLOADED

    load_model() builds the vocab, VoiceStore, phonemizer and session
    pool completely before installing them. A failed load leaves the
    engine UNLOADED; a previously loaded model is released either way.

Streaming:
    synthesize_streaming() validates, normalizes, phonemizes and segments
    on the calling thread (so input errors raise immediately), then
    starts one producer thread that infers segment by segment and puts
    crossfaded AudioChunks into a bounded queue. The consumer iterates
    the returned AudioStream. Cancellation is checked before each infer;
    a segment already being inferred runs to completion and is dropped.

Example:
    >>> engine = Engine()
    >>> engine.load_model("models/kokoro", ModelVariant.QUANTIZED)
    >>> result = engine.synthesize("Hello there.", voice_id="af_heart")
    >>> result.sample_rate, result.duration_seconds
    (24000, 1.1)
    >>> with engine.synthesize_streaming(long_text) as stream:
    ...     for chunk in stream:
    ...         play(chunk.samples)
"""
from __future__ import annotations

import contextvars
import queue
import threading
import time
import weakref
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import AbstractSet, Any, Dict, Iterator, List, Optional, Union
from uuid import uuid4

import numpy as np

from kokoro_stream.core.config import EngineConfig
from kokoro_stream.core.logging import (
    configure_logging,
    debug,
    fail,
    get_logger,
    get_request_id,
    info,
    set_request_id,
    success,
    verbose,
    warn,
)
from kokoro_stream.core.metrics import SynthesisMetrics
from kokoro_stream.services.errors import (
    ErrorCode,
    InferenceError,
    InvalidInputError,
    ModelFilesMissingError,
    ModelNotLoadedError,
    TTSError,
)
from kokoro_stream.services.validators import validate_speed, validate_text, validate_voice_id
from kokoro_stream.tts.assembler import SAMPLE_RATE, StreamAssembler, crossfade_samples
from kokoro_stream.tts.lexicon import Lexicon
from kokoro_stream.tts.phonemizer import EspeakBackend, PhonemeSequence, Phonemizer
from kokoro_stream.tts.pool import SessionPool
from kokoro_stream.tts.segmenter import Segment, segment_phonemes
from kokoro_stream.tts.session import InferenceBackend, InferenceSession, ModelVariant, RuntimeOptions
from kokoro_stream.tts.vocab import DEFAULT_VOCAB, boundary_ids, load_vocab
from kokoro_stream.tts.voices import Voice, VoiceStore
from kokoro_stream.utils.audio import wav_bytes_from_float32, write_wav
from kokoro_stream.utils.text import normalize_text
from kokoro_stream.utils.timeit import accumulate, timeit

_LOG = get_logger("kokoro-stream.engine")

# How often blocked queue operations re-check for cancellation.
_POLL_S = 0.05

_END = object()


class EngineState(str, Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"


# =============================================================================
# Results
# =============================================================================

@dataclass
class SynthesisResult:
    """
    Buffered synthesis output.

    Attributes:
        samples: Mono float32 audio in [-1, 1].
        sample_rate: Always 24000.
        timings_s: Stage timings (normalize, phonemize, infer, assemble, total).
        segments: Number of model segments synthesized.
        voice_id: Voice used.
        request_id: Correlation id found in this call's log lines.
    """
    samples: np.ndarray
    sample_rate: int = SAMPLE_RATE
    timings_s: Dict[str, float] = field(default_factory=dict)
    segments: int = 0
    voice_id: str = ""
    request_id: str = ""

    @property
    def duration_seconds(self) -> float:
        return len(self.samples) / float(self.sample_rate)

    def to_wav_bytes(self, subtype: str = "PCM_16") -> bytes:
        wav, _ = wav_bytes_from_float32(self.samples, self.sample_rate, subtype=subtype)
        return wav


@dataclass
class AudioChunk:
    """
    One streamed piece of audio, in delivery order.

    Chunk *i* carries segment *i*'s audio after crossfading with its
    neighbours; the last chunk also carries the held-back tail.
    """
    index: int
    total: int
    samples: np.ndarray
    sample_rate: int = SAMPLE_RATE
    synth_seconds: float = 0.0

    @property
    def duration_seconds(self) -> float:
        return len(self.samples) / float(self.sample_rate)

    @property
    def is_last(self) -> bool:
        return self.index == self.total - 1


# =============================================================================
# Streaming
# =============================================================================

class _Channel:
    """Queue and cancel flag shared by an AudioStream and its producer thread."""

    def __init__(self, lookahead: int):
        self.queue: "queue.Queue[Any]" = queue.Queue(maxsize=max(1, lookahead))
        self.cancel = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self.cancel.is_set()

    def put(self, item: Any) -> bool:
        """Producer side: enqueue, giving up once the stream is cancelled."""
        while not self.cancel.is_set():
            try:
                self.queue.put(item, timeout=_POLL_S)
                return True
            except queue.Full:
                continue
        return False


class AudioStream:
    """
    Iterator over the AudioChunks of one synthesize_streaming() call.

    Errors raised by the producer are re-raised from ``next()`` after
    every chunk produced before them has been delivered. Use as a
    context manager, or call close(), to stop the producer early. A
    stream that is garbage-collected without being closed cancels its
    producer as well.
    """

    def __init__(
        self,
        total: int,
        lookahead: int = 1,
        sample_rate: int = SAMPLE_RATE,
        request_id: str = "-",
        metrics: Optional[SynthesisMetrics] = None,
    ):
        self.total = total
        self.sample_rate = sample_rate
        self.request_id = request_id
        self._channel = _Channel(lookahead)
        # The producer only sees the channel, so dropping the stream runs this.
        weakref.finalize(self, self._channel.cancel.set)
        self._thread: Optional[threading.Thread] = None
        self._metrics = metrics
        self._started = time.perf_counter()
        self._delivered = 0
        self._done = False

    def _start(self, target, ctx: contextvars.Context) -> None:
        self._thread = threading.Thread(
            target=ctx.run,
            args=(target, self._channel),
            name=f"kokoro-stream-{self.request_id}",
            daemon=True,
        )
        self._thread.start()

    @property
    def cancelled(self) -> bool:
        return self._channel.cancelled

    @property
    def delivered(self) -> int:
        return self._delivered

    def cancel(self) -> None:
        """Ask the producer to stop before its next inference."""
        if not self._channel.cancelled:
            self._channel.cancel.set()
            debug(_LOG, "stream_cancel_requested", delivered=self._delivered, total=self.total)

    def close(self, timeout: Optional[float] = None) -> None:
        """Cancel and wait for the producer thread to exit."""
        self.cancel()
        self._done = True
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def __iter__(self) -> Iterator[AudioChunk]:
        return self

    def __next__(self) -> AudioChunk:
        if self._done:
            raise StopIteration
        while True:
            if self._channel.cancelled:
                self._done = True
                raise StopIteration
            try:
                item = self._channel.queue.get(timeout=_POLL_S)
                break
            except queue.Empty:
                if self._thread is not None and not self._thread.is_alive() and self._channel.queue.empty():
                    self._done = True
                    raise StopIteration
        if item is _END:
            self._done = True
            raise StopIteration
        if isinstance(item, BaseException):
            self._done = True
            raise item
        if self._delivered == 0 and self._metrics is not None:
            self._metrics.observe_first_chunk(time.perf_counter() - self._started)
        self._delivered += 1
        return item

    def read_all(self) -> np.ndarray:
        """Drain the remaining chunks into one buffer."""
        parts = [chunk.samples for chunk in self if chunk.samples.size]
        if not parts:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(parts)

    def __enter__(self) -> "AudioStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# =============================================================================
# Engine
# =============================================================================

@dataclass(frozen=True)
class _LoadedModel:
    model_dir: Path
    variant: ModelVariant
    voices: VoiceStore
    phonemizer: Phonemizer
    pool: SessionPool
    boundary_ids: AbstractSet[int]


@dataclass
class _Prepared:
    model: _LoadedModel
    voice: Voice
    speed: float
    style_index: Optional[int]
    sequence: PhonemeSequence
    segments: List[Segment]
    timings: Dict[str, float]


def _request_context() -> contextvars.Context:
    """Copy of the current context carrying a fresh request id."""
    ctx = contextvars.copy_context()
    ctx.run(set_request_id, uuid4().hex[:12])
    return ctx


class Engine:
    """
    Kokoro text-to-speech engine.

    Engines are independent: each owns its model, voices, sessions and
    metrics registry. Synthesis methods are safe to call from several
    threads; with ``model.pool_size`` > 1 they run concurrently.

    Usage:
        engine = Engine(load_settings("config/settings.yaml").get_engine_config())
        engine.load_model()
        engine.synthesize_to_file("Good morning.", "out.wav")
    """

    def __init__(self, config: Optional[EngineConfig] = None, backend: Optional[InferenceBackend] = None):
        """
        Args:
            config: Validated configuration; defaults when omitted.
            backend: Inference runtime; onnxruntime when omitted.
        """
        self._config = config or EngineConfig()
        self._config.segmenter.validate()
        self._backend = backend
        self._lock = threading.Lock()
        self._model: Optional[_LoadedModel] = None
        self._metrics = SynthesisMetrics(enabled=self._config.metrics.enabled)
        self._crossfade = crossfade_samples(self._config.streaming.crossfade_ms, SAMPLE_RATE)
        self._text_preview_chars = self._config.logging.text_preview_chars
        configure_logging(self._config.logging.level)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def metrics(self) -> SynthesisMetrics:
        return self._metrics

    @property
    def state(self) -> EngineState:
        return EngineState.LOADED if self._model is not None else EngineState.UNLOADED

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    @property
    def sample_rate(self) -> int:
        return SAMPLE_RATE

    @property
    def variant(self) -> Optional[ModelVariant]:
        model = self._model
        return model.variant if model is not None else None

    @property
    def crossfade_samples(self) -> int:
        return self._crossfade

    def list_voices(self) -> List[str]:
        return self._require_model().voices.list_voices()

    def render_metrics(self) -> str:
        return self._metrics.render()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def load_model(
        self,
        path: Union[str, Path, None] = None,
        variant: Union[ModelVariant, str, None] = None,
    ) -> None:
        """
        Load (or reload) a Kokoro model directory.

        Args:
            path: Model directory; ``model.model_dir`` when omitted.
            variant: Precision variant; ``model.variant`` when omitted.

        Raises:
            ModelFilesMissingError: Directory, graph or voices file missing.
            ModelConfigError: config.json present but malformed.
            VoiceResourceCorruptError: Voices archive unusable.
            InferenceError: The runtime cannot load the graph.
        """
        model_dir = Path(path) if path is not None else Path(self._config.model.model_dir)
        resolved = ModelVariant.parse(variant if variant is not None else self._config.model.variant)

        with self._lock:
            info(_LOG, "model_load_start", path=str(model_dir), variant=resolved.value)
            try:
                with timeit("model_load") as t:
                    loaded = self._build_model(model_dir, resolved)
            except Exception as e:
                self._release_locked()
                fail(_LOG, "model_load_failed", error=getattr(e, "code", type(e).__name__), message=str(e))
                raise

            previous = self._model
            self._model = loaded
            if previous is not None:
                previous.pool.close()
                self._metrics.set_model_loaded(previous.variant.value, False)
            self._metrics.set_model_loaded(resolved.value, True)

        success(
            _LOG, "model_loaded",
            variant=resolved.value, voices=len(loaded.voices),
            sessions=loaded.pool.size, seconds=round(t.seconds, 3),
        )

    def _build_model(self, model_dir: Path, variant: ModelVariant) -> _LoadedModel:
        cfg = self._config.model
        if not model_dir.is_dir():
            raise ModelFilesMissingError(f"model directory not found: {model_dir}", {"path": str(model_dir)})

        config_path = model_dir / cfg.config_file
        if config_path.is_file():
            vocab = load_vocab(config_path)
        else:
            verbose(_LOG, "vocab_builtin", reason="no config file", file=cfg.config_file)
            vocab = dict(DEFAULT_VOCAB)

        voices = VoiceStore.load(model_dir / cfg.voices_file, expected_dim=cfg.style_dim)

        ph_cfg = self._config.phonemizer
        lexicon = Lexicon.builtin()
        for lexicon_file in ph_cfg.lexicon_files:
            added = lexicon.load_file(lexicon_file)
            verbose(_LOG, "lexicon_loaded", path=lexicon_file, entries=added)
        phonemizer = Phonemizer(
            vocab=vocab,
            lexicon=lexicon,
            backend=ph_cfg.backend,
            espeak=EspeakBackend(ph_cfg.espeak_binary, ph_cfg.espeak_timeout_s, ph_cfg.espeak_data_path),
        )

        file_names = {
            ModelVariant.FULL: cfg.full_file,
            ModelVariant.HALF: cfg.half_file,
            ModelVariant.QUANTIZED: cfg.quantized_file,
        }
        cache_path = None
        if cfg.optimized_cache_dir:
            stem = Path(file_names[variant]).stem
            cache_path = Path(cfg.optimized_cache_dir) / f"{stem}.optimized.onnx"
        options = RuntimeOptions(num_threads=cfg.num_threads, optimized_cache_path=cache_path)

        sessions: List[InferenceSession] = []
        try:
            for _ in range(cfg.pool_size):
                sessions.append(InferenceSession.open(
                    model_dir, variant,
                    backend=self._backend, style_dim=voices.dim,
                    file_names=file_names, options=options,
                ))
        except Exception:
            for session in sessions:
                session.close()
            raise

        return _LoadedModel(
            model_dir=model_dir,
            variant=variant,
            voices=voices,
            phonemizer=phonemizer,
            pool=SessionPool(sessions),
            boundary_ids=boundary_ids(vocab),
        )

    def unload_model(self) -> None:
        """Release the model. Calls still in flight fail with InferenceError."""
        with self._lock:
            was_loaded = self._model is not None
            self._release_locked()
        if was_loaded:
            info(_LOG, "model_unloaded")

    def _release_locked(self) -> None:
        model = self._model
        self._model = None
        if model is not None:
            model.pool.close()
            self._metrics.set_model_loaded(model.variant.value, False)

    def _require_model(self) -> _LoadedModel:
        model = self._model
        if model is None:
            raise ModelNotLoadedError()
        return model

    def __enter__(self) -> "Engine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unload_model()

    # =========================================================================
    # Shared pipeline
    # =========================================================================

    def _prepare(
        self,
        text: Union[str, bytes],
        voice_id: Optional[str],
        speed: Optional[float],
        style_index: Optional[int],
    ) -> _Prepared:
        model = self._require_model()
        synth_cfg = self._config.synthesis

        validate_text(text, max_length=synth_cfg.max_text_chars)
        vid = validate_voice_id(voice_id if voice_id is not None else synth_cfg.default_voice)
        spd = validate_speed(speed if speed is not None else synth_cfg.default_speed)
        if style_index is not None and (isinstance(style_index, bool) or not isinstance(style_index, int) or style_index < 0):
            raise InvalidInputError(
                f"style_index must be a non-negative integer, got {style_index!r}",
                {"reason": "STYLE_INDEX_INVALID"},
            )
        voice = model.voices.get_voice(vid)

        timings: Dict[str, float] = {}
        normalized, t_norm = normalize_text(text)
        timings.update(t_norm)

        if self._text_preview_chars > 0:
            info(_LOG, "request", chars=len(normalized), voice=vid, text_preview=normalized[:self._text_preview_chars])
        debug(_LOG, "request_full", text=normalized, voice=vid, language=voice.language, speed=spd)

        sequence = model.phonemizer.phonemize(normalized, voice.language)
        timings.update(sequence.timings)
        if not sequence.ids:
            raise InvalidInputError("text produced no phonemes", {"reason": "NO_PHONEMES"})

        with timeit("segment") as t_seg:
            segments = list(segment_phonemes(sequence, self._config.segmenter.max_tokens, model.boundary_ids))
        timings["segment"] = t_seg.seconds
        verbose(_LOG, "segmented", tokens=len(sequence), segments=len(segments))

        return _Prepared(model, voice, spd, style_index, sequence, segments, timings)

    def _infer_segment(self, prep: _Prepared, segment: Segment) -> tuple[np.ndarray, float]:
        length = len(segment) if prep.style_index is None else prep.style_index
        style = prep.voice.style_for(length)
        with prep.model.pool.acquire(self._config.model.pool_timeout_s) as session:
            with timeit("infer") as t:
                wav = session.infer(segment.token_ids, style, prep.speed)
        self._metrics.observe_inference(t.seconds)
        debug(_LOG, "segment_done", index=segment.index, tokens=len(segment), samples=len(wav), seconds=round(t.seconds, 4))
        return wav, t.seconds

    # =========================================================================
    # Public API: synthesize()
    # =========================================================================

    def synthesize(
        self,
        text: Union[str, bytes],
        voice_id: Optional[str] = None,
        speed: Optional[float] = None,
        style_index: Optional[int] = None,
    ) -> SynthesisResult:
        """
        Synthesize text into one buffer on the calling thread.

        Args:
            text: str, or UTF-8 bytes.
            voice_id: Voice to use; ``synthesis.default_voice`` when omitted.
            speed: Speed multiplier; ``synthesis.default_speed`` when omitted.
            style_index: Fixed style row instead of the per-segment length row.

        Raises:
            ModelNotLoadedError, InvalidInputError, UnknownVoiceError,
            UnsupportedLanguageError, InferenceError, SessionTimeoutError.
        """
        return _request_context().run(self._synthesize, text, voice_id, speed, style_index)

    def _synthesize(self, text, voice_id, speed, style_index) -> SynthesisResult:
        try:
            with timeit("total") as total_t:
                prep = self._prepare(text, voice_id, speed, style_index)
                timings = prep.timings
                waveforms = []
                for segment in prep.segments:
                    wav, seconds = self._infer_segment(prep, segment)
                    accumulate(timings, "infer", seconds)
                    waveforms.append(wav)

                with timeit("assemble") as t_asm:
                    samples = StreamAssembler(self._crossfade).assemble(waveforms)
                timings["assemble"] = t_asm.seconds
                if samples.size == 0:
                    raise InferenceError("model produced no audio", {"segments": len(prep.segments)})
            timings["total"] = total_t.seconds
        except TTSError as e:
            self._metrics.record_request("buffered", "error")
            fail(_LOG, "request_failed", error=e.code, message=e.message)
            raise
        except Exception as e:
            self._metrics.record_request("buffered", "error")
            fail(_LOG, "request_failed", error=ErrorCode.INTERNAL_ERROR, error_type=type(e).__name__)
            raise TTSError(f"unexpected error: {e}", ErrorCode.INTERNAL_ERROR, {"error_type": type(e).__name__}) from e

        result = SynthesisResult(
            samples=samples,
            sample_rate=SAMPLE_RATE,
            timings_s=timings,
            segments=len(prep.segments),
            voice_id=prep.voice.voice_id,
            request_id=get_request_id(),
        )
        self._metrics.record_request("buffered", "success", timings["total"], result.duration_seconds)
        for stage in ("normalize", "phonemize", "infer", "assemble"):
            if stage in timings:
                verbose(_LOG, "stage", event=stage, seconds=round(timings[stage], 4))
        rtf = timings["total"] / result.duration_seconds if result.duration_seconds else 0.0
        success(
            _LOG, "done",
            segments=result.segments, audio_s=round(result.duration_seconds, 3),
            seconds=round(timings["total"], 3), rtf=round(rtf, 3),
        )
        return result

    def synthesize_to_file(
        self,
        text: Union[str, bytes],
        path: Union[str, Path],
        voice_id: Optional[str] = None,
        speed: Optional[float] = None,
        style_index: Optional[int] = None,
        subtype: str = "PCM_16",
    ) -> SynthesisResult:
        """Synthesize and write a WAV file; returns the SynthesisResult."""
        result = self.synthesize(text, voice_id=voice_id, speed=speed, style_index=style_index)
        out = write_wav(path, result.samples, result.sample_rate, subtype=subtype)
        info(_LOG, "wav_written", path=str(out), seconds=round(result.duration_seconds, 3))
        return result

    # =========================================================================
    # Public API: synthesize_streaming()
    # =========================================================================

    def synthesize_streaming(
        self,
        text: Union[str, bytes],
        voice_id: Optional[str] = None,
        speed: Optional[float] = None,
        style_index: Optional[int] = None,
        lookahead: Optional[int] = None,
    ) -> AudioStream:
        """
        Start streaming synthesis.

        Args:
            lookahead: Finished chunks allowed to wait for the consumer;
                ``streaming.lookahead`` when omitted.

        Returns:
            AudioStream yielding one AudioChunk per segment, in order.

        Raises:
            Input and lookup errors immediately; inference errors from
            the stream's ``next()`` after earlier chunks.
        """
        ahead = self._config.streaming.lookahead if lookahead is None else lookahead
        if isinstance(ahead, bool) or not isinstance(ahead, int) or ahead < 1:
            raise InvalidInputError(f"lookahead must be a positive integer, got {ahead!r}", {"reason": "LOOKAHEAD_INVALID"})

        ctx = _request_context()
        try:
            prep = ctx.run(self._prepare, text, voice_id, speed, style_index)
        except TTSError as e:
            self._metrics.record_request("streaming", "error")
            ctx.run(fail, _LOG, "stream_request_failed", error=e.code, message=e.message)
            raise
        except Exception as e:
            self._metrics.record_request("streaming", "error")
            ctx.run(fail, _LOG, "stream_request_failed", error=ErrorCode.INTERNAL_ERROR, error_type=type(e).__name__)
            raise TTSError(f"unexpected error: {e}", ErrorCode.INTERNAL_ERROR, {"error_type": type(e).__name__}) from e

        stream = AudioStream(
            total=len(prep.segments),
            lookahead=ahead,
            request_id=ctx.run(get_request_id),
            metrics=self._metrics,
        )
        ctx.run(info, _LOG, "stream_start", segments=stream.total, lookahead=ahead, mode="streaming")
        stream._start(lambda channel: self._produce(prep, channel), ctx)
        return stream

    def _produce(self, prep: _Prepared, channel: _Channel) -> None:
        """Producer thread body: infer, crossfade and enqueue each segment."""
        assembler = StreamAssembler(self._crossfade)
        status = "success"
        produced = 0
        with timeit("stream_total") as total_t:
            try:
                for segment in prep.segments:
                    if channel.cancelled:
                        break
                    wav, seconds = self._infer_segment(prep, segment)
                    samples = assembler.push(wav)
                    if segment.index == len(prep.segments) - 1:
                        tail = assembler.flush()
                        samples = np.concatenate([samples, tail]) if samples.size else tail
                        if assembler.samples_emitted == 0:
                            raise InferenceError("model produced no audio", {"segments": len(prep.segments)})
                    chunk = AudioChunk(
                        index=segment.index,
                        total=len(prep.segments),
                        samples=samples,
                        sample_rate=SAMPLE_RATE,
                        synth_seconds=seconds,
                    )
                    if not channel.put(chunk):
                        break
                    produced += 1
            except TTSError as e:
                status = "error"
                fail(_LOG, "stream_failed", error=e.code, message=e.message, delivered=produced)
                channel.put(e)
            except Exception as e:
                status = "error"
                fail(_LOG, "stream_failed", error=ErrorCode.INTERNAL_ERROR, error_type=type(e).__name__)
                wrapped = TTSError(f"unexpected error: {e}", ErrorCode.INTERNAL_ERROR, {"error_type": type(e).__name__})
                wrapped.__cause__ = e
                channel.put(wrapped)
            finally:
                if channel.cancelled and status == "success":
                    status = "cancelled"
                channel.put(_END)

        if status == "cancelled":
            self._metrics.inc_cancelled()
            warn(_LOG, "stream_cancelled", produced=produced, total=len(prep.segments))
        audio_s = assembler.samples_emitted / float(SAMPLE_RATE)
        self._metrics.record_request("streaming", status, total_t.seconds, audio_s if status == "success" else 0.0)
        if status == "success":
            success(_LOG, "stream_done", chunks=produced, audio_s=round(audio_s, 3), seconds=round(total_t.seconds, 3))
