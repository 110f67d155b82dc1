"""
Prometheus Metrics for Synthesis.

Each Engine owns one SynthesisMetrics with its own CollectorRegistry, so
several engines in one process never collide on metric names.

Metrics Exposed:
    kokoro_requests_total              - synthesis calls by mode and status
    kokoro_inference_seconds           - per-segment inference latency
    kokoro_segments_total              - segments synthesized
    kokoro_audio_seconds_total         - seconds of audio produced
    kokoro_first_chunk_seconds         - streaming time-to-first-chunk
    kokoro_streams_cancelled_total     - streams stopped by the consumer
    kokoro_model_loaded                - 1 while a model is loaded

Usage:
    metrics = SynthesisMetrics()
    metrics.record_request("buffered", "success", duration=0.4, audio_seconds=2.1)
    text = metrics.render()
"""
from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


class SynthesisMetrics:
    """
    Prometheus collectors for one Engine.

    When constructed with ``enabled=False`` every record call is a no-op
    and render() returns a short placeholder.
    """

    def __init__(self, enabled: bool = True):
        self._enabled = enabled
        self._registry = CollectorRegistry()
        if enabled:
            self._setup_metrics()

    def _setup_metrics(self) -> None:
        self._requests_total = Counter(
            "kokoro_requests_total",
            "Synthesis calls",
            ["mode", "status"],
            registry=self._registry,
        )
        self._request_duration = Histogram(
            "kokoro_request_duration_seconds",
            "Wall time of a synthesis call",
            ["mode"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self._registry,
        )
        self._inference_seconds = Histogram(
            "kokoro_inference_seconds",
            "Per-segment inference latency",
            buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
            registry=self._registry,
        )
        self._segments_total = Counter(
            "kokoro_segments_total",
            "Segments synthesized",
            registry=self._registry,
        )
        self._audio_seconds_total = Counter(
            "kokoro_audio_seconds_total",
            "Seconds of audio produced",
            registry=self._registry,
        )
        self._first_chunk_seconds = Histogram(
            "kokoro_first_chunk_seconds",
            "Streaming latency until the first chunk is ready",
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
            registry=self._registry,
        )
        self._streams_cancelled = Counter(
            "kokoro_streams_cancelled_total",
            "Streams stopped before the last segment",
            registry=self._registry,
        )
        self._model_loaded = Gauge(
            "kokoro_model_loaded",
            "Whether a model is loaded (1) or not (0)",
            ["variant"],
            registry=self._registry,
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_request(self, mode: str, status: str, duration: float = 0.0, audio_seconds: float = 0.0) -> None:
        """
        Record a finished synthesis call.

        Args:
            mode: "buffered" or "streaming".
            status: "success", "error" or "cancelled".
            duration: Wall time of the call in seconds.
            audio_seconds: Seconds of audio delivered.
        """
        if not self._enabled:
            return
        self._requests_total.labels(mode=mode, status=status).inc()
        self._request_duration.labels(mode=mode).observe(duration)
        if audio_seconds > 0:
            self._audio_seconds_total.inc(audio_seconds)

    def observe_inference(self, seconds: float) -> None:
        if not self._enabled:
            return
        self._inference_seconds.observe(seconds)
        self._segments_total.inc()

    def observe_first_chunk(self, seconds: float) -> None:
        if not self._enabled:
            return
        self._first_chunk_seconds.observe(seconds)

    def inc_cancelled(self) -> None:
        if not self._enabled:
            return
        self._streams_cancelled.inc()

    def set_model_loaded(self, variant: str, loaded: bool) -> None:
        if not self._enabled:
            return
        self._model_loaded.labels(variant=variant).set(1 if loaded else 0)

    def render(self) -> str:
        """Prometheus text exposition of this engine's metrics."""
        if not self._enabled:
            return "# metrics disabled\n"
        return generate_latest(self._registry).decode("utf-8")

    def get_metrics_response(self) -> tuple[bytes, str]:
        """(content, content_type) pair for serving over HTTP."""
        if not self._enabled:
            return b"# metrics disabled\n", "text/plain; charset=utf-8"
        return generate_latest(self._registry), CONTENT_TYPE_LATEST
