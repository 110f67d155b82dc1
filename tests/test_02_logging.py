"""Tests for the structured logging package."""
from __future__ import annotations

import json
import logging

import pytest

from kokoro_stream.core.logging import (
    ColoredConsoleFormatter,
    JsonlFormatter,
    LogLevel,
    coerce_level,
    configure_logging,
    debug,
    get_level,
    get_logger,
    get_request_id,
    info,
    set_request_id,
    verbose,
)
from kokoro_stream.core.logging.context import set_level


class _Capture(logging.Handler):
    def __init__(self):
        super().__init__(level=1)
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def capture():
    logger = get_logger("kokoro-stream.test")
    handler = _Capture()
    logger.addHandler(handler)
    previous = get_level()
    yield logger, handler
    set_level(previous)
    logger.removeHandler(handler)


class TestLogLevel:
    """Test LogLevel values and coercion."""

    def test_level_values(self):
        assert LogLevel.MINIMAL == 1
        assert LogLevel.NORMAL == 2
        assert LogLevel.VERBOSE == 3
        assert LogLevel.DEBUG == 4

    def test_coerce_from_int(self):
        assert coerce_level(1) == LogLevel.MINIMAL
        assert coerce_level(4) == LogLevel.DEBUG

    def test_coerce_from_names(self):
        assert coerce_level("verbose") == LogLevel.VERBOSE
        assert coerce_level("INFO") == LogLevel.NORMAL
        assert coerce_level("warning") == LogLevel.MINIMAL
        assert coerce_level("3") == LogLevel.VERBOSE

    def test_coerce_python_levels(self):
        assert coerce_level(logging.WARNING) == LogLevel.MINIMAL
        assert coerce_level(logging.INFO) == LogLevel.NORMAL
        assert coerce_level(logging.DEBUG) == LogLevel.DEBUG

    def test_coerce_garbage_falls_back(self):
        assert coerce_level("loud") == LogLevel.NORMAL
        assert coerce_level(None) == LogLevel.NORMAL
        assert coerce_level(True) == LogLevel.NORMAL


class TestLevelGating:
    """Helpers only emit at or below the configured level."""

    def test_normal_hides_verbose(self, capture):
        logger, handler = capture
        set_level(LogLevel.NORMAL)
        info(logger, "shown")
        verbose(logger, "hidden")
        debug(logger, "hidden_too")
        assert [r.getMessage() for r in handler.records] == ["shown"]

    def test_debug_shows_everything(self, capture):
        logger, handler = capture
        set_level(LogLevel.DEBUG)
        info(logger, "a")
        verbose(logger, "b")
        debug(logger, "c")
        assert [r.getMessage() for r in handler.records] == ["a", "b", "c"]

    def test_structured_fields(self, capture):
        logger, handler = capture
        set_level(LogLevel.NORMAL)
        info(logger, "done", event="synth", seconds=0.25, voice="af_heart")
        record = handler.records[-1]
        assert record.event == "synth"
        assert record.seconds == 0.25
        assert record.extra_data == {"voice": "af_heart"}
        assert record.tag == "INFO"


class TestRequestId:
    """Request id context var."""

    def test_default_is_dash(self):
        import contextvars

        ctx = contextvars.Context()
        assert ctx.run(get_request_id) == "-"

    def test_set_in_copied_context_does_not_leak(self):
        import contextvars

        before = get_request_id()
        ctx = contextvars.copy_context()
        ctx.run(set_request_id, "abc123")
        assert ctx.run(get_request_id) == "abc123"
        assert get_request_id() == before

    def test_record_carries_request_id(self, capture):
        import contextvars

        logger, handler = capture
        set_level(LogLevel.NORMAL)
        ctx = contextvars.copy_context()
        ctx.run(set_request_id, "rid42")
        ctx.run(info, logger, "tagged")
        assert handler.records[-1].request_id == "rid42"


class TestFormatters:
    """JSONL and console formatting."""

    def _record(self, **extra):
        record = logging.LogRecord("kokoro-stream.x", logging.INFO, __file__, 1, "segment_done", None, None)
        for k, v in extra.items():
            setattr(record, k, v)
        return record

    def test_jsonl_payload(self):
        record = self._record(tag="INFO", request_id="r1", seconds=0.5, numeric_level=3,
                              extra_data={"index": 0, "total": 2})
        payload = json.loads(JsonlFormatter().format(record))
        assert payload["message"] == "segment_done"
        assert payload["request_id"] == "r1"
        assert payload["level"] == 3
        assert payload["seconds"] == 0.5
        assert payload["extra"] == {"index": 0, "total": 2}

    def test_console_without_colors(self, monkeypatch):
        from kokoro_stream.core.logging import styles

        monkeypatch.setattr(styles, "USE_COLORS", False)
        record = self._record(tag="INFO", request_id="r1", seconds=0.123, extra_data={"voice": "af_heart"})
        line = ColoredConsoleFormatter().format(record)
        assert "\033[" not in line
        assert "(r1)" in line
        assert "voice=af_heart" in line
        assert "0.123s" in line


class TestJsonlFile:
    """configure_logging() writes JSONL when a log dir is set."""

    def test_jsonl_file_written(self, tmp_path, monkeypatch):
        monkeypatch.setenv("KOKORO_STREAM_LOG_DIR", str(tmp_path))
        monkeypatch.setenv("KOKORO_STREAM_JSONL_FILE", "test.jsonl")
        configure_logging(level=2, force=True)
        try:
            logger = get_logger("kokoro-stream.filetest")
            info(logger, "to_file", answer=42)
            for handler in logging.getLogger("kokoro-stream").handlers:
                handler.flush()
            lines = (tmp_path / "test.jsonl").read_text(encoding="utf-8").strip().splitlines()
            payload = json.loads(lines[-1])
            assert payload["message"] == "to_file"
            assert payload["extra"] == {"answer": 42}
        finally:
            monkeypatch.delenv("KOKORO_STREAM_LOG_DIR")
            configure_logging(level=2, force=True)
