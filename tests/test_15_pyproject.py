"""Tests for pyproject.toml and package layout."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).parent.parent


class TestPackage:
    """The package imports cleanly."""

    def test_version_defined(self):
        import kokoro_stream

        assert isinstance(kokoro_stream.__version__, str)
        assert kokoro_stream.__version__

    def test_public_names(self):
        import kokoro_stream

        for name in kokoro_stream.__all__:
            assert hasattr(kokoro_stream, name), name

    def test_modules_importable(self):
        from kokoro_stream.core import config, logging, metrics
        from kokoro_stream.services import engine, errors, validators
        from kokoro_stream.tts import assembler, phonemizer, pool, segmenter, session, voices
        from kokoro_stream.utils import audio, text

        for module in (config, logging, metrics, engine, errors, validators, assembler,
                       phonemizer, pool, segmenter, session, voices, audio, text):
            assert module is not None

    def test_onnxruntime_imported_lazily(self):
        import kokoro_stream.tts.session as session

        assert "ort" not in vars(session)


@pytest.mark.skipif(sys.version_info < (3, 11), reason="tomllib needs Python 3.11+")
class TestPyprojectToml:
    """pyproject.toml configuration."""

    @pytest.fixture
    def data(self):
        import tomllib

        return tomllib.loads((ROOT / "pyproject.toml").read_text(encoding="utf-8"))

    def test_project_name(self, data):
        assert data["project"]["name"] == "kokoro-stream"

    def test_dependencies(self, data):
        names = [d.split(">=")[0].split("[")[0].strip() for d in data["project"]["dependencies"]]
        for dep in ("numpy", "onnxruntime", "soundfile", "pyyaml", "prometheus_client"):
            assert dep in names

    def test_test_extra(self, data):
        assert any(d.startswith("pytest") for d in data["project"]["optional-dependencies"]["test"])

    def test_src_layout(self, data):
        assert data["tool"]["setuptools"]["packages"]["find"]["where"] == ["src"]
