"""
Tests for audio encoding helpers and timing utilities.
"""
import numpy as np
import pytest

from kokoro_stream.utils.audio import (
    float32_to_pcm16,
    wav_bytes_from_float32,
    wav_bytes_to_float32,
    write_wav,
)
from kokoro_stream.utils.timeit import accumulate, timeit


class TestWavEncoding:
    """WAV bytes and files."""

    def test_pcm16_header_and_timings(self):
        wav = np.zeros(2400, dtype=np.float32)
        data, timings = wav_bytes_from_float32(wav, 24000)
        assert data[:4] == b"RIFF"
        assert data[8:12] == b"WAVE"
        assert "wav_encode" in timings
        samples, sr = wav_bytes_to_float32(data)
        assert sr == 24000
        assert len(samples) == 2400

    def test_float_subtype_is_lossless(self):
        wav = np.linspace(-0.9, 0.9, 1000, dtype=np.float32)
        data, _ = wav_bytes_from_float32(wav, 24000, subtype="FLOAT")
        samples, _ = wav_bytes_to_float32(data)
        assert np.array_equal(samples, wav)

    def test_pcm16_close(self):
        wav = np.linspace(-0.5, 0.5, 1000, dtype=np.float32)
        data, _ = wav_bytes_from_float32(wav, 24000)
        samples, _ = wav_bytes_to_float32(data)
        assert np.allclose(samples, wav, atol=1e-4)

    def test_multi_dim_flattened(self):
        data, _ = wav_bytes_from_float32(np.zeros((1, 300), dtype=np.float32), 24000)
        samples, _ = wav_bytes_to_float32(data)
        assert samples.shape == (300,)

    def test_unknown_subtype(self):
        with pytest.raises(ValueError):
            wav_bytes_from_float32(np.zeros(10, dtype=np.float32), 24000, subtype="MP3")
        with pytest.raises(ValueError):
            write_wav("unused.wav", np.zeros(10, dtype=np.float32), 24000, subtype="PCM_24")

    def test_write_wav_creates_parents(self, tmp_path):
        path = write_wav(tmp_path / "a" / "b" / "out.wav", np.zeros(100, dtype=np.float32), 24000)
        assert path.exists()
        samples, sr = wav_bytes_to_float32(path.read_bytes())
        assert sr == 24000 and len(samples) == 100


class TestPcm16:

    def test_clipping_and_scale(self):
        raw = float32_to_pcm16(np.array([0.0, 1.0, -1.0, 2.0, -2.0], dtype=np.float32))
        values = np.frombuffer(raw, dtype="<i2").tolist()
        assert values == [0, 32767, -32767, 32767, -32767]

    def test_byte_length(self):
        assert len(float32_to_pcm16(np.zeros(10, dtype=np.float32))) == 20


class TestTimeit:

    def test_measures(self):
        with timeit("work", meta={"n": 1}) as t:
            assert t.seconds == -1.0
        assert t.seconds >= 0
        assert t.timing.name == "work"
        assert t.timing.meta == {"n": 1}

    def test_records_on_exception(self):
        t = timeit("fails")
        with pytest.raises(RuntimeError):
            with t:
                raise RuntimeError("boom")
        assert t.seconds >= 0

    def test_accumulate(self):
        timings = {}
        accumulate(timings, "infer", 0.25)
        accumulate(timings, "infer", 0.5)
        assert timings == {"infer": 0.75}
