"""
Tests for crossfade assembly.

Tests cover:
- Crossfade formula at a joint
- Overlap limited by short segments
- Empty waveforms skipped
- Streaming push/flush output equals buffered assemble()
"""
import numpy as np
import pytest

from kokoro_stream.tts.assembler import StreamAssembler, assemble, crossfade_samples


def stream(waveforms, crossfade):
    asm = StreamAssembler(crossfade)
    parts = [asm.push(w) for w in waveforms]
    parts.append(asm.flush())
    return np.concatenate(parts), asm


class TestCrossfadeSamples:

    def test_ten_ms_at_24k(self):
        assert crossfade_samples(10) == 240

    def test_zero(self):
        assert crossfade_samples(0) == 0

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            crossfade_samples(-1)

    def test_from_ms(self):
        assert StreamAssembler.from_ms(5).crossfade == 120


class TestAssemble:
    """Buffered assembly."""

    def test_single_waveform_unchanged(self):
        wav = np.linspace(-1, 1, 500, dtype=np.float32)
        assert np.array_equal(assemble([wav], 240), wav)

    def test_linear_ramp_at_joint(self):
        out = assemble([np.ones(10, dtype=np.float32), np.zeros(10, dtype=np.float32)], crossfade=4)
        assert len(out) == 16
        assert np.allclose(out[:6], 1.0)
        assert np.allclose(out[6:10], [0.8, 0.6, 0.4, 0.2])
        assert np.allclose(out[10:], 0.0)

    def test_length_is_sum_minus_overlaps(self):
        waves = [np.ones(n, dtype=np.float32) for n in (1000, 700, 900)]
        assert len(assemble(waves, 240)) == 1000 + 700 + 900 - 2 * 240

    def test_short_segment_limits_overlap(self):
        waves = [np.ones(10, dtype=np.float32), np.full(2, 2.0, dtype=np.float32)]
        out = assemble(waves, crossfade=4)
        assert len(out) == 10
        assert np.allclose(out[-2:], [4.0 / 3.0, 5.0 / 3.0])

    def test_no_crossfade_concatenates(self):
        a = np.ones(5, dtype=np.float32)
        b = np.zeros(3, dtype=np.float32)
        assert np.array_equal(assemble([a, b], 0), np.concatenate([a, b]))

    def test_empty_waveforms_skipped(self):
        a = np.ones(50, dtype=np.float32)
        empty = np.zeros(0, dtype=np.float32)
        assert np.array_equal(assemble([empty, a, empty], 8), a)

    def test_nothing_to_assemble(self):
        out = assemble([], 240)
        assert out.dtype == np.float32
        assert out.size == 0

    def test_negative_crossfade_rejected(self):
        with pytest.raises(ValueError):
            StreamAssembler(-5)


class TestStreamingEqualsBuffered:
    """push()/flush() concatenated is exactly assemble()."""

    @pytest.mark.parametrize(
        "lengths, crossfade",
        [
            ((1000, 1000, 1000), 240),
            ((100, 3, 50, 1, 400), 240),
            ((5, 5, 5), 240),
            ((300, 0, 300), 16),
            ((1,), 240),
            ((700, 800), 0),
        ],
    )
    def test_equal(self, lengths, crossfade):
        rng = np.random.default_rng(1234)
        waves = [rng.uniform(-1, 1, n).astype(np.float32) for n in lengths]
        streamed, asm = stream(waves, crossfade)
        buffered = assemble(waves, crossfade)
        assert np.array_equal(streamed, buffered)
        assert asm.samples_emitted == len(buffered)

    def test_push_holds_back_tail(self):
        asm = StreamAssembler(240)
        first = asm.push(np.ones(1000, dtype=np.float32))
        assert len(first) == 760
        assert len(asm.flush()) == 240

    def test_flush_resets(self):
        asm = StreamAssembler(4)
        asm.push(np.ones(10, dtype=np.float32))
        asm.flush()
        again = asm.push(np.zeros(10, dtype=np.float32))
        # No blending with the previous utterance
        assert np.allclose(again, 0.0)
