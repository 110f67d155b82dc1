"""
Tests for phoneme segmentation.

Tests cover:
- Short input stays in one segment
- Cuts land after the last boundary token in the window
- Hard cuts when no boundary exists
- Concatenation gives back the input
"""
import pytest

from kokoro_stream.tts.phonemizer import Phonemizer, PhonemeSequence
from kokoro_stream.tts.segmenter import MAX_TOKENS, count_segments, segment_phonemes


def ids_of(segments):
    return [s.token_ids for s in segments]


class TestSegmentation:
    """segment_phonemes() behaviour."""

    def test_docstring_example(self):
        ids = [10, 11, 3, 12, 13, 14]
        assert ids_of(segment_phonemes(ids, max_tokens=4, boundary_ids={3})) == [[10, 11, 3], [12, 13, 14]]

    def test_fits_in_one_segment(self):
        segs = list(segment_phonemes(list(range(7, 17)), max_tokens=10))
        assert len(segs) == 1
        assert segs[0].start == 0 and segs[0].end == 10
        assert len(segs[0]) == 10

    def test_empty_yields_nothing(self):
        assert list(segment_phonemes([])) == []

    def test_hard_cut_without_boundary(self):
        ids = [50] * 25
        segs = list(segment_phonemes(ids, max_tokens=10, boundary_ids={3}))
        assert [len(s) for s in segs] == [10, 10, 5]

    def test_cut_after_last_boundary_in_window(self):
        ids = [50, 3, 50, 3, 50, 50, 50, 50]
        segs = ids_of(segment_phonemes(ids, max_tokens=5, boundary_ids={3}))
        assert segs[0] == [50, 3, 50, 3]

    def test_boundary_at_window_end(self):
        ids = [50, 50, 50, 4, 50, 50]
        assert ids_of(segment_phonemes(ids, max_tokens=4, boundary_ids={4})) == [[50, 50, 50, 4], [50, 50]]

    def test_indices_and_offsets_contiguous(self):
        ids = [50, 3] * 40
        segs = list(segment_phonemes(ids, max_tokens=7, boundary_ids={3}))
        assert [s.index for s in segs] == list(range(len(segs)))
        for prev, cur in zip(segs, segs[1:]):
            assert prev.end == cur.start
        assert segs[-1].end == len(ids)

    @pytest.mark.parametrize("max_tokens", [1, 2, 5, 13, 510])
    def test_concatenation_restores_input(self, max_tokens):
        ids = [(i * 7) % 60 + 1 for i in range(600)]
        segs = list(segment_phonemes(ids, max_tokens=max_tokens))
        assert [t for s in segs for t in s.token_ids] == ids
        assert all(0 < len(s) <= max_tokens for s in segs)

    def test_accepts_phoneme_sequence(self):
        seq = Phonemizer().phonemize("Hello, world.", "en-us")
        assert isinstance(seq, PhonemeSequence)
        segs = ids_of(segment_phonemes(seq, max_tokens=8))
        # Cut right after the comma
        assert segs[0][-1] == 3
        assert sum(segs, []) == seq.ids

    def test_invalid_max_tokens(self):
        with pytest.raises(ValueError):
            list(segment_phonemes([1, 2, 3], max_tokens=0))

    def test_count_segments(self):
        assert count_segments([50] * 25, max_tokens=10, boundary_ids=set()) == 3
        assert count_segments([]) == 0

    def test_default_limit(self):
        assert MAX_TOKENS == 510
        segs = list(segment_phonemes([50] * 1021))
        assert [len(s) for s in segs] == [510, 510, 1]
