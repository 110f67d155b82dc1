"""
Phoneme Segmentation.

Kokoro accepts at most 512 tokens including the two pad tokens, so long
phoneme sequences are cut into segments of at most ``max_tokens`` (510).

Strategy (greedy, left to right):
    1. If the remaining tokens fit, emit them all.
    2. Otherwise cut right after the last clause-boundary token
       (; : , . ! ?) inside the current window.
    3. With no boundary in the window, cut hard at max_tokens.

Every segment is non-empty and no longer than max_tokens, and
concatenating the segments gives back the input unchanged.

Example:
    >>> ids = [10, 11, 3, 12, 13, 14]          # 3 is ","
    >>> [s.token_ids for s in segment_phonemes(ids, max_tokens=4, boundary_ids={3})]
    [[10, 11, 3], [12, 13, 14]]
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Iterator, List, Sequence, Union

from kokoro_stream.tts.phonemizer import PhonemeSequence
from kokoro_stream.tts.vocab import DEFAULT_VOCAB, boundary_ids as vocab_boundary_ids

MAX_TOKENS = 510

DEFAULT_BOUNDARY_IDS = vocab_boundary_ids(DEFAULT_VOCAB)


@dataclass(frozen=True)
class Segment:
    """
    A contiguous slice of a phoneme sequence.

    Attributes:
        index: Position among the call's segments, from 0.
        start: Offset of the first token in the full sequence.
        end: Offset one past the last token.
        token_ids: The tokens themselves.
    """
    index: int
    start: int
    end: int
    token_ids: List[int]

    def __len__(self) -> int:
        return self.end - self.start


def segment_phonemes(
    sequence: Union[PhonemeSequence, Sequence[int]],
    max_tokens: int = MAX_TOKENS,
    boundary_ids: AbstractSet[int] = DEFAULT_BOUNDARY_IDS,
) -> Iterator[Segment]:
    """
    Lazily split a phoneme sequence into model-sized segments.

    Args:
        sequence: PhonemeSequence or plain list of token ids.
        max_tokens: Largest allowed segment.
        boundary_ids: Token ids after which a cut is preferred.

    Yields:
        Segments in order. An empty sequence yields nothing.

    Raises:
        ValueError: If max_tokens < 1 (raised on first iteration).
    """
    if max_tokens < 1:
        raise ValueError(f"max_tokens must be >= 1, got {max_tokens}")

    ids = list(sequence.ids if isinstance(sequence, PhonemeSequence) else sequence)
    total = len(ids)
    start = 0
    index = 0

    while start < total:
        end = min(start + max_tokens, total)
        if end < total:
            cut = end
            for pos in range(end - 1, start - 1, -1):
                if ids[pos] in boundary_ids:
                    cut = pos + 1
                    break
            end = cut

        yield Segment(index=index, start=start, end=end, token_ids=ids[start:end])
        start = end
        index += 1


def count_segments(
    sequence: Union[PhonemeSequence, Sequence[int]],
    max_tokens: int = MAX_TOKENS,
    boundary_ids: AbstractSet[int] = DEFAULT_BOUNDARY_IDS,
) -> int:
    """Number of segments segment_phonemes() would yield."""
    return sum(1 for _ in segment_phonemes(sequence, max_tokens, boundary_ids))
