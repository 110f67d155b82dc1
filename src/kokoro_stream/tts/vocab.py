"""
Kokoro Token Vocabulary.

Maps single IPA characters (and punctuation) to the integer token ids the
model was trained on. The model directory's ``config.json`` is the
source of truth; the built-in table is used when it is absent.

Id 0 is reserved for padding and never appears in the table.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Union

from kokoro_stream.services.errors import ModelConfigError

PAD_ID = 0

# Clause-ending punctuation; the segmenter prefers to cut right after these.
BOUNDARY_PUNCTUATION = ";:,.!?"

DEFAULT_VOCAB: Dict[str, int] = {
    ";": 1, ":": 2, ",": 3, ".": 4, "!": 5, "?": 6,
    "\u2014": 9, "\u2026": 10, '"': 11, "(": 12, ")": 13, "\u201c": 14, "\u201d": 15,
    " ": 16, "\u0303": 17,
    "ʣ": 18, "ʥ": 19, "ʦ": 20, "ʨ": 21, "ᵝ": 22, "ꭧ": 23,
    "A": 24, "I": 25, "O": 31, "Q": 33, "S": 35, "T": 36, "W": 39, "Y": 41,
    "ᵊ": 42,
    "a": 43, "b": 44, "c": 45, "d": 46, "e": 47, "f": 48, "h": 50, "i": 51,
    "j": 52, "k": 53, "l": 54, "m": 55, "n": 56, "o": 57, "p": 58, "q": 59,
    "r": 60, "s": 61, "t": 62, "u": 63, "v": 64, "w": 65, "x": 66, "y": 67,
    "z": 68,
    "ɑ": 69, "ɐ": 70, "ɒ": 71, "æ": 72, "β": 75, "ɔ": 76, "ɕ": 77, "ç": 78,
    "ɖ": 80, "ð": 81, "ʤ": 82, "ə": 83, "ɚ": 85, "ɛ": 86, "ɜ": 87, "ɟ": 90,
    "ɡ": 92, "ɥ": 99, "ɨ": 101, "ɪ": 102, "ʝ": 103, "ɯ": 110, "ɰ": 111,
    "ŋ": 112, "ɳ": 113, "ɲ": 114, "ɴ": 115, "ø": 116, "ɸ": 118, "θ": 119,
    "œ": 120, "ɹ": 123, "ɾ": 125, "ɻ": 126, "ʁ": 128, "ɽ": 129, "ʂ": 130,
    "ʃ": 131, "ʈ": 132, "ʧ": 133, "ʊ": 135, "ʋ": 136, "ʌ": 138, "ɣ": 139,
    "ɤ": 140, "χ": 142, "ʎ": 143, "ʒ": 147, "ʔ": 148,
    "ˈ": 156, "ˌ": 157, "ː": 158, "ʰ": 162, "ʲ": 164,
    "↓": 169, "→": 171, "↗": 172, "↘": 173, "ᵻ": 177,
}


def load_vocab(config_path: Union[str, Path]) -> Dict[str, int]:
    """
    Read the ``vocab`` object from a Kokoro config.json.

    Keys longer than one character keep only their first character.

    Raises:
        ModelConfigError: If the file is not JSON or the vocab is malformed.
    """
    p = Path(config_path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ModelConfigError(f"cannot read {p.name}: {e}", {"path": str(p)}) from e

    vocab = data.get("vocab") if isinstance(data, dict) else None
    if vocab is None:
        raise ModelConfigError(f"{p.name} has no 'vocab' field", {"path": str(p)})
    if not isinstance(vocab, dict):
        raise ModelConfigError(f"'vocab' in {p.name} must be an object", {"path": str(p)})

    out: Dict[str, int] = {}
    for key, value in vocab.items():
        if not key:
            raise ModelConfigError(f"empty key in vocab of {p.name}", {"path": str(p)})
        if isinstance(value, bool) or not isinstance(value, int):
            raise ModelConfigError(
                f"non-integer vocab value for key {key!r} in {p.name}",
                {"path": str(p)},
            )
        out[key[0]] = value
    return out


def boundary_ids(vocab: Dict[str, int], punctuation: Iterable[str] = BOUNDARY_PUNCTUATION) -> FrozenSet[int]:
    """Token ids of the clause-boundary punctuation present in vocab."""
    return frozenset(vocab[ch] for ch in punctuation if ch in vocab)
