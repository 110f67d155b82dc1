"""
Text Normalization.

Turns raw user text into the canonical English-reading form the
phonemizer expects.

Normalization Steps:
    1. Decode (bytes must be UTF-8) and reject lone surrogates
    2. Unicode NFKC
    3. Expand abbreviations (Dr. -> Doctor, Mr. -> Mister, ...)
    4. Expand currency, percentages, ordinals, years and numbers
    5. Collapse whitespace and fix punctuation spacing

Numbers:
    "$5.50"  -> "five dollars and fifty cents"
    "42%"    -> "forty-two percent"
    "3rd"    -> "third"
    "1984"   -> "nineteen eighty-four"   (1100-1999 read as pairs)
    "2.5"    -> "two point five"
    "1,000"  -> "one thousand"

Version Tracking:
    NORMALIZE_VERSION changes whenever the output for some input changes.

Example:
    >>> text, timings = normalize_text("  Dr.  Smith paid $5 ,  twice ! ")
    >>> text
    'Doctor Smith paid five dollars, twice!'
"""
from __future__ import annotations

import re
import unicodedata
from typing import Dict, Union

from kokoro_stream.core.logging import get_logger, verbose
from kokoro_stream.services.errors import InvalidInputError
from kokoro_stream.utils.timeit import timeit

_LOG = get_logger("kokoro-stream.text")

NORMALIZE_VERSION = "v1"

_WS_RE = re.compile(r"\s+")
_SPACE_BEFORE_PUNCT = re.compile(r"\s+([,.!?;:])")
_SPACE_AFTER_OPEN = re.compile(r"([(\[{])\s+")
_SPACE_BEFORE_CLOSE = re.compile(r"\s+([)\]}])")

_ABBREVIATIONS = {
    "Dr": "Doctor",
    "Mr": "Mister",
    "Mrs": "Missus",
    "Ms": "Miss",
    "Prof": "Professor",
    "St": "Saint",
    "Mt": "Mount",
    "Jr": "Junior",
    "Sr": "Senior",
    "Capt": "Captain",
    "Gen": "General",
    "Lt": "Lieutenant",
    "Sgt": "Sergeant",
    "vs": "versus",
}
# Only expand when another word follows, so sentence-final periods survive.
_ABBREV_RE = re.compile(r"\b(" + "|".join(_ABBREVIATIONS) + r")\.(?=\s+\S)")

_ONES = [
    "zero", "one", "two", "three", "four", "five", "six", "seven", "eight",
    "nine", "ten", "eleven", "twelve", "thirteen", "fourteen", "fifteen",
    "sixteen", "seventeen", "eighteen", "nineteen",
]
_TENS = ["", "", "twenty", "thirty", "forty", "fifty", "sixty", "seventy", "eighty", "ninety"]
_SCALES = [
    (10 ** 12, "trillion"),
    (10 ** 9, "billion"),
    (10 ** 6, "million"),
    (1000, "thousand"),
]
_ORDINAL_EXCEPTIONS = {
    "one": "first", "two": "second", "three": "third", "five": "fifth",
    "eight": "eighth", "nine": "ninth", "twelve": "twelfth",
}

_CURRENCIES = {
    "$": ("dollar", "dollars", "cent", "cents"),
    "£": ("pound", "pounds", "penny", "pence"),
    "€": ("euro", "euros", "cent", "cents"),
}

_CURRENCY_RE = re.compile(r"([$£€])\s?(\d{1,3}(?:,\d{3})+|\d+)(?:\.(\d{1,2}))?\b")
_PERCENT_RE = re.compile(r"(\d{1,3}(?:,\d{3})+|\d+(?:\.\d+)?)\s?%")
_ORDINAL_RE = re.compile(r"\b(\d+)(st|nd|rd|th)\b", re.IGNORECASE)
_YEAR_RE = re.compile(r"(?<![\d.,])(1[1-9]\d\d)(?![\d.,]\d)(s?)\b")
_GROUPED_RE = re.compile(r"\b\d{1,3}(?:,\d{3})+\b")
_DECIMAL_RE = re.compile(r"\b(\d+)\.(\d+)\b")
_INT_RE = re.compile(r"\b\d+\b")

# Longer digit runs are read one digit at a time.
_MAX_SPELLED_DIGITS = 15


def _below_thousand(n: int) -> str:
    parts = []
    hundreds, rest = divmod(n, 100)
    if hundreds:
        parts.append(f"{_ONES[hundreds]} hundred")
    if rest:
        if rest < 20:
            parts.append(_ONES[rest])
        else:
            tens, ones = divmod(rest, 10)
            parts.append(_TENS[tens] + (f"-{_ONES[ones]}" if ones else ""))
    return " ".join(parts)


def number_to_words(n: int) -> str:
    """
    Spell out a non-negative integer in English.

    Numbers of a quadrillion or more are read digit by digit.
    """
    if n < 0:
        return "minus " + number_to_words(-n)
    if n < 20:
        return _ONES[n]
    if n >= 10 ** 15:
        return " ".join(_ONES[int(d)] for d in str(n))

    parts = []
    for scale, name in _SCALES:
        if n >= scale:
            count, n = divmod(n, scale)
            parts.append(f"{_below_thousand(count)} {name}")
    if n:
        parts.append(_below_thousand(n))
    return " ".join(parts)


def ordinal_to_words(n: int) -> str:
    return _ordinalize(number_to_words(n))


def _ordinalize(words: str) -> str:
    head, sep, last = words.rpartition(" ")
    prefix, dash, unit = last.rpartition("-")
    if unit in _ORDINAL_EXCEPTIONS:
        unit = _ORDINAL_EXCEPTIONS[unit]
    elif unit.endswith("y"):
        unit = unit[:-1] + "ieth"
    else:
        unit += "th"
    return head + sep + prefix + dash + unit


def year_to_words(year: int) -> str:
    """Read a year 1100-1999 as two pairs: 1984 -> nineteen eighty-four."""
    hi, lo = divmod(year, 100)
    if lo == 0:
        return f"{number_to_words(hi)} hundred"
    if lo < 10:
        return f"{number_to_words(hi)} oh {_ONES[lo]}"
    return f"{number_to_words(hi)} {number_to_words(lo)}"


def _digits(s: str) -> str:
    return " ".join(_ONES[int(d)] for d in s)


def digits_to_words(s: str) -> str:
    """
    Spell out a run of ASCII digits (commas allowed as separators).

    Runs longer than 15 digits are read digit by digit without ever
    going through int(), which refuses very long strings.
    """
    s = s.replace(",", "")
    if len(s) > _MAX_SPELLED_DIGITS:
        return _digits(s)
    return number_to_words(int(s))


def _expand_currency(m: re.Match) -> str:
    one, many, sub_one, sub_many = _CURRENCIES[m.group(1)]
    whole = m.group(2).replace(",", "")
    unit = one if whole.lstrip("0") == "1" else many
    text = f"{digits_to_words(whole)} {unit}"
    if m.group(3):
        cents = int(m.group(3).ljust(2, "0"))
        if cents:
            text += f" and {number_to_words(cents)} {sub_one if cents == 1 else sub_many}"
    return text


def _expand_percent(m: re.Match) -> str:
    return f"{_expand_number(m.group(1))} percent"


def _expand_ordinal(m: re.Match) -> str:
    return _ordinalize(digits_to_words(m.group(1)))


def _expand_year(m: re.Match) -> str:
    words = year_to_words(int(m.group(1)))
    if m.group(2):
        # 1980s -> nineteen eighties
        words = words[:-1] + "ies" if words.endswith("y") else words + "s"
    return words


def _expand_number(s: str) -> str:
    whole, _, frac = s.replace(",", "").partition(".")
    words = digits_to_words(whole)
    if frac:
        words += " point " + _digits(frac)
    return words


def _decode(text: Union[str, bytes]) -> str:
    if isinstance(text, bytes):
        try:
            return text.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidInputError(
                f"Text is not valid UTF-8: {e.reason} at byte {e.start}",
                {"reason": "TEXT_BAD_ENCODING"},
            ) from e
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidInputError(
            f"Text contains an unpaired surrogate at index {e.start}",
            {"reason": "TEXT_BAD_ENCODING"},
        ) from e
    return text


def normalize_text(text: Union[str, bytes]) -> tuple[str, Dict[str, float]]:
    """
    Normalize raw text for phonemization.

    Args:
        text: Raw input as str or UTF-8 bytes.

    Returns:
        Tuple of (normalized_text, timings) with timings["normalize"].

    Raises:
        InvalidInputError: On malformed encoding or text that is empty
            after trimming.
    """
    timings: Dict[str, float] = {}

    with timeit("normalize") as t:
        s = unicodedata.normalize("NFKC", _decode(text)).strip()
        if not s:
            raise InvalidInputError("Text is empty after trimming", {"reason": "TEXT_REQUIRED"})

        s = _ABBREV_RE.sub(lambda m: _ABBREVIATIONS[m.group(1)], s)
        s = _CURRENCY_RE.sub(_expand_currency, s)
        s = _PERCENT_RE.sub(_expand_percent, s)
        s = _ORDINAL_RE.sub(_expand_ordinal, s)
        s = _YEAR_RE.sub(_expand_year, s)
        s = _GROUPED_RE.sub(lambda m: digits_to_words(m.group(0)), s)
        s = _DECIMAL_RE.sub(lambda m: _expand_number(m.group(0)), s)
        s = _INT_RE.sub(lambda m: digits_to_words(m.group(0)), s)

        s = _WS_RE.sub(" ", s)
        s = _SPACE_BEFORE_PUNCT.sub(r"\1", s)
        s = _SPACE_AFTER_OPEN.sub(r"\1", s)
        s = _SPACE_BEFORE_CLOSE.sub(r"\1", s)
        s = s.strip()

    timings["normalize"] = t.seconds
    verbose(_LOG, "normalized", chars_in=len(text), chars_out=len(s), seconds=round(t.seconds, 5))
    return s, timings
