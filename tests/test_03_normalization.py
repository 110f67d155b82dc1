"""
Tests for English text normalization.

Tests cover:
- Whitespace and punctuation spacing
- Abbreviations, currency, percentages, ordinals, years, numbers
- Encoding errors and empty input
"""
import pytest

from kokoro_stream.services.errors import InvalidInputError
from kokoro_stream.utils.text import (
    NORMALIZE_VERSION,
    digits_to_words,
    normalize_text,
    number_to_words,
    ordinal_to_words,
    year_to_words,
)


def norm(text):
    return normalize_text(text)[0]


class TestNumberWords:
    """Number spelling helpers."""

    @pytest.mark.parametrize(
        "n, words",
        [
            (0, "zero"),
            (13, "thirteen"),
            (42, "forty-two"),
            (100, "one hundred"),
            (1001, "one thousand one"),
            (2024, "two thousand twenty-four"),
            (3_000_000, "three million"),
        ],
    )
    def test_number_to_words(self, n, words):
        assert number_to_words(n) == words

    @pytest.mark.parametrize(
        "n, words",
        [(1, "first"), (2, "second"), (3, "third"), (12, "twelfth"), (20, "twentieth"), (21, "twenty-first")],
    )
    def test_ordinals(self, n, words):
        assert ordinal_to_words(n) == words

    @pytest.mark.parametrize(
        "year, words",
        [(1984, "nineteen eighty-four"), (1905, "nineteen oh five"), (1900, "nineteen hundred")],
    )
    def test_years(self, year, words):
        assert year_to_words(year) == words

    def test_digits_to_words_short_run(self):
        assert digits_to_words("1,234") == "one thousand two hundred thirty-four"

    def test_digits_to_words_long_run_read_digit_by_digit(self):
        assert digits_to_words("1234567890123456") == (
            "one two three four five six seven eight nine zero one two three four five six"
        )


class TestNormalizeText:
    """normalize_text() end to end."""

    def test_docstring_example(self):
        assert norm("  Dr.  Smith paid $5 ,  twice ! ") == "Doctor Smith paid five dollars, twice!"

    def test_returns_timings(self):
        _, timings = normalize_text("Hello.")
        assert "normalize" in timings
        assert timings["normalize"] >= 0

    def test_currency_with_cents(self):
        assert norm("$5.50") == "five dollars and fifty cents"

    def test_single_dollar(self):
        assert norm("$1") == "one dollar"

    def test_percent(self):
        assert norm("42%") == "forty-two percent"

    def test_ordinal(self):
        assert norm("the 3rd time") == "the third time"

    def test_year_and_decade(self):
        assert norm("In 1984") == "In nineteen eighty-four"
        assert norm("the 1980s") == "the nineteen eighties"

    def test_decimal(self):
        assert norm("2.5") == "two point five"

    def test_grouped_number(self):
        assert norm("1,000 people") == "one thousand people"

    def test_sentence_final_abbreviation_kept(self):
        assert norm("Ask the Dr.") == "Ask the Dr."

    def test_whitespace_collapsed(self):
        assert norm("a \t b\n\nc") == "a b c"

    def test_bytes_utf8(self):
        assert norm("café".encode("utf-8")) == "café"

    def test_nfkc(self):
        # Fullwidth letters fold to ASCII
        assert norm("Ｈｉ") == "Hi"

    def test_deterministic(self):
        text = "On May 3rd, 1999, Mr. Lee paid $12.05 (about 10%)."
        assert norm(text) == norm(text)

    def test_version_constant(self):
        assert isinstance(NORMALIZE_VERSION, str) and NORMALIZE_VERSION


class TestNormalizeErrors:
    """Invalid input is rejected with InvalidInputError."""

    def test_invalid_utf8_bytes(self):
        with pytest.raises(InvalidInputError) as exc_info:
            normalize_text(b"abc\xff\xfe")
        assert exc_info.value.details["reason"] == "TEXT_BAD_ENCODING"

    def test_lone_surrogate(self):
        with pytest.raises(InvalidInputError) as exc_info:
            normalize_text("abc\ud800")
        assert exc_info.value.details["reason"] == "TEXT_BAD_ENCODING"

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_empty_after_trim(self, text):
        with pytest.raises(InvalidInputError) as exc_info:
            normalize_text(text)
        assert exc_info.value.details["reason"] == "TEXT_REQUIRED"


class TestLongDigitRuns:
    """Digit runs past int()'s string conversion limit are still spoken."""

    RUN = "7" * 5000

    def test_plain_number(self):
        out = norm("Order " + self.RUN + " arrived.")
        assert out.startswith("Order seven seven")
        assert out.endswith("seven arrived.")
        assert out.count("seven") == 5000

    def test_ordinal(self):
        out = norm("the " + self.RUN + "th time")
        assert out.endswith("seven seventh time")

    def test_currency(self):
        out = norm("$" + self.RUN)
        assert out.endswith("seven dollars")
        assert out.count("seven") == 5000

    def test_decimal_and_percent(self):
        assert norm(self.RUN + ".5").endswith("seven point five")
        assert norm(self.RUN + "%").endswith("seven percent")
