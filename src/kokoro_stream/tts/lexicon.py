"""
Pronunciation Lexicon.

Word -> phoneme string lookup, per language. The built-in table covers
the most frequent English words plus everything the text normalizer
emits (number words, expanded abbreviations), so normalized text rarely
reaches the letter-to-sound rules.

British English entries are derived from the American table by
us_to_gb() unless an explicit en-gb entry exists.

User lexicons:
    YAML or JSON, either flat (applied to one language):

        kokoro: kəkˈoːɹoʊ
        nginx: ˈɛnʤɪnˌɛks

    or keyed by language:

        en-us:
          tomato: təmˈeɪɾoʊ
        en-gb:
          tomato: təmˈɑːtəʊ
"""
from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml

from kokoro_stream.core.config import ConfigValidationError
from kokoro_stream.core.logging import get_logger, info

_LOG = get_logger("kokoro-stream.lexicon")

_EN_US: Dict[str, str] = {
    # function words
    "a": "ɐ", "an": "ɐn", "the": "ðə", "and": "ænd", "or": "ɔːɹ", "but": "bʌt",
    "of": "ʌv", "to": "tuː", "in": "ɪn", "into": "ˈɪntuː", "on": "ɑːn",
    "at": "æt", "by": "baɪ", "for": "fɔːɹ", "from": "fɹʌm", "with": "wɪð",
    "as": "æz", "if": "ɪf", "than": "ðæn", "then": "ðˈɛn", "so": "sˈoʊ",
    "not": "nˈɑːt", "no": "nˈoʊ", "yes": "jˈɛs", "up": "ˈʌp", "out": "ˈaʊt",
    "about": "ɐbˈaʊt", "over": "ˈoʊvɚ", "under": "ˈʌndɚ", "after": "ˈæftɚ",
    "before": "bɪfˈoːɹ", "because": "bɪkˈʌz", "through": "θɹuː",
    "i": "aɪ", "me": "miː", "my": "maɪ", "you": "juː", "your": "jʊɹ",
    "he": "hiː", "him": "hɪm", "his": "hɪz", "she": "ʃiː", "her": "hɜː",
    "it": "ɪt", "its": "ɪts", "we": "wiː", "us": "ʌs", "our": "ˈaʊɚ",
    "they": "ðeɪ", "them": "ðˈɛm", "their": "ðɛɹ", "there": "ðɛɹ",
    "this": "ðɪs", "that": "ðæt", "these": "ðiːz", "those": "ðoʊz",
    "what": "wˈʌt", "which": "wˈɪʧ", "who": "huː", "whom": "huːm",
    "whose": "huːz", "when": "wˈɛn", "where": "wˈɛɹ", "why": "wˈaɪ",
    "how": "hˈaʊ", "all": "ˈɔːl", "each": "ˈiːʧ", "some": "sˈʌm",
    "any": "ˈɛni", "many": "mˈɛni", "much": "mˈʌʧ", "more": "mˈoːɹ",
    "most": "mˈoʊst", "other": "ˈʌðɚ", "only": "ˈoʊnli", "very": "vˈɛɹi",
    "also": "ˈɔːlsoʊ", "just": "ʤˈʌst", "here": "hˈɪɹ", "now": "nˈaʊ",
    "again": "ɐɡˈɛn", "once": "wˈʌns", "one": "wˈʌn",
    # auxiliaries
    "is": "ɪz", "are": "ɑːɹ", "was": "wʌz", "were": "wɜː", "be": "biː",
    "been": "bɪn", "being": "bˈiːɪŋ", "am": "æm", "have": "hæv",
    "has": "hæz", "had": "hæd", "do": "duː", "does": "dʌz", "did": "dɪd",
    "done": "dˈʌn", "will": "wɪl", "would": "wʊd", "can": "kæn",
    "could": "kʊd", "shall": "ʃæl", "should": "ʃʊd", "may": "meɪ",
    "might": "mˈaɪt", "must": "mˈʌst",
    "don't": "dˈoʊnt", "can't": "kˈænt", "won't": "wˈoʊnt", "isn't": "ˈɪzənt",
    "it's": "ɪts", "i'm": "aɪm", "you're": "jʊɹ", "we're": "wɪɹ",
    "that's": "ðæts", "let's": "lˈɛts",
    # common content words
    "said": "sˈɛd", "say": "sˈeɪ", "says": "sˈɛz", "make": "mˈeɪk",
    "made": "mˈeɪd", "like": "lˈaɪk", "time": "tˈaɪm", "look": "lˈʊk",
    "write": "ɹˈaɪt", "go": "ɡˈoʊ", "goes": "ɡˈoʊz", "see": "sˈiː",
    "way": "wˈeɪ", "people": "pˈiːpəl", "water": "wˈɔːɾɚ",
    "find": "fˈaɪnd", "long": "lˈɔŋ", "down": "dˈaʊn", "day": "dˈeɪ",
    "get": "ɡɛt", "give": "ɡˈɪv", "come": "kˈʌm", "part": "pˈɑːɹt",
    "word": "wˈɜːd", "world": "wˈɜːld", "hello": "həlˈoʊ", "okay": "ˌoʊkˈeɪ",
    "thank": "θˈæŋk", "thanks": "θˈæŋks", "please": "plˈiːz",
    "good": "ɡˈʊd", "morning": "mˈɔːɹnɪŋ", "night": "nˈaɪt",
    "speech": "spˈiːʧ", "voice": "vˈɔɪs", "text": "tˈɛkst",
    "audio": "ˈɔːdɪˌoʊ", "kokoro": "kəkˈoːɹoʊ", "know": "nˈoʊ",
    "work": "wˈɜːk", "year": "jˈɪɹ", "years": "jˈɪɹz", "new": "nˈuː",
    "want": "wˈɑːnt", "use": "jˈuːz", "first": "fˈɜːst", "last": "lˈæst",
    "great": "ɡɹˈeɪt", "little": "lˈɪɾəl", "own": "ˈoʊn", "old": "ˈoʊld",
    "right": "ɹˈaɪt", "think": "θˈɪŋk", "take": "tˈeɪk", "live": "lˈɪv",
    "where's": "wˈɛɹz", "friend": "fɹˈɛnd", "today": "tədˈeɪ",
    "quick": "kwˈɪk", "brown": "bɹˈaʊn", "fox": "fˈɑːks",
    "jumps": "ʤˈʌmps", "lazy": "lˈeɪzi", "dog": "dˈɔɡ",
    # normalizer output: numbers
    "zero": "zˈiəɹoʊ", "two": "tˈuː", "three": "θɹˈiː", "four": "fˈoːɹ",
    "five": "fˈaɪv", "six": "sˈɪks", "seven": "sˈɛvən", "eight": "ˈeɪt",
    "nine": "nˈaɪn", "ten": "tˈɛn", "eleven": "ɪlˈɛvən", "twelve": "twˈɛlv",
    "thirteen": "θˈɜːtiːn", "fourteen": "fˈoːɹtiːn", "fifteen": "fɪftˈiːn",
    "sixteen": "sɪkstˈiːn", "seventeen": "sˈɛvəntˌiːn", "eighteen": "eɪtˈiːn",
    "nineteen": "nˈaɪntiːn", "twenty": "twˈɛnti", "thirty": "θˈɜːɾi",
    "forty": "fˈɔːɹɾi", "fifty": "fˈɪfti", "sixty": "sˈɪksti",
    "seventy": "sˈɛvənti", "eighty": "ˈeɪɾi", "ninety": "nˈaɪnti",
    "hundred": "hˈʌndɹəd", "thousand": "θˈaʊzənd", "million": "mˈɪliən",
    "billion": "bˈɪliən", "trillion": "tɹˈɪliən", "point": "pˈɔɪnt",
    "minus": "mˈaɪnəs", "oh": "ˈoʊ", "percent": "pɚsˈɛnt",
    "second": "sˈɛkənd", "third": "θˈɜːd", "fifth": "fˈɪfθ",
    "eighth": "ˈeɪtθ", "ninth": "nˈaɪnθ", "twelfth": "twˈɛlfθ",
    # normalizer output: currency
    "dollar": "dˈɑːlɚ", "dollars": "dˈɑːlɚz", "cent": "sˈɛnt",
    "cents": "sˈɛnts", "pound": "pˈaʊnd", "pounds": "pˈaʊndz",
    "penny": "pˈɛni", "pence": "pˈɛns", "euro": "jˈʊɹoʊ", "euros": "jˈʊɹoʊz",
    # normalizer output: abbreviations
    "doctor": "dˈɑːktɚ", "mister": "mˈɪstɚ", "missus": "mˈɪsɪz",
    "miss": "mˈɪs", "professor": "pɹəfˈɛsɚ", "saint": "sˈeɪnt",
    "mount": "mˈaʊnt", "junior": "ʤˈuːnjɚ", "senior": "sˈiːnjɚ",
    "captain": "kˈæptɪn", "general": "ʤˈɛnɚɹəl", "lieutenant": "luːtˈɛnənt",
    "sergeant": "sˈɑːɹʤənt", "versus": "vˈɜːsəs",
}

# Words whose British form is not a mechanical conversion of the American one.
_EN_GB_OVERRIDES: Dict[str, str] = {
    "not": "nˈɒt", "on": "ɒn", "was": "wɒz", "what": "wˈɒt",
    "want": "wˈɒnt", "dollar": "dˈɒlə", "dollars": "dˈɒləz",
    "doctor": "dˈɒktə", "fox": "fˈɒks", "dog": "dˈɒɡ", "long": "lˈɒŋ",
    "last": "lˈɑːst", "after": "ˈɑːftə", "can't": "kˈɑːnt",
    "water": "wˈɔːtə", "little": "lˈɪtəl", "thirty": "θˈɜːti",
    "forty": "fˈɔːti", "eighty": "ˈeɪti", "isn't": "ˈɪzənt",
}

_GB_SUBSTITUTIONS = [
    (re.compile(r"oʊ"), "əʊ"),
    (re.compile(r"ɚ"), "ə"),
    (re.compile(r"ɛɹ(?![aeiouæɑɒɔəɛɜɪʊʌ])"), "eə"),
    (re.compile(r"ɪɹ(?![aeiouæɑɒɔəɛɜɪʊʌ])"), "ɪə"),
    (re.compile(r"ʊɹ(?![aeiouæɑɒɔəɛɜɪʊʌ])"), "ʊə"),
    (re.compile(r"oːɹ"), "ɔː"),
    # Non-prevocalic r is silent.
    (re.compile(r"ɹ(?![aeiouæɑɒɔəɛɜɪʊʌˈˌ])"), ""),
    # Short o (bare ɑ from the rules) is rounded.
    (re.compile(r"ɑ(?!ː)"), "ɒ"),
    (re.compile(r"ɾ"), "t"),
]


def us_to_gb(ipa: str) -> str:
    """Convert an American phoneme string to its British counterpart."""
    out = ipa
    for pattern, repl in _GB_SUBSTITUTIONS:
        out = pattern.sub(repl, out)
    return out


class Lexicon:
    """
    Per-language word -> phoneme table.

    Lookups are case-insensitive. Entries added later win over earlier
    ones, so user lexicons override the built-in table.
    """

    def __init__(self, entries: Optional[Dict[str, Dict[str, str]]] = None):
        self._entries: Dict[str, Dict[str, str]] = {}
        for language, words in (entries or {}).items():
            for word, phonemes in words.items():
                self.add(language, word, phonemes)

    @classmethod
    def builtin(cls) -> "Lexicon":
        """Lexicon preloaded with the English tables."""
        return cls({"en-us": _EN_US, "en-gb": _EN_GB_OVERRIDES})

    @property
    def languages(self) -> List[str]:
        return sorted(self._entries)

    def __len__(self) -> int:
        return sum(len(words) for words in self._entries.values())

    def add(self, language: str, word: str, phonemes: str) -> None:
        self._entries.setdefault(language.lower(), {})[word.lower()] = phonemes

    def lookup(self, word: str, language: str) -> Optional[str]:
        """Phonemes for word, or None when the lexicon has no entry."""
        key = word.lower()
        lang = language.lower()
        found = self._entries.get(lang, {}).get(key)
        if found is None and lang == "en-gb":
            us = self._entries.get("en-us", {}).get(key)
            if us is not None:
                found = us_to_gb(us)
        return found

    def load_file(self, path: Union[str, Path], language: str = "en-us") -> int:
        """
        Merge a YAML or JSON lexicon file.

        Args:
            path: Lexicon file (.json, .yaml or .yml).
            language: Language for flat files.

        Returns:
            Number of entries added.

        Raises:
            ConfigValidationError: If the file cannot be read or parsed,
                or its structure is not a word -> phonemes mapping.
        """
        p = Path(path)
        try:
            raw_text = p.read_text(encoding="utf-8")
            if p.suffix.lower() == ".json":
                data = json.loads(raw_text)
            else:
                data = yaml.safe_load(raw_text)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigValidationError(f"cannot load lexicon {p}: {e}") from e

        if data is None:
            return 0
        if not isinstance(data, dict):
            raise ConfigValidationError(f"lexicon {p} must be a mapping")

        if data and all(isinstance(v, dict) for v in data.values()):
            tables = data
        else:
            tables = {language: data}

        count = 0
        for lang, words in tables.items():
            for word, phonemes in words.items():
                if not isinstance(phonemes, str) or not str(word):
                    raise ConfigValidationError(
                        f"lexicon {p}: entry {word!r} must map to a phoneme string"
                    )
                self.add(str(lang), str(word), phonemes)
                count += 1

        info(_LOG, "lexicon_loaded", path=str(p), entries=count)
        return count
