"""
Phonemizer: normalized text -> Kokoro token ids.

Pipeline:
    1. split_text_parts(): word runs and boundary punctuation, in order.
       Newlines become "."; "." and "," between digits stay inside runs.
    2. Each word run becomes IPA, either through the built-in lexicon
       and letter-to-sound rules ("rules" backend) or through espeak-ng
       ("espeak" backend, one batched subprocess call per phonemize()).
    3. IPA characters and punctuation map to vocab ids. Characters the
       vocab does not know are dropped one by one.

Languages:
    rules:  en-us, en-gb, es
    espeak: anything espeak-ng knows (fr, hi, it, ja, pt-br, cmn, ...),
            with en-us/en-gb/es falling back to rules if the binary is
            missing.

Usage:
    phonemizer = Phonemizer(DEFAULT_VOCAB, Lexicon.builtin())
    seq = phonemizer.phonemize("Hello, world.", "en-us")
    seq.ids  # [50, 83, 54, 156, 57, 135, 3, 16, 65, 156, 87, 158, 54, 46, 4]
"""
from __future__ import annotations

import os
import re
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional, Sequence

from kokoro_stream.core.logging import debug, get_logger, verbose, warn
from kokoro_stream.services.errors import UnsupportedLanguageError
from kokoro_stream.tts.g2p_rules import RULE_LANGUAGES, english_to_ipa, spanish_to_ipa
from kokoro_stream.tts.lexicon import Lexicon
from kokoro_stream.tts.vocab import DEFAULT_VOCAB
from kokoro_stream.utils.text import digits_to_words
from kokoro_stream.utils.timeit import timeit

_LOG = get_logger("kokoro-stream.phonemizer")

DEFAULT_LANGUAGE = "en-us"

_VOICE_PREFIX_LANGUAGE = {
    "af": "en-us", "am": "en-us",
    "bf": "en-gb", "bm": "en-gb",
    "ef": "es", "em": "es",
    "ff": "fr",
    "hf": "hi", "hm": "hi",
    "if": "it", "im": "it",
    "jf": "ja", "jm": "ja",
    "pf": "pt-br", "pm": "pt-br",
    "zf": "cmn", "zm": "cmn",
}

_BOUNDARY_CHARS = frozenset('.!?,;:—…"()“”')
_NEWLINES = frozenset("\n\r")
_WORD_RE = re.compile(r"[^\s]+")
_WORD_STRIP = "'’-"


def voice_language(voice_id: str) -> str:
    """Language code implied by a voice id's two-letter prefix."""
    return _VOICE_PREFIX_LANGUAGE.get(voice_id[:2].lower(), DEFAULT_LANGUAGE)


class TextPart(NamedTuple):
    """A word run or a single boundary punctuation mark."""
    text: str
    is_punct: bool
    space_before: bool = False


@dataclass
class PhonemeSequence:
    """Token ids for one utterance, in text order."""
    ids: List[int]
    language: str
    ipa: str = ""
    timings: Dict[str, float] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.ids)


def _is_numeric_connector(text: str, idx: int) -> bool:
    if text[idx] not in ".,":
        return False
    prev = text[idx - 1] if idx > 0 else ""
    nxt = text[idx + 1] if idx + 1 < len(text) else ""
    return prev.isdigit() and prev.isascii() and nxt.isdigit() and nxt.isascii()


def split_text_parts(text: str) -> List[TextPart]:
    """
    Split text into word runs and boundary punctuation.

    Whitespace inside a run collapses to one space. ``space_before``
    records whether whitespace separated a part from the previous one.

    Example:
        >>> [p.text for p in split_text_parts("Version 2.0, done.")]
        ['Version 2.0', ',', 'done', '.']
    """
    parts: List[TextPart] = []
    current: List[str] = []
    current_space_before = False
    saw_space = False

    def flush() -> None:
        if current:
            parts.append(TextPart("".join(current), False, current_space_before))
            current.clear()

    for idx, ch in enumerate(text):
        if ch in _NEWLINES:
            if parts and parts[-1].is_punct and not current:
                saw_space = True
                continue
            flush()
            parts.append(TextPart(".", True, False))
            saw_space = True
            continue

        if ch in _BOUNDARY_CHARS and not _is_numeric_connector(text, idx):
            flush()
            parts.append(TextPart(ch, True, saw_space and bool(parts)))
            saw_space = False
            continue

        if ch.isspace():
            saw_space = True
            continue

        if not current:
            current_space_before = saw_space and bool(parts)
        elif saw_space:
            current.append(" ")
        current.append(ch)
        saw_space = False

    flush()
    return parts


class EspeakBackend:
    """
    espeak-ng subprocess wrapper.

    Runs ``espeak-ng --ipa --stdin -q -v <lang>`` with one word run per
    stdin line. espeak-ng normally answers with one IPA line per input
    line; when it does not, every run is phonemized with its own call.
    """

    def __init__(self, binary: str = "espeak-ng", timeout_s: float = 30.0, data_path: Optional[str] = None):
        self.binary = binary
        self.timeout_s = timeout_s
        self.data_path = data_path or None

    def available(self) -> bool:
        return shutil.which(self.binary) is not None

    def _env(self) -> Optional[Dict[str, str]]:
        if not self.data_path:
            return None
        env = dict(os.environ)
        env["ESPEAK_DATA_PATH"] = self.data_path
        return env

    def _run(self, payload: str, language: str) -> str:
        if not payload.endswith("\n"):
            # The last line is under-processed without a terminator.
            payload += "\n"
        try:
            proc = subprocess.run(
                [self.binary, "--ipa", "--stdin", "-q", "-v", language],
                input=payload.encode("utf-8"),
                capture_output=True,
                timeout=self.timeout_s,
                check=False,
                env=self._env(),
            )
        except FileNotFoundError as e:
            raise UnsupportedLanguageError(
                f"{self.binary} not found; cannot phonemize {language}",
                {"language": language, "binary": self.binary},
            ) from e
        except subprocess.TimeoutExpired as e:
            raise UnsupportedLanguageError(
                f"{self.binary} timed out after {self.timeout_s}s",
                {"language": language},
            ) from e

        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace").strip()
            raise UnsupportedLanguageError(
                f"{self.binary} rejected language {language!r}: {stderr or proc.returncode}",
                {"language": language, "returncode": proc.returncode},
            )
        return proc.stdout.decode("utf-8", errors="replace")

    def phonemize_runs(self, runs: Sequence[str], language: str) -> List[str]:
        """IPA for each run, same length and order as runs."""
        if not runs:
            return []
        output = self._run("\n".join(runs), language)
        lines = [line.strip() for line in output.splitlines() if line.strip()]
        if len(lines) == len(runs):
            return lines

        debug(_LOG, "espeak_line_mismatch", runs=len(runs), lines=len(lines))
        return [" ".join(x.strip() for x in self._run(run, language).splitlines() if x.strip()) for run in runs]


class Phonemizer:
    """
    Text -> PhonemeSequence for one vocabulary.

    Args:
        vocab: Character -> token id table.
        lexicon: Word pronunciations consulted before the rules.
        backend: "rules" or "espeak".
        espeak: Pre-built EspeakBackend (defaults to espeak-ng on PATH).
    """

    def __init__(
        self,
        vocab: Optional[Dict[str, int]] = None,
        lexicon: Optional[Lexicon] = None,
        backend: str = "rules",
        espeak: Optional[EspeakBackend] = None,
    ):
        if backend not in ("rules", "espeak"):
            raise ValueError(f"unknown phonemizer backend: {backend}")
        self.vocab = dict(vocab) if vocab is not None else dict(DEFAULT_VOCAB)
        self.lexicon = lexicon if lexicon is not None else Lexicon.builtin()
        self.backend = backend
        self.espeak = espeak if espeak is not None else EspeakBackend()
        self._space_id = self.vocab.get(" ")

    def supports(self, language: str) -> bool:
        lang = language.lower()
        if lang in RULE_LANGUAGES:
            return True
        return self.backend == "espeak" and self.espeak.available()

    def _use_espeak(self, language: str) -> bool:
        if self.backend != "espeak":
            if language not in RULE_LANGUAGES:
                raise UnsupportedLanguageError(
                    f"language {language!r} needs the espeak backend",
                    {"language": language, "backend": self.backend},
                )
            return False

        if self.espeak.available():
            return True
        if language in RULE_LANGUAGES:
            warn(_LOG, "espeak_missing_fallback", language=language, binary=self.espeak.binary)
            return False
        raise UnsupportedLanguageError(
            f"{self.espeak.binary} not found; cannot phonemize {language!r}",
            {"language": language, "binary": self.espeak.binary},
        )

    def _word_ipa(self, word: str, language: str) -> str:
        found = self.lexicon.lookup(word, language)
        if found is not None:
            return found

        core = word.strip(_WORD_STRIP)
        if core != word:
            found = self.lexicon.lookup(core, language)
            if found is not None:
                return found

        if language == "es":
            return spanish_to_ipa(core)

        variant = "gb" if language == "en-gb" else "us"
        if core.isdecimal():
            return " ".join(self._word_ipa(w, language) for w in digits_to_words(core).replace("-", " ").split())
        if "-" in core:
            return " ".join(filter(None, (self._word_ipa(p, language) for p in core.split("-") if p)))
        if core.lower().endswith(("'s", "’s")) and len(core) > 2:
            stem = self._word_ipa(core[:-2], language)
            return stem + ("ɪz" if stem.endswith(("s", "z", "ʃ", "ʒ", "ʧ", "ʤ")) else "z")
        return english_to_ipa(core, variant)

    def _rules_runs(self, runs: Sequence[str], language: str) -> List[str]:
        out = []
        for run in runs:
            words = [self._word_ipa(w, language) for w in _WORD_RE.findall(run)]
            out.append(" ".join(w for w in words if w))
        return out

    def to_ids(self, ipa: str) -> List[int]:
        """Map an IPA string to vocab ids, skipping '_' and unknown characters."""
        vocab = self.vocab
        return [vocab[ch] for ch in ipa if ch != "_" and ch in vocab]

    def phonemize(self, text: str, language: str = DEFAULT_LANGUAGE) -> PhonemeSequence:
        """
        Convert normalized text into token ids.

        Raises:
            UnsupportedLanguageError: If no backend covers the language.
        """
        lang = language.lower()
        with timeit("phonemize") as t:
            use_espeak = self._use_espeak(lang)

            parts = split_text_parts(text)
            runs = [p.text for p in parts if not p.is_punct]
            if use_espeak:
                run_ipa = self.espeak.phonemize_runs(runs, lang)
            else:
                run_ipa = self._rules_runs(runs, lang)

            ids: List[int] = []
            ipa_parts: List[str] = []
            run_index = 0
            for part in parts:
                if part.space_before and ids and self._space_id is not None:
                    ids.append(self._space_id)
                    ipa_parts.append(" ")
                if part.is_punct:
                    if part.text in self.vocab:
                        ids.append(self.vocab[part.text])
                        ipa_parts.append(part.text)
                else:
                    ipa = run_ipa[run_index]
                    run_index += 1
                    ids.extend(self.to_ids(ipa))
                    ipa_parts.append(ipa)

        seq = PhonemeSequence(
            ids=ids,
            language=lang,
            ipa="".join(ipa_parts),
            timings={"phonemize": t.seconds},
        )
        verbose(
            _LOG, "phonemized",
            language=lang, backend="espeak" if use_espeak else "rules",
            parts=len(parts), tokens=len(ids), seconds=round(t.seconds, 4),
        )
        debug(_LOG, "phoneme_ids", ipa=seq.ipa, ids=ids[:64])
        return seq
