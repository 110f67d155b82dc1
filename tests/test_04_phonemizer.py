"""
Tests for phonemization: vocab, lexicon, letter-to-sound rules and the Phonemizer.
"""
import json

import pytest

from kokoro_stream.core.config import ConfigValidationError
from kokoro_stream.services.errors import ModelConfigError, UnsupportedLanguageError
from kokoro_stream.tts.g2p_rules import english_to_ipa, spanish_to_ipa
from kokoro_stream.tts.lexicon import Lexicon, us_to_gb
from kokoro_stream.tts.phonemizer import (
    EspeakBackend,
    Phonemizer,
    split_text_parts,
    voice_language,
)
from kokoro_stream.tts.vocab import DEFAULT_VOCAB, PAD_ID, boundary_ids, load_vocab


class TestVocab:
    """Kokoro token vocabulary."""

    def test_pad_not_in_table(self):
        assert PAD_ID == 0
        assert PAD_ID not in DEFAULT_VOCAB.values()

    def test_boundary_ids(self):
        ids = boundary_ids(DEFAULT_VOCAB)
        assert ids == frozenset({1, 2, 3, 4, 5, 6})

    def test_load_vocab_first_char(self, tmp_path):
        p = tmp_path / "config.json"
        p.write_text(json.dumps({"vocab": {"a": 43, "ab": 44}}), encoding="utf-8")
        assert load_vocab(p) == {"a": 44}

    def test_load_vocab_missing_field(self, tmp_path):
        p = tmp_path / "config.json"
        p.write_text(json.dumps({"n_token": 178}), encoding="utf-8")
        with pytest.raises(ModelConfigError):
            load_vocab(p)

    def test_load_vocab_bad_json(self, tmp_path):
        p = tmp_path / "config.json"
        p.write_text("{not json", encoding="utf-8")
        with pytest.raises(ModelConfigError):
            load_vocab(p)

    def test_load_vocab_non_integer(self, tmp_path):
        p = tmp_path / "config.json"
        p.write_text(json.dumps({"vocab": {"a": "43"}}), encoding="utf-8")
        with pytest.raises(ModelConfigError):
            load_vocab(p)


class TestLexicon:
    """Built-in and user lexicons."""

    def test_builtin_lookup_case_insensitive(self):
        lex = Lexicon.builtin()
        assert lex.lookup("the", "en-us") == "ðə"
        assert lex.lookup("HELLO", "en-us") == "həlˈoʊ"

    def test_unknown_word(self):
        assert Lexicon.builtin().lookup("zyzzogeton", "en-us") is None

    def test_gb_falls_back_to_converted_us(self):
        assert Lexicon.builtin().lookup("hello", "en-gb") == "həlˈəʊ"

    def test_gb_override_wins(self):
        assert Lexicon.builtin().lookup("water", "en-gb") == "wˈɔːtə"

    def test_us_to_gb(self):
        assert us_to_gb("həlˈoʊ") == "həlˈəʊ"

    def test_load_flat_yaml(self, tmp_path):
        p = tmp_path / "lex.yaml"
        p.write_text("kokoro: kəkˈoːɹoʊ\nnginx: ˈɛnʤɪnˌɛks\n", encoding="utf-8")
        lex = Lexicon.builtin()
        assert lex.load_file(p) == 2
        assert lex.lookup("Kokoro", "en-us") == "kəkˈoːɹoʊ"

    def test_load_keyed_json(self, tmp_path):
        p = tmp_path / "lex.json"
        p.write_text(json.dumps({"es": {"hola": "ˈola"}, "en-us": {"hola": "hˈoʊlə"}}), encoding="utf-8")
        lex = Lexicon()
        assert lex.load_file(p) == 2
        assert lex.lookup("hola", "es") == "ˈola"
        assert sorted(lex.languages) == ["en-us", "es"]

    def test_user_entry_overrides_builtin(self, tmp_path):
        p = tmp_path / "lex.yaml"
        p.write_text("the: ðiː\n", encoding="utf-8")
        lex = Lexicon.builtin()
        lex.load_file(p)
        assert lex.lookup("the", "en-us") == "ðiː"

    def test_bad_lexicon_rejected(self, tmp_path):
        p = tmp_path / "lex.yaml"
        p.write_text("- not\n- a mapping\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError):
            Lexicon().load_file(p)

    def test_missing_lexicon_rejected(self, tmp_path):
        with pytest.raises(ConfigValidationError):
            Lexicon().load_file(tmp_path / "absent.yaml")


class TestRules:
    """Letter-to-sound fallbacks never fail."""

    def test_english_stress_on_longer_words(self):
        assert "ˈ" in english_to_ipa("grape")
        assert "ˈ" not in english_to_ipa("cat")

    def test_english_non_letters(self):
        assert english_to_ipa("") == ""
        assert english_to_ipa("123") == ""

    def test_english_nonsense_word(self):
        assert isinstance(english_to_ipa("qxzvbrt"), str)

    def test_spanish_consonants(self):
        assert "ʧ" in spanish_to_ipa("chico")
        assert "θ" in spanish_to_ipa("cielo")
        assert "ɲ" in spanish_to_ipa("niño")
        assert "x" in spanish_to_ipa("jamón")
        assert "h" not in spanish_to_ipa("hola")

    def test_spanish_digits(self):
        assert len(spanish_to_ipa("12").split(" ")) == 2


class TestSplitTextParts:
    """Word runs and boundary punctuation."""

    def test_numbers_stay_in_runs(self):
        assert [p.text for p in split_text_parts("Version 2.0, done.")] == ["Version 2.0", ",", "done", "."]

    def test_newline_becomes_period(self):
        parts = split_text_parts("first line\nsecond line")
        assert [p.text for p in parts] == ["first line", ".", "second line"]
        assert parts[1].is_punct

    def test_newline_after_punctuation_is_not_doubled(self):
        assert [p.text for p in split_text_parts("Done.\nNext")] == ["Done", ".", "Next"]

    def test_space_before_recorded(self):
        parts = split_text_parts("Hi, you")
        assert [(p.text, p.space_before) for p in parts] == [("Hi", False), (",", False), ("you", True)]


class TestVoiceLanguage:

    @pytest.mark.parametrize(
        "voice, lang",
        [("af_heart", "en-us"), ("bm_george", "en-gb"), ("ef_dora", "es"), ("ff_siwis", "fr"),
         ("jf_alpha", "ja"), ("zm_yunxi", "cmn"), ("xx_unknown", "en-us")],
    )
    def test_prefixes(self, voice, lang):
        assert voice_language(voice) == lang


class _ScriptedEspeak(EspeakBackend):
    """EspeakBackend whose subprocess is replaced by a function."""

    def __init__(self, respond):
        super().__init__(binary="espeak-ng")
        self.respond = respond
        self.payloads = []

    def available(self):
        return True

    def _run(self, payload, language):
        self.payloads.append(payload)
        return self.respond(payload, language)


class TestPhonemizer:
    """Phonemizer end to end."""

    def test_hello_world_ids(self):
        seq = Phonemizer(DEFAULT_VOCAB, Lexicon.builtin()).phonemize("Hello, world.", "en-us")
        assert seq.ids == [50, 83, 54, 156, 57, 135, 3, 16, 65, 156, 87, 158, 54, 46, 4]
        assert seq.language == "en-us"
        assert len(seq) == 15

    def test_order_preserved(self):
        ph = Phonemizer()
        a = ph.phonemize("hello", "en-us").ids
        b = ph.phonemize("world", "en-us").ids
        both = ph.phonemize("hello world", "en-us").ids
        assert both == a + [DEFAULT_VOCAB[" "]] + b

    def test_deterministic(self):
        ph = Phonemizer()
        text = "The quick brown fox jumps over the lazy dog."
        assert ph.phonemize(text, "en-us").ids == ph.phonemize(text, "en-us").ids

    def test_unknown_characters_dropped(self):
        vocab = {"h": 50, "ə": 83}
        seq = Phonemizer(vocab, Lexicon.builtin()).phonemize("hello", "en-us")
        assert seq.ids == [50, 83]

    def test_spanish_rules(self):
        seq = Phonemizer().phonemize("Hola, amigo.", "es")
        assert seq.ids[-1] == DEFAULT_VOCAB["."]
        assert DEFAULT_VOCAB[","] in seq.ids

    def test_long_digit_run(self):
        seq = Phonemizer().phonemize("7" * 5000, "en-us")
        assert len(seq) > 5000

    def test_british_differs_from_american(self):
        ph = Phonemizer()
        assert ph.phonemize("hello", "en-gb").ids != ph.phonemize("hello", "en-us").ids

    def test_rules_backend_rejects_french(self):
        with pytest.raises(UnsupportedLanguageError):
            Phonemizer().phonemize("bonjour", "fr")

    def test_supports(self):
        ph = Phonemizer()
        assert ph.supports("en-us")
        assert ph.supports("ES")
        assert not ph.supports("fr")

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            Phonemizer(backend="festival")

    def test_espeak_missing_falls_back_for_english(self):
        ph = Phonemizer(backend="espeak", espeak=EspeakBackend(binary="definitely-not-espeak-xyz"))
        assert ph.phonemize("hello", "en-us").ids == Phonemizer().phonemize("hello", "en-us").ids

    def test_espeak_missing_rejects_other_languages(self):
        ph = Phonemizer(backend="espeak", espeak=EspeakBackend(binary="definitely-not-espeak-xyz"))
        with pytest.raises(UnsupportedLanguageError):
            ph.phonemize("bonjour", "fr")

    def test_espeak_batched_runs(self):
        espeak = _ScriptedEspeak(lambda payload, lang: "\n".join("bɔ̃ʒuʁ" for _ in payload.splitlines()) + "\n")
        ph = Phonemizer(backend="espeak", espeak=espeak)
        seq = ph.phonemize("bonjour, bonjour", "fr")
        assert len(espeak.payloads) == 1
        assert espeak.payloads[0] == "bonjour\nbonjour"
        assert seq.ids.count(DEFAULT_VOCAB["b"]) == 2
        assert DEFAULT_VOCAB[","] in seq.ids

    def test_espeak_line_mismatch_falls_back_per_run(self):
        espeak = _ScriptedEspeak(lambda payload, lang: "bɔ̃ʒuʁ\n")
        ph = Phonemizer(backend="espeak", espeak=espeak)
        seq = ph.phonemize("bonjour, salut", "fr")
        # One batched call, then one call per run
        assert len(espeak.payloads) == 3
        assert seq.ids.count(DEFAULT_VOCAB["b"]) == 2

    def test_espeak_env_carries_data_path(self):
        assert EspeakBackend(data_path=None)._env() is None
        env = EspeakBackend(data_path="/opt/espeak-ng-data")._env()
        assert env["ESPEAK_DATA_PATH"] == "/opt/espeak-ng-data"
