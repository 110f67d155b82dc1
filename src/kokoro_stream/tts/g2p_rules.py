"""
Rule-Based Letter-to-Sound Conversion.

Fallback pronunciation for words missing from the lexicon. The rules are
deliberately small: they aim for intelligible output, not dictionary
accuracy, and they never fail. Characters no rule covers are skipped.

    english_to_ipa("grape")          -> "ɡɹˈeɪp"
    english_to_ipa("grape", "gb")    -> "ɡɹˈeɪp"
    spanish_to_ipa("ciudad")         -> "θjuðˈað"

English rules are (pattern, phonemes) pairs tried in order at each
position of the word padded as ``#word#``. Group 1 of the pattern is
the consumed text; lookarounds give left and right context.
"""
from __future__ import annotations

import re
import unicodedata
from typing import Dict, List, Pattern, Tuple

from kokoro_stream.tts.lexicon import us_to_gb

RULE_LANGUAGES = frozenset({"en-us", "en-gb", "es"})

_MAGIC_E = r"(?=[^aeiou#]e[ds]?#)"

_RULE_SOURCE: Dict[str, List[Tuple[str, str]]] = {
    "a": [
        (r"(augh)", "ɔː"), (r"(aw)", "ɔː"), (r"(au)", "ɔː"),
        (r"(air)", "ɛɹ"), (r"(are)(?=#)", "ɛɹ"), (r"(ar)", "ɑːɹ"),
        (r"(ai)", "eɪ"), (r"(ay)", "eɪ"),
        (r"(a)" + _MAGIC_E, "eɪ"),
        (r"(a)(?=l[lk])", "ɔː"),
        (r"(a)(?=#)", "ə"),
        (r"(a)", "æ"),
    ],
    "b": [(r"(b)(?=b)", ""), (r"(?<=m)(b)(?=#)", ""), (r"(b)", "b")],
    "c": [
        (r"(ch)", "ʧ"), (r"(ck)", "k"),
        (r"(c)(?=[eiy])", "s"), (r"(c)", "k"),
    ],
    "d": [(r"(dge)", "ʤ"), (r"(d)(?=d)", ""), (r"(d)", "d")],
    "e": [
        (r"(?<=[td])(ed)(?=#)", "ɪd"),
        (r"(?<=[pkfsxh])(ed)(?=#)", "t"),
        (r"(?<=[a-z][a-z])(ed)(?=#)", "d"),
        (r"(?<=[sxzh])(es)(?=#)", "ɪz"),
        (r"(?<=[pktf])(es)(?=#)", "s"),
        (r"(?<=[a-z][^aeiou])(es)(?=#)", "z"),
        (r"(?<=#[^aeiou#])(e)(?=#)", "iː"),
        (r"(?<=[^aeiou#])(e)(?=#)", ""),
        (r"(eigh)", "eɪ"), (r"(eau)", "oʊ"),
        (r"(ee)", "iː"), (r"(ea)", "iː"),
        (r"(ei)", "eɪ"), (r"(ey)(?=#)", "i"), (r"(ey)", "eɪ"),
        (r"(ew)", "juː"), (r"(er)", "ɚ"),
        (r"(e)" + _MAGIC_E, "iː"),
        (r"(e)", "ɛ"),
    ],
    "f": [(r"(f)(?=f)", ""), (r"(f)", "f")],
    "g": [
        (r"(?<=#)(gh)", "ɡ"), (r"(gh)", ""),
        (r"(g)(?=g)", ""), (r"(gn)(?=#)", "n"),
        (r"(g)(?=[eiy])", "ʤ"), (r"(g)", "ɡ"),
    ],
    "h": [(r"(?<=#)(h)", "h"), (r"(h)(?=[aeiouy])", "h"), (r"(h)", "")],
    "i": [
        (r"(igh)", "aɪ"), (r"(ir)", "ɜː"),
        (r"(ie)(?=#)", "aɪ"), (r"(ie)", "iː"),
        (r"(i)" + _MAGIC_E, "aɪ"),
        (r"(i)(?=[nl]d#)", "aɪ"),
        (r"(i)", "ɪ"),
    ],
    "j": [(r"(j)", "ʤ")],
    "k": [(r"(?<=#)(k)(?=n)", ""), (r"(k)", "k")],
    "l": [(r"(l)(?=l)", ""), (r"(?<=[^aeiou#])(le)(?=#)", "əl"), (r"(l)", "l")],
    "m": [(r"(m)(?=m)", ""), (r"(m)", "m")],
    "n": [(r"(ng)", "ŋ"), (r"(n)(?=k)", "ŋ"), (r"(n)(?=n)", ""), (r"(n)", "n")],
    "o": [
        (r"(ough)(?=t)", "ɔː"), (r"(ough)", "oʊ"),
        (r"(oor)", "ɔːɹ"), (r"(oo)(?=k)", "ʊ"), (r"(oo)", "uː"),
        (r"(ou)", "aʊ"), (r"(ow)(?=#)", "oʊ"), (r"(ow)", "aʊ"),
        (r"(oi)", "ɔɪ"), (r"(oy)", "ɔɪ"), (r"(oa)", "oʊ"),
        (r"(oe)(?=#)", "oʊ"), (r"(or)", "ɔːɹ"),
        (r"(o)" + _MAGIC_E, "oʊ"),
        (r"(o)(?=#)", "oʊ"), (r"(o)(?=ld)", "oʊ"),
        (r"(o)", "ɑ"),
    ],
    "p": [(r"(ph)", "f"), (r"(p)(?=p)", ""), (r"(p)", "p")],
    "q": [(r"(qu)", "kw"), (r"(q)", "k")],
    "r": [(r"(r)(?=r)", ""), (r"(r)", "ɹ")],
    "s": [
        (r"(sh)", "ʃ"),
        (r"(?<=[aeiou])(sion)", "ʒən"), (r"(sion)", "ʃən"),
        (r"(s)(?=s)", ""),
        (r"(?<=[aeiou])(s)(?=[aeiou])", "z"),
        (r"(?<=[bdgvmnlrwye])(s)(?=#)", "z"),
        (r"(s)", "s"),
    ],
    "t": [
        (r"(tch)", "ʧ"), (r"(tion)", "ʃən"), (r"(ture)", "ʧɚ"),
        (r"(th)", "θ"), (r"(t)(?=t)", ""), (r"(t)", "t"),
    ],
    "u": [
        (r"(ur)", "ɜː"), (r"(ue)(?=#)", "uː"),
        (r"(u)" + _MAGIC_E, "uː"),
        (r"(?<=[pbf])(u)(?=ll|sh)", "ʊ"),
        (r"(u)", "ʌ"),
    ],
    "v": [(r"(v)", "v")],
    "w": [(r"(?<=#)(wr)", "ɹ"), (r"(wh)", "w"), (r"(w)", "w")],
    "x": [(r"(?<=#)(x)", "z"), (r"(x)", "ks")],
    "y": [
        (r"(?<=#)(y)(?=[aeiou])", "j"),
        (r"(y)(?=#)", "i"),
        (r"(y)" + _MAGIC_E, "aɪ"),
        (r"(y)", "ɪ"),
    ],
    "z": [(r"(z)(?=z)", ""), (r"(z)", "z")],
}

_RULES: Dict[str, List[Tuple[Pattern[str], str]]] = {
    letter: [(re.compile(src), ph) for src, ph in rules]
    for letter, rules in _RULE_SOURCE.items()
}

_VOWEL_START = set("aeiouæɑɒɔəɛɜɪʊʌɚ")


def _strip_accents(word: str) -> str:
    decomposed = unicodedata.normalize("NFD", word)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def english_to_ipa(word: str, variant: str = "us") -> str:
    """
    Letter-to-sound conversion for one English word.

    Args:
        word: A single word; non-letters are ignored.
        variant: "us" or "gb".
    """
    letters = "".join(ch for ch in _strip_accents(word.lower()) if "a" <= ch <= "z")
    if not letters:
        return ""

    padded = f"#{letters}#"
    phones: List[str] = []
    pos = 1
    end = len(padded) - 1
    while pos < end:
        for pattern, ph in _RULES.get(padded[pos], ()):
            m = pattern.match(padded, pos)
            if m and m.start(1) == pos:
                if ph:
                    phones.append(ph)
                pos = m.end(1)
                break
        else:
            pos += 1

    nuclei = [i for i, ph in enumerate(phones) if ph[0] in _VOWEL_START]
    if nuclei and len(letters) > 3:
        first = nuclei[0]
        phones[first] = "ˈ" + phones[first]

    ipa = "".join(phones)
    return us_to_gb(ipa) if variant == "gb" else ipa


_ES_VOWELS = "aeiou"
_ES_ACCENTED = {"á": "a", "é": "e", "í": "i", "ó": "o", "ú": "u"}
_ES_DIGITS = ["cero", "uno", "dos", "tres", "cuatro", "cinco", "seis", "siete", "ocho", "nueve"]
_ES_LENITE = {"b": "β", "d": "ð", "ɡ": "ɣ"}


def spanish_to_ipa(word: str) -> str:
    """
    Letter-to-sound conversion for one Spanish (Castilian) word.

    Stress follows the orthographic rules: an accent mark wins, otherwise
    words ending in a vowel, n or s stress the penultimate syllable and
    all others the last.
    """
    w = word.lower()
    if w.isdigit():
        return " ".join(spanish_to_ipa(_ES_DIGITS[int(d)]) for d in w)

    # (phoneme, is_vowel, accented)
    out: List[List] = []
    i = 0
    n = len(w)

    def nxt(k: int = 1) -> str:
        return w[i + k] if i + k < n else ""

    while i < n:
        ch = w[i]
        step = 1
        if ch in _ES_ACCENTED:
            out.append([_ES_ACCENTED[ch], True, True])
        elif ch in _ES_VOWELS:
            out.append([ch, True, False])
        elif ch == "ü":
            out.append(["u", True, False])
        elif ch == "c" and nxt() == "h":
            out.append(["ʧ", False, False])
            step = 2
        elif ch == "c":
            out.append(["θ" if nxt() in ("e", "i", "é", "í") else "k", False, False])
        elif ch == "l" and nxt() == "l":
            out.append(["ʝ", False, False])
            step = 2
        elif ch == "r" and nxt() == "r":
            out.append(["r", False, False])
            step = 2
        elif ch == "r":
            trilled = i == 0 or w[i - 1] in "nls"
            out.append(["r" if trilled else "ɾ", False, False])
        elif ch == "q" and nxt() == "u":
            out.append(["k", False, False])
            step = 2
        elif ch == "g" and nxt() == "u" and nxt(2) in ("e", "i", "é", "í"):
            out.append(["ɡ", False, False])
            step = 2
        elif ch == "g" and nxt() == "ü":
            out.append(["ɡ", False, False])
            out.append(["w", False, False])
            step = 2
        elif ch == "g":
            out.append(["x" if nxt() in ("e", "i", "é", "í") else "ɡ", False, False])
        elif ch == "j":
            out.append(["x", False, False])
        elif ch == "z":
            out.append(["θ", False, False])
        elif ch == "ñ":
            out.append(["ɲ", False, False])
        elif ch == "h":
            pass
        elif ch == "v":
            out.append(["b", False, False])
        elif ch == "x":
            out.append(["k", False, False])
            out.append(["s", False, False])
        elif ch == "y":
            if i == n - 1 or not (nxt() in _ES_VOWELS or nxt() in _ES_ACCENTED):
                out.append(["i", True, False])
            else:
                out.append(["ʝ", False, False])
        elif "a" <= ch <= "z":
            out.append([ch, False, False])
        i += step

    # Unstressed i/u next to another vowel become glides.
    for k, (ph, is_vowel, accented) in enumerate(out):
        if not is_vowel or accented or ph not in ("i", "u"):
            continue
        next_v = k + 1 < len(out) and out[k + 1][1]
        prev_v = k > 0 and out[k - 1][1]
        if next_v or prev_v:
            out[k][0] = "j" if ph == "i" else "w"
            out[k][1] = False

    # Intervocalic and post-vocalic b, d, g soften.
    for k in range(1, len(out)):
        ph = out[k][0]
        if ph in _ES_LENITE and out[k - 1][0] not in ("m", "n", "ɲ") and not (ph == "d" and out[k - 1][0] == "l"):
            out[k][0] = _ES_LENITE[ph]

    nuclei = [k for k, item in enumerate(out) if item[1]]
    accented_at = [k for k in nuclei if out[k][2]]
    if accented_at:
        stressed = accented_at[0]
    elif len(nuclei) >= 2:
        last = _strip_accents(w)[-1:]
        stressed = nuclei[-2] if last in ("a", "e", "i", "o", "u", "n", "s") else nuclei[-1]
    else:
        stressed = None

    phones = [item[0] for item in out]
    if stressed is not None:
        phones[stressed] = "ˈ" + phones[stressed]
    return "".join(phones)
