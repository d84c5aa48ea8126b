from __future__ import annotations

import re

__all__ = [
    "correct_pinyin",
    "strip_tones",
    "syllable_keys",
    "first_key",
    "last_key",
]

_TONE_TABLE = str.maketrans(
    {
        **{ch: "a" for ch in "āáǎà"},
        **{ch: "o" for ch in "ōóǒò"},
        **{ch: "e" for ch in "ēéěèê"},
        **{ch: "i" for ch in "īíǐì"},
        **{ch: "u" for ch in "ūúǔù"},
        **{ch: "v" for ch in "ǖǘǚǜü"},
    }
)

# 一 before an e-family vowel is read as "ye" (e.g. "yiè" -> "yè").
_YI_ELISION_RE = re.compile(r"yi([ēéěèêe])")

# Known transcription errors in the chinese-xinhua idiom dataset.
_WORD_FIXES: dict[str, tuple[str, str]] = {
    "味同嚼蜡": ("cù", "là"),
}


def correct_pinyin(word: str | None, pinyin: str | None) -> str:
    """
    Return ``pinyin`` with the dataset-specific corrections applied.

    Corrections, in order:
      - per-word replacements for known transcription errors (味同嚼蜡);
      - 俩 at the end of a word is read "liǎ", never "liǎng";
      - "yi" directly followed by an e-family vowel is contracted to "y".
    Only the first occurrence is replaced for the per-word fixes; the
    contraction applies everywhere.
    """
    word = word or ""
    text = pinyin or ""
    fix = _WORD_FIXES.get(word)
    if fix is not None:
        text = text.replace(fix[0], fix[1], 1)
    if word.endswith("俩"):
        text = text.replace("liǎng", "liǎ", 1)
    return _YI_ELISION_RE.sub(r"y\1", text)


def strip_tones(syllable: str) -> str:
    return syllable.translate(_TONE_TABLE)


def syllable_keys(pinyin: str | None) -> tuple[str, str]:
    """Return the toneless (first, last) syllable keys of a transcription."""
    syllables = (pinyin or "").split()
    if not syllables:
        return "", ""
    return strip_tones(syllables[0]), strip_tones(syllables[-1])


def first_key(pinyin: str | None) -> str:
    return syllable_keys(pinyin)[0]


def last_key(pinyin: str | None) -> str:
    return syllable_keys(pinyin)[1]
