# rapwords/kana.py
from __future__ import annotations

import re
from typing import Optional

# Small kana ride on the previous mora, so they are never counted on their own.
# ッ (geminate), ン (moraic nasal) and ー (long vowel) are full morae.
_SMALL_KANA = re.compile(r"[ァィゥェォャュョ]")
# katakana letters + long-vowel mark; drops ・, punctuation, latin, kanji
_NOT_KATAKANA = re.compile(r"[^ァ-ヺー]")

RHYME_KEY_LEN = 2


def strip_small_kana(s: str) -> str:
    return _SMALL_KANA.sub("", s or "")


def count_mora(reading: Optional[str]) -> int:
    """Approximate mora count of a katakana reading."""
    if not reading:
        return 0
    return len(strip_small_kana(reading))


def rhyme_key(reading: Optional[str]) -> Optional[str]:
    """
    Last two kana of the reading, after dropping non-katakana and small kana.

    Deliberately coarse: no vowel classes, no mora weighting. Readings with no
    katakana at all give "" which callers treat as "no key".
    """
    if not reading:
        return None
    cleaned = strip_small_kana(_NOT_KATAKANA.sub("", reading))
    if len(cleaned) <= RHYME_KEY_LEN:
        return cleaned
    return cleaned[-RHYME_KEY_LEN:]
