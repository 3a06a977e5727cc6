# rapwords/analyzer.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from fugashi import Tagger

from .exceptions import AnalysisError
from .kana import count_mora, rhyme_key

logger = logging.getLogger(__name__)

_MISSING = ("", "*")


@dataclass(frozen=True)
class Token:
    surface: str
    pos: Optional[str] = None
    base: Optional[str] = None      # dictionary form, as spelled
    reading: Optional[str] = None   # katakana


class Tokenizer(Protocol):
    def tokenize(self, text: str) -> List[Token]: ...


def _feature(feature: Any, name: str) -> Optional[str]:
    v = getattr(feature, name, None)
    if not isinstance(v, str) or v in _MISSING:
        return None
    return v


class MecabTokenizer:
    """MeCab via fugashi (unidic-lite dictionary). The Tagger is built on first use."""

    def __init__(self, args: str = ""):
        self._args = args
        self._tagger: Optional[Tagger] = None
        self._lock = threading.Lock()

    def _get_tagger(self) -> Tagger:
        with self._lock:
            if self._tagger is None:
                try:
                    self._tagger = Tagger(self._args)
                except Exception as e:
                    raise AnalysisError(f"could not start MeCab: {e}") from e
            return self._tagger

    def tokenize(self, text: str) -> List[Token]:
        tagger = self._get_tagger()
        try:
            nodes = list(tagger(text))
        except Exception as e:
            raise AnalysisError(f"MeCab parse failed: {e}") from e

        tokens: List[Token] = []
        for node in nodes:
            f = node.feature
            tokens.append(Token(
                surface=node.surface,
                pos=_feature(f, "pos1"),
                # orthBase, not lemma: lemma adds loanword origins (マイク-microphon)
                base=_feature(f, "orthBase"),
                reading=_feature(f, "kana"),
            ))
        return tokens


class Analyzer:
    """
    normalize()/reading() never raise on analyzer failure:
    - normalize falls back to the lower-cased input
    - reading falls back to None (derived fields become null downstream)
    """

    def __init__(self, tokenizer: Tokenizer):
        self.tokenizer = tokenizer

    def tokenize(self, text: str) -> List[Token]:
        return self.tokenizer.tokenize(text)

    def normalize(self, text: str) -> str:
        try:
            tokens = self.tokenize(text)
        except AnalysisError as e:
            logger.warning("normalize fell back to raw text for %r: %s", text, e)
            return text.lower()
        return " ".join((t.base or t.surface).lower() for t in tokens)

    def reading(self, text: str) -> Optional[str]:
        try:
            tokens = self.tokenize(text)
        except AnalysisError as e:
            logger.warning("no reading for %r: %s", text, e)
            return None
        return "".join(t.reading or t.surface for t in tokens)

    def describe(self, text: str) -> Dict[str, Any]:
        tokens = self.tokenize(text)
        reading = "".join(t.reading or t.surface for t in tokens)
        return {
            "tokens": tokens,
            "normalized": " ".join((t.base or t.surface).lower() for t in tokens),
            "reading": reading,
            "mora": count_mora(reading),
            "rhyme_key": rhyme_key(reading),
        }
