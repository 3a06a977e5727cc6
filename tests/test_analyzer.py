"""Tests for :mod:`rapwords.analyzer`."""

from __future__ import annotations

import pytest

from rapwords.analyzer import Analyzer, MecabTokenizer, Token
from rapwords.exceptions import AnalysisError


def test_normalize_joins_lower_cased_lemmas(analyzer):
    assert analyzer.normalize("寿司 食べた") == "寿司 食べる"
    assert analyzer.normalize("Flow") == "flow"


def test_normalize_falls_back_to_surface(analyzer):
    assert analyzer.normalize("UNKNOWN Word") == "unknown word"


def test_reading_concatenates_without_separator(analyzer):
    assert analyzer.reading("寿司 食べた") == "スシタベタ"


def test_reading_uses_surface_when_reading_missing(analyzer):
    assert analyzer.reading("Flow マイク") == "Flowマイク"


def test_failure_degrades_instead_of_raising(broken_analyzer, caplog):
    assert broken_analyzer.normalize("Mic Check") == "mic check"
    assert broken_analyzer.reading("Mic Check") is None
    assert "mecab is not installed" in caplog.text


def test_tokenize_propagates_failure(broken_analyzer):
    with pytest.raises(AnalysisError):
        broken_analyzer.tokenize("マイク")


def test_describe(analyzer):
    info = analyzer.describe("マイク")
    assert info["tokens"] == [Token(surface="マイク", pos="名詞", base="マイク", reading="マイク")]
    assert info["reading"] == "マイク"
    assert info["mora"] == 3
    assert info["rhyme_key"] == "イク"


class _NodeFeature:
    def __init__(self, orth_base, kana, pos1="名詞", lemma=None):
        self.orthBase = orth_base
        self.lemma = lemma
        self.kana = kana
        self.pos1 = pos1


class _Node:
    def __init__(self, surface, feature):
        self.surface = surface
        self.feature = feature


def test_mecab_tokenizer_maps_fugashi_nodes():
    tok = MecabTokenizer()
    tok._tagger = lambda text: [
        _Node("食べ", _NodeFeature("食べる", "タベ", "動詞")),
        _Node("Flow", _NodeFeature(None, "*", "名詞")),
    ]
    assert tok.tokenize("食べFlow") == [
        Token(surface="食べ", pos="動詞", base="食べる", reading="タベ"),
        Token(surface="Flow", pos="名詞", base=None, reading=None),
    ]


def test_mecab_tokenizer_base_is_spelled_form_not_lemma():
    tok = MecabTokenizer()
    tok._tagger = lambda text: [
        _Node("マイク", _NodeFeature("マイク", "マイク", lemma="マイク-microphon")),
        _Node("たべた", _NodeFeature("たべる", "タベタ", "動詞", lemma="食べる")),
    ]
    assert Analyzer(tok).normalize("マイクたべた") == "マイク たべる"


def test_mecab_tokenizer_wraps_parse_errors():
    def explode(text):
        raise RuntimeError("bad input")

    tok = MecabTokenizer()
    tok._tagger = explode
    with pytest.raises(AnalysisError):
        tok.tokenize("x")


def test_mecab_tokenizer_real_dictionary():
    tok = MecabTokenizer()
    try:
        tok.tokenize("マイク")
    except AnalysisError:
        pytest.skip("MeCab dictionary not available")
    analyzer = Analyzer(tok)
    assert analyzer.reading("マイク") == "マイク"
    assert analyzer.normalize("マイク") == "マイク"
    assert analyzer.normalize("フロー") == "フロー"
