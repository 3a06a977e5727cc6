"""Shared fixtures: a fake tokenizer and a small on-disk word store."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rapwords.analyzer import Analyzer, Token
from rapwords.build_db import WordRow, create_schema, import_rows
from rapwords.db import make_engine
from rapwords.exceptions import AnalysisError
from rapwords.main import app, get_analyzer, get_db
from rapwords.models import Example, Word


class FakeTokenizer:
    """Splits on whitespace; readings and lemmas come from a fixed table."""

    LEXICON: Dict[str, Tuple[Optional[str], Optional[str]]] = {
        # surface: (base, reading)
        "マイク": ("マイク", "マイク"),
        "ライク": ("ライク", "ライク"),
        "寿司": ("寿司", "スシ"),
        "食べた": ("食べる", "タベタ"),
        "フロー": ("フロー", "フロー"),
        "Flow": ("flow", None),
    }

    def __init__(self):
        self.calls: List[str] = []

    def tokenize(self, text: str) -> List[Token]:
        self.calls.append(text)
        tokens = []
        for part in text.split():
            base, reading = self.LEXICON.get(part, (None, None))
            tokens.append(Token(surface=part, pos="名詞", base=base, reading=reading))
        return tokens


class BrokenTokenizer:
    def tokenize(self, text: str) -> List[Token]:
        raise AnalysisError("mecab is not installed")


SAMPLE_ROWS = [
    dict(text="Flow", normalized="flow", reading="フロー", popularity=50, tags=["flow", "praise"]),
    dict(text="Mic", normalized="mic", reading="マイク", popularity=90, tags=["attack"]),
    dict(text="Like", normalized="like", reading="ライク", popularity=30, tags=["slang"]),
    dict(text="Bike", normalized="bike", reading="バイク", popularity=10),
    dict(text="Burn", normalized="burn", reading="バーン", popularity=70, tags=["attack"]),
    dict(text="100%_sure", normalized="100%_sure", popularity=5),
]


def run(coro):
    return asyncio.run(coro)


async def _build(path, analyzer):
    engine = make_engine(path, immediate=True)
    try:
        await create_schema(engine)
        await import_rows(engine, [WordRow(**r) for r in SAMPLE_ROWS], analyzer)
        async with AsyncSession(engine) as session:
            async with session.begin():
                mic_id = await session.scalar(select(Word.id).where(Word.normalized == "mic"))
                session.add_all([
                    Example(word_id=mic_id, sentence="older line", author="a",
                            created_at=datetime(2024, 1, 1, 12, 0, 0)),
                    Example(word_id=mic_id, sentence="newest line", author="b",
                            created_at=datetime(2024, 3, 1, 12, 0, 0)),
                    Example(word_id=mic_id, sentence="middle line", author=None,
                            created_at=datetime(2024, 2, 1, 12, 0, 0)),
                ])
    finally:
        await engine.dispose()


@pytest.fixture
def fake_tokenizer():
    return FakeTokenizer()


@pytest.fixture
def analyzer(fake_tokenizer):
    return Analyzer(fake_tokenizer)


@pytest.fixture
def broken_analyzer():
    return Analyzer(BrokenTokenizer())


@pytest.fixture
def db_path(tmp_path, analyzer):
    path = tmp_path / "word.db"
    run(_build(path, analyzer))
    return path


@pytest.fixture
def engine(db_path):
    eng = make_engine(db_path, read_only=True)
    yield eng
    run(eng.dispose())


@pytest.fixture
def in_session(engine):
    """Run `fn(session, *args)` against the read-only store and return its result."""

    def _call(fn, *args, **kwargs):
        async def _go():
            async with AsyncSession(engine) as session:
                return await fn(session, *args, **kwargs)
        return run(_go())

    return _call


@pytest.fixture
def client(engine, analyzer):
    async def _db():
        async with AsyncSession(engine) as session:
            yield session

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_analyzer] = lambda: analyzer
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
