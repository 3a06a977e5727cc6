# rapwords/queries.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .exceptions import NotFound
from .models import Example, Tag, Word
from .schema import ExampleOut, WordDetail, WordSummary

# ───────── Limits ─────────
DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def clamp_limit(limit: Optional[int], default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> int:
    if limit is None:
        return default
    return max(1, min(int(limit), maximum))


def clamp_offset(offset: Optional[int]) -> int:
    if offset is None:
        return 0
    return max(0, int(offset))


@dataclass
class SearchFilters:
    text_contains: Optional[str] = None
    tag: Optional[str] = None
    rhyme_key: Optional[str] = None
    limit: Optional[int] = None
    offset: Optional[int] = None


def to_summary(w: Word) -> WordSummary:
    return WordSummary(
        id=w.id,
        text=w.text,
        normalized=w.normalized,
        reading=w.reading,
        pos=w.pos,
        syllables=w.syllables,
        rhyme_key=w.rhyme_key,
        popularity=w.popularity or 0,
        complexity=w.complexity or 0,
        created_at=w.created_at,
        tags=sorted(t.name for t in w.tags),
    )


async def search(db: AsyncSession, filters: SearchFilters, max_limit: int = MAX_LIMIT) -> List[WordSummary]:
    """Filtered word list; filters AND together, most popular first."""
    stmt = select(Word).options(selectinload(Word.tags))

    q = (filters.text_contains or "").strip().lower()
    if q:
        stmt = stmt.where(func.lower(Word.normalized).contains(q, autoescape=True))
    if filters.rhyme_key:
        stmt = stmt.where(Word.rhyme_key == filters.rhyme_key)
    if filters.tag:
        stmt = stmt.where(Word.tags.any(Tag.name == filters.tag))

    stmt = (
        stmt.order_by(Word.popularity.desc(), Word.id.asc())
        .limit(clamp_limit(filters.limit, maximum=max_limit))
        .offset(clamp_offset(filters.offset))
    )
    res = await db.execute(stmt)
    return [to_summary(w) for w in res.scalars().all()]


async def get_by_id(db: AsyncSession, word_id: int) -> WordDetail:
    res = await db.execute(
        select(Word).where(Word.id == word_id).options(selectinload(Word.tags))
    )
    w = res.scalar_one_or_none()
    if w is None:
        raise NotFound()

    ex = await db.execute(
        select(Example)
        .where(Example.word_id == word_id)
        .order_by(Example.created_at.desc(), Example.id.desc())
    )
    examples = [
        ExampleOut(id=e.id, sentence=e.sentence, author=e.author, created_at=e.created_at)
        for e in ex.scalars().all()
    ]

    return WordDetail(
        **to_summary(w).model_dump(),
        meaning=w.meaning,
        updated_at=w.updated_at,
        examples=examples,
    )
