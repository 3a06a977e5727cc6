# rapwords/suggestions.py
from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from .analyzer import Analyzer
from .exceptions import InvalidInput
from .kana import rhyme_key
from .queries import SearchFilters, clamp_limit, search
from .schema import Suggestion

SUGGEST_DEFAULT_LIMIT = 20
SUGGEST_MAX_LIMIT = 100


async def suggest(
    db: AsyncSession,
    analyzer: Analyzer,
    text: Optional[str],
    limit: Optional[int] = None,
) -> Suggestion:
    """Words sharing the rhyme key of `text`, most popular first."""
    if not text or not text.strip():
        raise InvalidInput("text_required")

    key = rhyme_key(analyzer.reading(text))
    if not key:
        # nothing phonetic to match on; legitimate, just empty
        return Suggestion(rhyme_key=None, matches=[])

    n = clamp_limit(limit, default=SUGGEST_DEFAULT_LIMIT, maximum=SUGGEST_MAX_LIMIT)
    matches = await search(db, SearchFilters(rhyme_key=key, limit=n), max_limit=SUGGEST_MAX_LIMIT)
    return Suggestion(rhyme_key=key, matches=matches)
