# rapwords/build_db.py
"""
Offline word-store builder.

    python -m rapwords.build_db init [--db word.db] [--no-seed]
    python -m rapwords.build_db import words.tsv [--db word.db]
    python -m rapwords.build_db analyze 寿司が食べたい

TSV columns (header row required):
    text  normalized  reading  meaning  pos  syllables  rhyme_key  complexity  popularity  tags
Blank columns are derived with the analyzer; tags are comma separated.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from .analyzer import Analyzer, MecabTokenizer
from .db import WORD_DB_PATH, Base, make_engine
from .exceptions import AnalysisError, ImportFailed
from .kana import count_mora, rhyme_key
from .models import Example, Tag, Word

logger = logging.getLogger("rapwords.build_db")

TSV_COLUMNS = (
    "text", "normalized", "reading", "meaning", "pos",
    "syllables", "rhyme_key", "complexity", "popularity", "tags",
)

SAMPLE_TAGS = ["attack", "praise", "metaphor", "flow", "slang"]


@dataclass
class WordRow:
    text: str
    normalized: str = ""
    reading: str = ""
    meaning: str = ""
    pos: str = ""
    syllables: Optional[int] = None
    rhyme_key: str = ""
    complexity: int = 0
    popularity: int = 0
    tags: List[str] = field(default_factory=list)
    examples: List[Tuple[str, Optional[str]]] = field(default_factory=list)  # (sentence, author)
    line: Optional[int] = None


@dataclass
class ImportReport:
    inserted: int = 0
    skipped: int = 0


def _sample_rows() -> List[WordRow]:
    samples = [
        ("Flow", "flow", "フロー", "音の流れ、韻の運び", "noun"),
        ("Mic", "mic", "マイク", "マイクロフォン", "noun"),
        ("Freestyle", "freestyle", "フリースタイル", "即興ラップ", "noun"),
        ("Burn", "burn", "バーン", "攻撃的なライン（ディス）", "verb"),
    ]
    return [
        WordRow(
            text=text, normalized=norm, reading=reading, meaning=meaning, pos=pos,
            complexity=1, tags=["attack"],
            examples=[(f"{text} を使ったバースの例: ここで決めるぜ {text}", "seed")],
        )
        for text, norm, reading, meaning, pos in samples
    ]


# ───────── TSV parsing ─────────
def _col(cols: Sequence[str], i: int) -> str:
    return cols[i].strip() if i < len(cols) else ""


def _int(value: str, column: str, line: int) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning("line %d: %s=%r is not an integer, ignored", line, column, value)
        return None


def parse_tsv(content: str) -> List[WordRow]:
    """Rows after the header; blank lines dropped."""
    lines = [(n, l) for n, l in enumerate(content.splitlines(), start=1) if l.strip()]
    if not lines:
        return []

    rows: List[WordRow] = []
    for n, raw in lines[1:]:
        cols = raw.split("\t")
        tags_str = _col(cols, 9)
        rows.append(WordRow(
            text=_col(cols, 0),
            normalized=_col(cols, 1),
            reading=_col(cols, 2),
            meaning=_col(cols, 3),
            pos=_col(cols, 4),
            syllables=_int(_col(cols, 5), "syllables", n),
            rhyme_key=_col(cols, 6),
            complexity=_int(_col(cols, 7), "complexity", n) or 0,
            popularity=_int(_col(cols, 8), "popularity", n) or 0,
            tags=[t.strip() for t in tags_str.split(",") if t.strip()],
            line=n,
        ))
    return rows


# ───────── Derivation ─────────
def derive_fields(row: WordRow, analyzer: Analyzer) -> WordRow:
    """Fill blank normalized/reading/syllables/rhyme_key. Explicit values are kept."""
    if not row.normalized:
        row.normalized = analyzer.normalize(row.text)
    if not row.reading:
        row.reading = analyzer.reading(row.text) or ""
    if row.syllables is None and row.reading:
        row.syllables = count_mora(row.reading) or None
    if not row.rhyme_key and row.reading:
        row.rhyme_key = rhyme_key(row.reading) or ""
    return row


def prepare_rows(rows: Iterable[WordRow], analyzer: Analyzer) -> List[WordRow]:
    ready: List[WordRow] = []
    for r in rows:
        if not r.text:
            logger.warning("skip: empty text (line %s)", r.line)
            continue
        ready.append(derive_fields(r, analyzer))
    return ready


# ───────── DB helpers ─────────
async def create_schema(engine: AsyncEngine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def _tag(session: AsyncSession, name: str, cache: Dict[str, Tag]) -> Tag:
    tag = cache.get(name)
    if tag is None:
        tag = await session.scalar(select(Tag).where(Tag.name == name))
        if tag is None:
            tag = Tag(name=name)
            session.add(tag)
        cache[name] = tag
    return tag


async def import_rows(engine: AsyncEngine, rows: Iterable[WordRow], analyzer: Analyzer) -> ImportReport:
    """
    Insert rows in a single transaction.
    Rows whose normalized form already exists are skipped; any error rolls
    back the whole batch and raises ImportFailed.
    """
    ready = prepare_rows(rows, analyzer)
    report = ImportReport()
    tags: Dict[str, Tag] = {}

    async with AsyncSession(engine, expire_on_commit=False) as session:
        try:
            async with session.begin():
                for r in ready:
                    normalized = r.normalized or r.text.lower()
                    # autoflush makes rows added earlier in this batch visible here
                    existing = await session.scalar(
                        select(Word.id).where(Word.normalized == normalized).limit(1)
                    )
                    if existing is not None:
                        logger.info("skip duplicate: %s", normalized)
                        report.skipped += 1
                        continue

                    # tags first: lookups autoflush, and the new Word must not be half-attached then
                    linked = [await _tag(session, name, tags) for name in dict.fromkeys(r.tags)]
                    word = Word(
                        text=r.text,
                        normalized=normalized,
                        reading=r.reading or None,
                        meaning=r.meaning or None,
                        pos=r.pos or None,
                        syllables=r.syllables,
                        rhyme_key=r.rhyme_key or None,
                        complexity=r.complexity or 0,
                        popularity=r.popularity or 0,
                        updated_at=func.now(),
                        tags=linked,
                        examples=[Example(sentence=s, author=a) for s, a in r.examples],
                    )
                    session.add(word)
                    report.inserted += 1
        except SQLAlchemyError as e:
            logger.error("import rolled back: %s", e)
            raise ImportFailed(str(e)) from e

    logger.info("import done: %d inserted, %d skipped", report.inserted, report.skipped)
    return report


async def seed(engine: AsyncEngine, analyzer: Analyzer) -> ImportReport:
    async with AsyncSession(engine) as session:
        async with session.begin():
            cache: Dict[str, Tag] = {}
            for name in SAMPLE_TAGS:
                await _tag(session, name, cache)
    return await import_rows(engine, _sample_rows(), analyzer)


async def init_db(path: Path, analyzer: Analyzer, with_seed: bool = True):
    if path.exists():
        logger.warning("%s exists, replacing it", path)
        path.unlink()
    engine = make_engine(path, immediate=True)
    try:
        await create_schema(engine)
        if with_seed:
            await seed(engine, analyzer)
    finally:
        await engine.dispose()
    logger.info("created %s", path)


async def import_tsv(db_path: Path, content: str, analyzer: Analyzer) -> ImportReport:
    rows = parse_tsv(content)
    engine = make_engine(db_path, immediate=True)
    try:
        return await import_rows(engine, rows, analyzer)
    finally:
        await engine.dispose()


# ───────── CLI ─────────
def _analyze(analyzer: Analyzer, text: str) -> int:
    try:
        info = analyzer.describe(text)
    except AnalysisError as e:
        logger.error("MeCab parse error: %s", e)
        return 1
    print("text:", text)
    print("tokens:", info["tokens"])
    print("normalized:", info["normalized"])
    print("reading:", info["reading"])
    print("mora (approx):", info["mora"])
    print("rhyme key (approx):", info["rhyme_key"])
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="rapwords-db", description="Build and fill the rap-battle word store")
    sub = p.add_subparsers(dest="command", required=True)

    p_init = sub.add_parser("init", help="create a fresh word store (replaces an existing file)")
    p_init.add_argument("--db", type=Path, default=Path(WORD_DB_PATH))
    p_init.add_argument("--no-seed", action="store_true", help="skip the sample words")

    p_imp = sub.add_parser("import", help="import a TSV word list")
    p_imp.add_argument("tsv", type=Path)
    p_imp.add_argument("--db", type=Path, default=Path(WORD_DB_PATH))

    p_an = sub.add_parser("analyze", help="print reading, mora and rhyme key of a text")
    p_an.add_argument("text", nargs="*")
    return p


def main(argv: Optional[Sequence[str]] = None, analyzer: Optional[Analyzer] = None) -> int:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="[%(name)s] %(levelname)s %(message)s",
    )
    args = build_parser().parse_args(argv)
    analyzer = analyzer or Analyzer(MecabTokenizer())

    if args.command == "analyze":
        return _analyze(analyzer, " ".join(args.text) or "寿司が食べたい")

    if args.command == "init":
        asyncio.run(init_db(args.db, analyzer, with_seed=not args.no_seed))
        return 0

    tsv_path = args.tsv.resolve()
    if not tsv_path.exists():
        logger.error("TSV file not found: %s", tsv_path)
        return 1
    if not args.db.exists():
        logger.error("word store not found: %s (run `init` first)", args.db)
        return 1
    try:
        content = tsv_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        logger.error("TSV is not valid UTF-8: %s (%s)", tsv_path, e)
        return 1
    if not content.strip():
        logger.error("TSV is empty: %s", tsv_path)
        return 1

    try:
        asyncio.run(import_tsv(args.db, content, analyzer))
    except ImportFailed:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
