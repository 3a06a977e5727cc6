# rapwords/main.py
from __future__ import annotations

import logging
import os
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from .analyzer import Analyzer, MecabTokenizer
from .db import SessionLocal, ping
from .exceptions import InvalidInput, NotFound
from .queries import SearchFilters, get_by_id, search
from .schema import Envelope, SuggestIn, Suggestion, Verdict, WordDetail, WordSummary
from .suggestions import suggest

# ───────── Config ─────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ───────── App ─────────
app = FastAPI(title="Rap Battle Words API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

_analyzer = Analyzer(MecabTokenizer())


# ───────── Dependencies ─────────
async def get_db() -> AsyncSession:
    async with SessionLocal() as session:
        yield session


def get_analyzer() -> Analyzer:
    return _analyzer


# ───────── Error envelope ─────────
def _fail(status_code: int, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "data": None, "error": code})


@app.exception_handler(InvalidInput)
async def on_invalid_input(request: Request, exc: InvalidInput):
    return _fail(400, exc.code)


@app.exception_handler(RequestValidationError)
async def on_validation_error(request: Request, exc: RequestValidationError):
    return _fail(400, "invalid_input")


@app.exception_handler(NotFound)
async def on_not_found(request: Request, exc: NotFound):
    return _fail(404, exc.code)


@app.exception_handler(Exception)
async def on_unhandled(request: Request, exc: Exception):
    logger.exception("%s %s failed", request.method, request.url.path)
    return _fail(500, "internal_error")


# ───────── Lifecycle ─────────
@app.on_event("startup")
async def on_startup():
    await ping()


@app.get("/healthz")
async def healthz():
    return {"ok": True}


# ───────── /api/words ─────────
@app.get("/api/words", response_model=Envelope[List[WordSummary]])
async def list_words(
    q: Optional[str] = Query(None, description="Substring of the normalized form"),
    tag: Optional[str] = Query(None),
    rhyme: Optional[str] = Query(None, description="Exact rhyme key"),
    limit: Optional[int] = Query(None, description="Clamped to 1..200, default 50"),
    offset: Optional[int] = Query(None, description="Clamped to >= 0"),
    db: AsyncSession = Depends(get_db),
):
    words = await search(db, SearchFilters(
        text_contains=q,
        tag=tag,
        rhyme_key=rhyme,
        limit=limit,
        offset=offset,
    ))
    return Envelope(data=words)


@app.post("/api/words/suggest", response_model=Envelope[Suggestion])
async def suggest_words(
    body: Optional[SuggestIn] = None,
    db: AsyncSession = Depends(get_db),
    analyzer: Analyzer = Depends(get_analyzer),
):
    body = body or SuggestIn()
    result = await suggest(db, analyzer, body.text, body.limit)
    return Envelope(data=result)


@app.get("/api/words/{word_id}", response_model=Envelope[WordDetail])
async def word_detail(word_id: str, db: AsyncSession = Depends(get_db)):
    try:
        wid = int(word_id)
    except ValueError:
        raise InvalidInput("invalid_id")
    return Envelope(data=await get_by_id(db, wid))


# ───────── /api/battle (placeholder) ─────────
@app.get("/api/battle")
async def battle_home():
    return {"ok": True, "data": "Welcome to the Rap Battle API!"}


@app.post("/api/battle/evaluate", response_model=Envelope[Verdict])
async def battle_evaluate():
    # TODO: score verses against the word store once a rating model exists
    return Envelope(data=Verdict(score=90, result="Player Wins"))
