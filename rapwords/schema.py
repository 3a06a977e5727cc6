from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    ok: bool = True
    data: Optional[T] = None
    error: Optional[str] = None


class WordSummary(BaseModel):
    id: int
    text: str
    normalized: str
    reading: Optional[str] = None
    pos: Optional[str] = None
    syllables: Optional[int] = None
    rhyme_key: Optional[str] = None
    popularity: int = 0
    complexity: int = 0
    created_at: Optional[datetime] = None
    tags: List[str] = []


class ExampleOut(BaseModel):
    id: int
    sentence: str
    author: Optional[str] = None
    created_at: Optional[datetime] = None


class WordDetail(WordSummary):
    meaning: Optional[str] = None
    updated_at: Optional[datetime] = None
    examples: List[ExampleOut] = []


class SuggestIn(BaseModel):
    text: Optional[str] = None
    limit: Optional[int] = None


class Suggestion(BaseModel):
    rhyme_key: Optional[str] = None
    matches: List[WordSummary] = []


class Verdict(BaseModel):
    score: int
    result: str
