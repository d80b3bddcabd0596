from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, field_validator


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Naive timestamps from a remote are taken to be UTC.
UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class Difficulty(str, Enum):
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


class SchedulingState(BaseModel):
    ease_factor: float = Field(ge=1.3)
    interval: int = Field(ge=0)       # days until next review
    repetitions: int = Field(ge=0)    # consecutive successful recalls
    next_review_date: UtcDatetime


class Flashcard(BaseModel):
    id: str
    deck_id: str
    front: str
    back: str
    ease_factor: float = Field(default=2.5, ge=1.3)
    interval: int = Field(default=0, ge=0)
    repetitions: int = Field(default=0, ge=0)
    next_review_date: UtcDatetime
    created_at: UtcDatetime
    updated_at: UtcDatetime


def _require_text(value: str | None, field: str) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError(f"{field} is required")
    return value


class FlashcardCreate(BaseModel):
    front: str
    back: str

    @field_validator("front", "back")
    @classmethod
    def _not_blank(cls, v: str, info) -> str:
        return _require_text(v, info.field_name)


class FlashcardUpdate(BaseModel):
    front: str | None = None
    back: str | None = None

    @field_validator("front", "back")
    @classmethod
    def _not_blank(cls, v: str | None, info) -> str | None:
        return _require_text(v, info.field_name)


class FlashcardList(BaseModel):
    items: list[Flashcard]
    total: int


class AnswerRequest(BaseModel):
    difficulty: Difficulty
