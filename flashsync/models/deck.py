from __future__ import annotations

from pydantic import BaseModel, field_validator

from flashsync.models.flashcard import UtcDatetime


def normalize_tags(tags: list[str]) -> list[str]:
    """Strip, drop blanks and duplicates, sort."""
    return sorted({t.strip() for t in tags if t and t.strip()})


def _require_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("deck name is required")
    return value


class Deck(BaseModel):
    id: str
    name: str
    tags: list[str] = []
    created_at: UtcDatetime
    updated_at: UtcDatetime


class DeckCreate(BaseModel):
    name: str
    tags: list[str] = []

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        return _require_name(v)

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, v: list[str]) -> list[str]:
        return normalize_tags(v)


class DeckUpdate(BaseModel):
    name: str | None = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str | None) -> str | None:
        return None if v is None else _require_name(v)


class TagCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("tag name is required")
        return v


class DeckTagsUpdate(BaseModel):
    tags: list[str]

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, v: list[str]) -> list[str]:
        return normalize_tags(v)


class DeckWithStats(Deck):
    card_count: int
    mastery: int          # percent of cards with interval >= 7 days
    due_card_count: int


class DeckProgress(BaseModel):
    id: str
    name: str
    icon: str
    progress: int
    new_count: int        # repetitions == 0
    learning_count: int   # repetitions > 0, interval < 7
    mastered_count: int   # interval >= 7
    total_count: int
