from __future__ import annotations

from pydantic import BaseModel

from flashsync.models.flashcard import SchedulingState, UtcDatetime


class UserProgress(BaseModel):
    total_cards_reviewed: int = 0
    total_cards_mastered: int = 0
    current_streak: int = 0
    last_practice_date: UtcDatetime | None = None


class PendingFlashcardUpdate(SchedulingState):
    id: str

    def scheduling_state(self) -> SchedulingState:
        return SchedulingState(**self.model_dump(exclude={"id"}))


class PendingProgressUpdate(BaseModel):
    total_cards_reviewed: int
    current_streak: int
    last_practice_date: UtcDatetime


class PendingUpdates(BaseModel):
    flashcards: list[PendingFlashcardUpdate] = []
    progress: PendingProgressUpdate | None = None


class ProgressStats(BaseModel):
    progress: UserProgress
    current_streak: int
    overall_mastery: int
    total_cards_mastered: int
    weakest_deck: str | None = None
    weakest_deck_mastery: int | None = None
