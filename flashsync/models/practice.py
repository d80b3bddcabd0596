from enum import Enum

from pydantic import BaseModel

from flashsync.models.flashcard import Flashcard


class SessionState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class PracticeSessionView(BaseModel):
    id: str
    deck_id: str
    state: SessionState
    total: int
    completed: int
    remaining: int
    current_card: Flashcard | None = None


class SyncStatus(BaseModel):
    user_id: str | None
    ready: bool
    last_sync: str | None
    pending_flashcards: int
    pending_progress: bool
