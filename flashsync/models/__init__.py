from flashsync.models.deck import (
    Deck,
    DeckCreate,
    DeckProgress,
    DeckTagsUpdate,
    DeckUpdate,
    DeckWithStats,
    TagCreate,
)
from flashsync.models.flashcard import (
    AnswerRequest,
    Difficulty,
    Flashcard,
    FlashcardCreate,
    FlashcardList,
    FlashcardUpdate,
    SchedulingState,
)
from flashsync.models.practice import PracticeSessionView, SessionState, SyncStatus
from flashsync.models.progress import (
    PendingFlashcardUpdate,
    PendingProgressUpdate,
    PendingUpdates,
    ProgressStats,
    UserProgress,
)

__all__ = [
    "AnswerRequest",
    "Deck",
    "DeckCreate",
    "DeckProgress",
    "DeckTagsUpdate",
    "DeckUpdate",
    "DeckWithStats",
    "Difficulty",
    "Flashcard",
    "FlashcardCreate",
    "FlashcardList",
    "FlashcardUpdate",
    "PendingFlashcardUpdate",
    "PendingProgressUpdate",
    "PendingUpdates",
    "PracticeSessionView",
    "ProgressStats",
    "SchedulingState",
    "SessionState",
    "SyncStatus",
    "TagCreate",
    "UserProgress",
]
