"""
Practice session controller.

Reads a deck's cards from the cache, grades them one at a time and writes the
scheduler output back. Every step here is synchronous: a graded answer updates
the card, queues its delta, updates progress and queues the progress snapshot
before control returns, with no await in between.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from flashsync.db.cache import CacheStore
from flashsync.models.flashcard import Difficulty, Flashcard
from flashsync.models.practice import PracticeSessionView, SessionState
from flashsync.models.progress import (
    PendingFlashcardUpdate,
    PendingProgressUpdate,
    UserProgress,
)
from flashsync.services.scheduler import compute_next_state

logger = logging.getLogger(__name__)


class SessionStateError(RuntimeError):
    """Raised when a session is driven in a state that does not allow it."""


def _utc(now: datetime | None) -> datetime:
    return (now or datetime.now(timezone.utc)).astimezone(timezone.utc)


def get_cards_for_practice(store: CacheStore, deck_id: str) -> list[Flashcard]:
    """All cards of a deck, oldest-due first."""
    return sorted(
        store.get_flashcards_for_deck(deck_id), key=lambda c: c.next_review_date
    )


def get_cards_for_review(
    store: CacheStore, deck_id: str, now: datetime | None = None
) -> list[Flashcard]:
    """Only the cards that are due, oldest-due first."""
    now = _utc(now)
    return [c for c in get_cards_for_practice(store, deck_id) if c.next_review_date <= now]


def update_streak(progress: UserProgress, now: datetime | None = None) -> UserProgress:
    """
    Same UTC day as the last practice: unchanged.
    Exactly one day later: streak + 1. Anything else: streak restarts at 1.
    """
    now = _utc(now)
    last = progress.last_practice_date
    if last is not None:
        gap = (now.date() - last.astimezone(timezone.utc).date()).days
        if gap <= 0:
            return progress
        streak = progress.current_streak + 1 if gap == 1 else 1
    else:
        streak = 1
    return progress.model_copy(
        update={"current_streak": streak, "last_practice_date": now}
    )


def record_review(
    store: CacheStore,
    card_id: str,
    difficulty: Difficulty,
    now: datetime | None = None,
) -> Flashcard | None:
    """Grade one cached card and queue its new scheduling fields."""
    card = store.get_flashcard(card_id)
    if card is None:
        return None

    state = compute_next_state(card, difficulty, now=_utc(now))
    updated = store.update_flashcard(card_id, state.model_dump())
    store.queue_flashcard_update(PendingFlashcardUpdate(id=card_id, **state.model_dump()))
    return updated


def record_practice(store: CacheStore, now: datetime | None = None) -> UserProgress:
    """Count one reviewed card, roll the streak and queue the snapshot."""
    now = _utc(now)
    progress = update_streak(store.get_progress(), now)
    progress = progress.model_copy(
        update={"total_cards_reviewed": progress.total_cards_reviewed + 1}
    )
    store.set_progress(progress)
    store.queue_progress_update(
        PendingProgressUpdate(
            total_cards_reviewed=progress.total_cards_reviewed,
            current_streak=progress.current_streak,
            last_practice_date=progress.last_practice_date or now,
        )
    )
    return progress


class PracticeSession:
    def __init__(
        self,
        store: CacheStore,
        deck_id: str,
        cards: list[Flashcard],
        on_complete: Callable[[], object] | None = None,
    ) -> None:
        self.id = str(uuid.uuid4())
        self.deck_id = deck_id
        self.cards = cards
        self.cursor = 0
        self.state = SessionState.NOT_STARTED
        self._store = store
        self._on_complete = on_complete

    @property
    def total(self) -> int:
        return len(self.cards)

    @property
    def current_card(self) -> Flashcard | None:
        if self.state is not SessionState.IN_PROGRESS:
            return None
        return self.cards[self.cursor]

    def start(self) -> None:
        if self.state is not SessionState.NOT_STARTED:
            raise SessionStateError(f"session {self.id} already {self.state.value}")
        self.cursor = 0
        if not self.cards:
            self._complete()
        else:
            self.state = SessionState.IN_PROGRESS

    def answer(
        self, difficulty: Difficulty, now: datetime | None = None
    ) -> Flashcard | None:
        """Grade the current card and advance. Returns the rescheduled card."""
        if self.state is not SessionState.IN_PROGRESS:
            raise SessionStateError(f"session {self.id} is {self.state.value}")

        now = _utc(now)
        card = self.cards[self.cursor]
        updated = record_review(self._store, card.id, difficulty, now)
        if updated is None:
            logger.warning("Card %s left the cache mid-session, skipping", card.id)
        else:
            record_practice(self._store, now)
            self.cards[self.cursor] = updated

        self.cursor += 1
        if self.cursor >= len(self.cards):
            self._complete()
        return updated

    def _complete(self) -> None:
        self.state = SessionState.COMPLETED
        logger.info(
            "Practice session %s completed (%d cards, deck %s)",
            self.id, len(self.cards), self.deck_id,
        )
        if self._on_complete is not None:
            self._on_complete()

    def view(self) -> PracticeSessionView:
        return PracticeSessionView(
            id=self.id,
            deck_id=self.deck_id,
            state=self.state,
            total=self.total,
            completed=self.cursor,
            remaining=self.total - self.cursor,
            current_card=self.current_card,
        )


def start_session(
    store: CacheStore,
    deck_id: str,
    on_complete: Callable[[], object] | None = None,
) -> PracticeSession | None:
    """
    Build and start a session over every card of a cached deck.
    Returns None when the deck is not in the cache; a deck without cards
    yields a session that is already completed.
    """
    if store.get_deck(deck_id) is None:
        return None
    session = PracticeSession(
        store, deck_id, get_cards_for_practice(store, deck_id), on_complete
    )
    session.start()
    return session


class SessionRegistry:
    """
    Sessions by id, for callers that drive sessions across requests.

    A completed session stays readable until the next one is added.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, PracticeSession] = {}

    def add(self, session: PracticeSession) -> None:
        self._sessions = {
            sid: s for sid, s in self._sessions.items()
            if s.state is not SessionState.COMPLETED
        }
        self._sessions[session.id] = session

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> PracticeSession | None:
        return self._sessions.get(session_id)

    def discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def clear(self) -> None:
        self._sessions.clear()
