"""
Progress statistics derived from the cache.

A card counts as mastered once its interval reaches MASTERY_THRESHOLD_DAYS.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from flashsync.db.cache import CacheStore
from flashsync.models.deck import DeckProgress, DeckWithStats
from flashsync.models.flashcard import Flashcard
from flashsync.models.progress import ProgressStats, UserProgress

MASTERY_THRESHOLD_DAYS = 7


def _percent(part: int, whole: int) -> int:
    return int(part * 100 / whole + 0.5) if whole else 0


def _mastered(cards: list[Flashcard]) -> int:
    return sum(1 for c in cards if c.interval >= MASTERY_THRESHOLD_DAYS)


def overall_mastery(store: CacheStore) -> int:
    cards = store.get_flashcards()
    return _percent(_mastered(cards), len(cards))


def total_cards_mastered(store: CacheStore) -> int:
    return _mastered(store.get_flashcards())


def decks_with_stats(store: CacheStore, now: datetime | None = None) -> list[DeckWithStats]:
    now = now or datetime.now(timezone.utc)
    cards = store.get_flashcards()
    result = []
    for deck in store.get_decks():
        deck_cards = [c for c in cards if c.deck_id == deck.id]
        result.append(
            DeckWithStats(
                **deck.model_dump(),
                card_count=len(deck_cards),
                mastery=_percent(_mastered(deck_cards), len(deck_cards)),
                due_card_count=sum(1 for c in deck_cards if c.next_review_date <= now),
            )
        )
    return result


def _icon(progress: int) -> str:
    if progress >= 80:
        return "done_all"
    if progress >= 50:
        return "translate"
    return "pending"


def deck_progress(store: CacheStore) -> list[DeckProgress]:
    cards = store.get_flashcards()
    result = []
    for deck in store.get_decks():
        deck_cards = [c for c in cards if c.deck_id == deck.id]
        mastered = _mastered(deck_cards)
        progress = _percent(mastered, len(deck_cards))
        result.append(
            DeckProgress(
                id=deck.id,
                name=deck.name,
                icon=_icon(progress),
                progress=progress,
                new_count=sum(1 for c in deck_cards if c.repetitions == 0),
                learning_count=sum(
                    1
                    for c in deck_cards
                    if c.repetitions > 0 and c.interval < MASTERY_THRESHOLD_DAYS
                ),
                mastered_count=mastered,
                total_count=len(deck_cards),
            )
        )
    return result


def weakest_deck(store: CacheStore) -> DeckProgress | None:
    """The deck with the lowest mastery; the first one wins ties."""
    decks = deck_progress(store)
    if not decks:
        return None
    return min(decks, key=lambda d: d.progress)


def current_streak(progress: UserProgress, now: datetime | None = None) -> int:
    """The streak as shown to the user: 0 once a day has been skipped."""
    if progress.last_practice_date is None:
        return 0
    today = (now or datetime.now(timezone.utc)).astimezone(timezone.utc).date()
    last = progress.last_practice_date.astimezone(timezone.utc).date()
    if last in (today, today - timedelta(days=1)):
        return progress.current_streak
    return 0


def progress_stats(store: CacheStore, now: datetime | None = None) -> ProgressStats:
    progress = store.get_progress()
    weakest = weakest_deck(store)
    return ProgressStats(
        progress=progress,
        current_streak=current_streak(progress, now),
        overall_mastery=overall_mastery(store),
        total_cards_mastered=total_cards_mastered(store),
        weakest_deck=weakest.name if weakest else None,
        weakest_deck_mastery=weakest.progress if weakest else None,
    )
