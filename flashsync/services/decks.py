"""
Deck and flashcard editing against the cache, confirmed by the remote.

Each edit is one ``OptimisticTransaction``. Lookups that miss the cache return
None so the caller can report "not found"; invalid input never gets this far
(the input models reject blank names and sides).
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Generic, TypeVar

from flashsync.db.cache import CacheStore
from flashsync.models.deck import Deck, DeckCreate, DeckUpdate
from flashsync.models.flashcard import Flashcard, FlashcardCreate, FlashcardUpdate
from flashsync.remote.base import Owner, RemoteStore
from flashsync.services.transactions import OptimisticTransaction, TransactionOutcome

T = TypeVar("T")


@dataclass
class EditResult(Generic[T]):
    value: T
    outcome: TransactionOutcome


def _now(now: datetime | None = None) -> datetime:
    return now or datetime.now(timezone.utc)


def new_flashcard(deck_id: str, body: FlashcardCreate, now: datetime | None = None) -> Flashcard:
    """A fresh card: default ease, no history, due immediately."""
    now = _now(now)
    return Flashcard(
        id=str(uuid.uuid4()),
        deck_id=deck_id,
        front=body.front,
        back=body.back,
        next_review_date=now,
        created_at=now,
        updated_at=now,
    )


# --- Decks ---


async def create_deck(
    store: CacheStore,
    remote: RemoteStore,
    owner: Owner | None,
    body: DeckCreate,
    now: datetime | None = None,
) -> EditResult[Deck]:
    now = _now(now)
    deck = Deck(
        id=str(uuid.uuid4()),
        name=body.name,
        tags=body.tags,
        created_at=now,
        updated_at=now,
    )
    outcome = await OptimisticTransaction(
        f"create deck {deck.id}",
        apply_local=lambda: store.add_deck(deck),
        attempt_remote=lambda o: remote.create_deck(deck, o),
        rollback_local=lambda: store.delete_deck(deck.id),
    ).run(owner)
    return EditResult(deck, outcome)


async def rename_deck(
    store: CacheStore,
    remote: RemoteStore,
    owner: Owner | None,
    deck_id: str,
    body: DeckUpdate,
    now: datetime | None = None,
) -> EditResult[Deck] | None:
    previous = store.get_deck(deck_id)
    if previous is None:
        return None
    if body.name is None:
        return EditResult(previous, TransactionOutcome.CONFIRMED)

    name = body.name
    outcome = await OptimisticTransaction(
        f"rename deck {deck_id}",
        apply_local=lambda: store.update_deck(
            deck_id, {"name": name, "updated_at": _now(now)}
        ),
        attempt_remote=lambda o: remote.update_deck(deck_id, name, o),
        rollback_local=lambda: store.update_deck(deck_id, previous.model_dump()),
    ).run(owner)
    return EditResult(store.get_deck(deck_id) or previous, outcome)


async def delete_deck(
    store: CacheStore,
    remote: RemoteStore,
    owner: Owner | None,
    deck_id: str,
) -> EditResult[Deck] | None:
    """Delete a deck and its cards; a rollback restores both."""
    deck = store.get_deck(deck_id)
    if deck is None:
        return None
    cards = store.get_flashcards_for_deck(deck_id)

    def _restore() -> None:
        store.add_deck(deck)
        store.add_flashcards(cards)

    outcome = await OptimisticTransaction(
        f"delete deck {deck_id}",
        apply_local=lambda: store.delete_deck(deck_id),
        attempt_remote=lambda o: remote.delete_deck(deck_id, o),
        rollback_local=_restore,
    ).run(owner)
    return EditResult(deck, outcome)


# --- Flashcards ---


async def add_flashcards(
    store: CacheStore,
    remote: RemoteStore,
    owner: Owner | None,
    deck_id: str,
    bodies: list[FlashcardCreate],
    now: datetime | None = None,
) -> EditResult[list[Flashcard]] | None:
    if store.get_deck(deck_id) is None:
        return None
    cards = [new_flashcard(deck_id, b, now) for b in bodies]

    def _remove() -> None:
        ids = {c.id for c in cards}
        store.set_flashcards([c for c in store.get_flashcards() if c.id not in ids])

    outcome = await OptimisticTransaction(
        f"add {len(cards)} cards to deck {deck_id}",
        apply_local=lambda: store.add_flashcards(cards),
        attempt_remote=lambda o: remote.create_flashcards(deck_id, cards, o),
        rollback_local=_remove,
    ).run(owner)
    return EditResult(cards, outcome)


async def edit_flashcard(
    store: CacheStore,
    remote: RemoteStore,
    owner: Owner | None,
    card_id: str,
    body: FlashcardUpdate,
    now: datetime | None = None,
) -> EditResult[Flashcard] | None:
    previous = store.get_flashcard(card_id)
    if previous is None:
        return None

    front = body.front if body.front is not None else previous.front
    back = body.back if body.back is not None else previous.back
    outcome = await OptimisticTransaction(
        f"edit card {card_id}",
        apply_local=lambda: store.update_flashcard(
            card_id, {"front": front, "back": back, "updated_at": _now(now)}
        ),
        attempt_remote=lambda o: remote.update_flashcard_content(card_id, front, back, o),
        rollback_local=lambda: store.update_flashcard(
            card_id,
            {
                "front": previous.front,
                "back": previous.back,
                "updated_at": previous.updated_at,
            },
        ),
    ).run(owner)
    return EditResult(store.get_flashcard(card_id) or previous, outcome)


async def remove_flashcard(
    store: CacheStore,
    remote: RemoteStore,
    owner: Owner | None,
    card_id: str,
) -> EditResult[Flashcard] | None:
    card = store.get_flashcard(card_id)
    if card is None:
        return None
    outcome = await OptimisticTransaction(
        f"delete card {card_id}",
        apply_local=lambda: store.delete_flashcard(card_id),
        attempt_remote=lambda o: remote.delete_flashcard(card_id, o),
        rollback_local=lambda: store.add_flashcards([card]),
    ).run(owner)
    return EditResult(card, outcome)
