"""
Local cache store.

Synchronous projection of the remote store of record plus the queue of
not-yet-pushed local mutations. Every collection lives under one key of a
``KeyValueMedium`` and every write replaces the whole collection, so callers
must not interleave writes to the same collection (the practice controller and
the sync engine never suspend while holding a read-modify-write).

Reads never raise: a missing or unparseable entry comes back as the empty
collection / default snapshot.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, TypeVar

from pydantic import TypeAdapter, ValidationError

from flashsync.db.kv import KeyValueMedium
from flashsync.models.deck import Deck, normalize_tags
from flashsync.models.flashcard import Flashcard
from flashsync.models.progress import (
    PendingFlashcardUpdate,
    PendingProgressUpdate,
    PendingUpdates,
    UserProgress,
)

logger = logging.getLogger(__name__)

CACHE_DECKS = "cache_decks"
CACHE_FLASHCARDS = "cache_flashcards"
CACHE_PROGRESS = "cache_progress"
CACHE_TAGS = "cache_tags"
CACHE_LAST_SYNC = "cache_last_sync"
CACHE_PENDING_UPDATES = "cache_pending_updates"
CACHE_OWNER = "cache_owner"

ALL_KEYS = (
    CACHE_DECKS,
    CACHE_FLASHCARDS,
    CACHE_PROGRESS,
    CACHE_TAGS,
    CACHE_LAST_SYNC,
    CACHE_PENDING_UPDATES,
    CACHE_OWNER,
)

T = TypeVar("T")

_decks = TypeAdapter(list[Deck])
_flashcards = TypeAdapter(list[Flashcard])
_progress = TypeAdapter(UserProgress)
_tags = TypeAdapter(list[str])
_last_sync = TypeAdapter(datetime)
_pending = TypeAdapter(PendingUpdates)
_owner = TypeAdapter(str)


class CacheStore:
    def __init__(self, medium: KeyValueMedium) -> None:
        self._medium = medium

    # --- Raw access ---

    def _read(self, key: str, adapter: TypeAdapter[T], default: T) -> T:
        raw = self._medium.get(key)
        if raw is None:
            return default
        try:
            return adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding unreadable cache entry %s: %s", key, e)
            return default

    def _write(self, key: str, adapter: TypeAdapter[T], value: T) -> None:
        self._medium.set(key, adapter.dump_json(value).decode())

    # --- Bulk collections ---

    def get_decks(self) -> list[Deck]:
        return self._read(CACHE_DECKS, _decks, [])

    def set_decks(self, decks: list[Deck]) -> None:
        self._write(CACHE_DECKS, _decks, decks)

    def get_flashcards(self) -> list[Flashcard]:
        return self._read(CACHE_FLASHCARDS, _flashcards, [])

    def set_flashcards(self, flashcards: list[Flashcard]) -> None:
        self._write(CACHE_FLASHCARDS, _flashcards, flashcards)

    def get_flashcards_for_deck(self, deck_id: str) -> list[Flashcard]:
        return [c for c in self.get_flashcards() if c.deck_id == deck_id]

    def get_progress(self) -> UserProgress:
        return self._read(CACHE_PROGRESS, _progress, UserProgress())

    def set_progress(self, progress: UserProgress) -> None:
        self._write(CACHE_PROGRESS, _progress, progress)

    def get_tags(self) -> list[str]:
        return self._read(CACHE_TAGS, _tags, [])

    def set_tags(self, tags: list[str]) -> None:
        self._write(CACHE_TAGS, _tags, normalize_tags(tags))

    # --- Readiness marker ---

    def mark_synced(self, now: datetime | None = None) -> None:
        self._write(CACHE_LAST_SYNC, _last_sync, now or datetime.now(timezone.utc))

    def get_last_sync(self) -> datetime | None:
        return self._read(CACHE_LAST_SYNC, _last_sync, None)

    def is_ready(self) -> bool:
        return self.get_last_sync() is not None

    # --- Owner ---

    def get_owner(self) -> str | None:
        """User whose data the cache holds; None before the first pull."""
        return self._read(CACHE_OWNER, _owner, None)

    def set_owner(self, user_id: str) -> None:
        self._write(CACHE_OWNER, _owner, user_id)

    # --- Decks ---

    def get_deck(self, deck_id: str) -> Deck | None:
        return next((d for d in self.get_decks() if d.id == deck_id), None)

    def add_deck(self, deck: Deck) -> None:
        decks = self.get_decks()
        decks.append(deck)
        self.set_decks(decks)

    def update_deck(self, deck_id: str, patch: Mapping[str, Any]) -> Deck | None:
        decks = self.get_decks()
        for i, deck in enumerate(decks):
            if deck.id == deck_id:
                decks[i] = Deck.model_validate({**deck.model_dump(), **patch})
                self.set_decks(decks)
                return decks[i]
        return None

    def set_deck_tags(self, deck_id: str, tags: list[str]) -> Deck | None:
        return self.update_deck(deck_id, {"tags": normalize_tags(tags)})

    def delete_deck(self, deck_id: str) -> bool:
        """Remove a deck and, by cascade, its cached flashcards."""
        decks = self.get_decks()
        remaining = [d for d in decks if d.id != deck_id]
        self.set_decks(remaining)
        self.set_flashcards(
            [c for c in self.get_flashcards() if c.deck_id != deck_id]
        )
        return len(remaining) != len(decks)

    # --- Flashcards ---

    def get_flashcard(self, card_id: str) -> Flashcard | None:
        return next((c for c in self.get_flashcards() if c.id == card_id), None)

    def add_flashcards(self, cards: list[Flashcard]) -> None:
        flashcards = self.get_flashcards()
        flashcards.extend(cards)
        self.set_flashcards(flashcards)

    def update_flashcard(
        self, card_id: str, patch: Mapping[str, Any]
    ) -> Flashcard | None:
        flashcards = self.get_flashcards()
        for i, card in enumerate(flashcards):
            if card.id == card_id:
                flashcards[i] = Flashcard.model_validate(
                    {**card.model_dump(), **patch}
                )
                self.set_flashcards(flashcards)
                return flashcards[i]
        return None

    def delete_flashcard(self, card_id: str) -> bool:
        flashcards = self.get_flashcards()
        remaining = [c for c in flashcards if c.id != card_id]
        self.set_flashcards(remaining)
        return len(remaining) != len(flashcards)

    # --- Tag registry ---

    def add_tag(self, tag: str) -> bool:
        tags = self.get_tags()
        if tag in tags:
            return False
        tags.append(tag)
        self.set_tags(tags)
        return True

    def remove_tag(self, tag: str) -> None:
        self.set_tags([t for t in self.get_tags() if t != tag])

    # --- Pending mutations ---

    def get_pending_updates(self) -> PendingUpdates:
        return self._read(CACHE_PENDING_UPDATES, _pending, PendingUpdates())

    def _set_pending_updates(self, pending: PendingUpdates) -> None:
        self._write(CACHE_PENDING_UPDATES, _pending, pending)

    def queue_flashcard_update(self, update: PendingFlashcardUpdate) -> None:
        """Queue a scheduling delta; replaces any earlier entry for the same card."""
        pending = self.get_pending_updates()
        for i, existing in enumerate(pending.flashcards):
            if existing.id == update.id:
                pending.flashcards[i] = update
                break
        else:
            pending.flashcards.append(update)
        self._set_pending_updates(pending)

    def queue_progress_update(self, update: PendingProgressUpdate) -> None:
        pending = self.get_pending_updates()
        pending.progress = update
        self._set_pending_updates(pending)

    def get_pending_flashcard_updates(self) -> list[PendingFlashcardUpdate]:
        return self.get_pending_updates().flashcards

    def get_pending_progress_update(self) -> PendingProgressUpdate | None:
        return self.get_pending_updates().progress

    def has_pending_updates(self) -> bool:
        pending = self.get_pending_updates()
        return bool(pending.flashcards) or pending.progress is not None

    def clear_pending_updates(self) -> None:
        self._set_pending_updates(PendingUpdates())

    def discard_pending(self, pushed: PendingUpdates) -> None:
        """
        Drop the entries of ``pushed`` that are still queued unchanged.
        Anything re-queued after the snapshot was taken stays pending.
        """
        pending = self.get_pending_updates()
        pending.flashcards = [u for u in pending.flashcards if u not in pushed.flashcards]
        if pending.progress is not None and pending.progress == pushed.progress:
            pending.progress = None
        self._set_pending_updates(pending)

    # --- Wipe ---

    def clear_all(self) -> None:
        for key in ALL_KEYS:
            self._medium.delete(key)

    def close(self) -> None:
        self._medium.close()
