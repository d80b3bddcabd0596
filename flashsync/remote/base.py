"""
Remote store of record: the interface the cache syncs against.

Every method takes an ``Owner``: the authorization predicate the implementation
must apply to each read and write (``user_id = ?`` in SQL, ``user_id=eq.<id>``
in REST filters). Methods that target one row return ``False`` when no row
matched the id *and* the owner, which callers treat as a rejection.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from flashsync.models.deck import Deck
from flashsync.models.flashcard import Flashcard, SchedulingState
from flashsync.models.progress import PendingProgressUpdate, UserProgress


class RemoteStoreError(Exception):
    """The remote store refused or failed a request."""


class RemoteUnavailableError(RemoteStoreError):
    """Network failure, timeout, or server-side error. Safe to retry."""


@dataclass(frozen=True)
class Owner:
    user_id: str

    def sql(self, column: str = "user_id") -> tuple[str, tuple[Any, ...]]:
        return f"{column} = ?", (self.user_id,)

    def params(self, column: str = "user_id") -> dict[str, str]:
        return {column: f"eq.{self.user_id}"}


class RemoteStore(ABC):
    # --- Pull ---

    @abstractmethod
    async def fetch_decks(self, owner: Owner) -> list[Deck]:
        """All decks of the owner, each with its tag list."""

    @abstractmethod
    async def fetch_flashcards(self, owner: Owner) -> list[Flashcard]: ...

    @abstractmethod
    async def fetch_progress(self, owner: Owner) -> UserProgress | None: ...

    @abstractmethod
    async def fetch_tags(self, owner: Owner) -> list[str]:
        """The owner's tag registry."""

    # --- Push ---

    @abstractmethod
    async def update_flashcard_fields(
        self, card_id: str, fields: SchedulingState, owner: Owner
    ) -> bool:
        """Overwrite the scheduling fields of one card."""

    @abstractmethod
    async def update_progress(
        self, snapshot: PendingProgressUpdate, owner: Owner
    ) -> None:
        """Overwrite the owner's progress counters (creates the row if absent)."""

    # --- Editing ---

    @abstractmethod
    async def create_deck(self, deck: Deck, owner: Owner) -> None: ...

    @abstractmethod
    async def update_deck(self, deck_id: str, name: str, owner: Owner) -> bool: ...

    @abstractmethod
    async def delete_deck(self, deck_id: str, owner: Owner) -> bool:
        """Delete a deck; its flashcards and tag links go with it."""

    @abstractmethod
    async def set_deck_tags(
        self, deck_id: str, tags: list[str], owner: Owner
    ) -> bool: ...

    @abstractmethod
    async def create_flashcards(
        self, deck_id: str, cards: list[Flashcard], owner: Owner
    ) -> bool:
        """Insert cards into one of the owner's decks."""

    @abstractmethod
    async def update_flashcard_content(
        self, card_id: str, front: str, back: str, owner: Owner
    ) -> bool: ...

    @abstractmethod
    async def delete_flashcard(self, card_id: str, owner: Owner) -> bool: ...

    @abstractmethod
    async def add_tag(self, tag: str, owner: Owner) -> None: ...

    @abstractmethod
    async def remove_tag(self, tag: str, owner: Owner) -> None: ...

    async def close(self) -> None:
        return None
