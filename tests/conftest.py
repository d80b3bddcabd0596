"""
Shared fixtures.

Provides:
- An in-memory cache store
- A file-backed sqlite store of record, empty or seeded for two users
- Factories for decks and cards with fixed timestamps
- An auth session and a sync engine wired to it
"""

from datetime import datetime, timedelta, timezone

import pytest

from flashsync.db.cache import CacheStore
from flashsync.db.kv import SqliteMedium
from flashsync.models.deck import Deck
from flashsync.models.flashcard import Flashcard
from flashsync.remote.base import Owner
from flashsync.remote.sqlite import SqliteRemoteStore
from flashsync.services.auth import AuthSession
from flashsync.services.sync import SyncEngine

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)

ALICE = Owner("alice")
BOB = Owner("bob")


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def medium():
    m = SqliteMedium(":memory:")
    yield m
    m.close()


@pytest.fixture
def store(medium) -> CacheStore:
    return CacheStore(medium)


@pytest.fixture
def make_deck():
    def _make(deck_id: str = "d1", name: str = "Spanish", tags=None) -> Deck:
        return Deck(
            id=deck_id,
            name=name,
            tags=tags or [],
            created_at=NOW,
            updated_at=NOW,
        )

    return _make


@pytest.fixture
def make_card():
    def _make(card_id: str, deck_id: str = "d1", due_in_days: int = 0, **fields) -> Flashcard:
        return Flashcard(
            id=card_id,
            deck_id=deck_id,
            front=fields.pop("front", f"front {card_id}"),
            back=fields.pop("back", f"back {card_id}"),
            next_review_date=NOW + timedelta(days=due_in_days),
            created_at=NOW,
            updated_at=NOW,
            **fields,
        )

    return _make


@pytest.fixture
async def remote(tmp_path) -> SqliteRemoteStore:
    r = SqliteRemoteStore(tmp_path / "remote.db")
    await r.init()
    return r


@pytest.fixture
async def seeded_remote(remote, make_deck, make_card) -> SqliteRemoteStore:
    """alice owns d1 (c1, c2, tagged "lang"); bob owns d2 (c3)."""
    await remote.create_deck(make_deck("d1", "Spanish", ["lang"]), ALICE)
    await remote.create_flashcards(
        "d1", [make_card("c1"), make_card("c2", due_in_days=1)], ALICE
    )
    await remote.add_tag("lang", ALICE)
    await remote.create_deck(make_deck("d2", "Bob's deck"), BOB)
    await remote.create_flashcards("d2", [make_card("c3", deck_id="d2")], BOB)
    return remote


@pytest.fixture
def auth() -> AuthSession:
    return AuthSession()


@pytest.fixture
def engine(store, seeded_remote, auth) -> SyncEngine:
    e = SyncEngine(store, seeded_remote, auth, pull_timeout=2.0)
    e.attach()
    return e
