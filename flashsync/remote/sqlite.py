"""
aiosqlite-backed store of record.

Every table carries ``user_id`` and every statement filters on it through
``Owner.sql()``. Deleting a deck cascades to its flashcards and tag links.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from flashsync.models.deck import Deck
from flashsync.models.flashcard import Flashcard, SchedulingState
from flashsync.models.progress import PendingProgressUpdate, UserProgress
from flashsync.remote.base import (
    Owner,
    RemoteStore,
    RemoteStoreError,
    RemoteUnavailableError,
)

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS decks (
    id          TEXT PRIMARY KEY,
    user_id     TEXT NOT NULL,
    name        TEXT NOT NULL,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_decks_user ON decks(user_id);

CREATE TABLE IF NOT EXISTS deck_tags (
    deck_id     TEXT NOT NULL REFERENCES decks(id) ON DELETE CASCADE,
    user_id     TEXT NOT NULL,
    tag         TEXT NOT NULL,
    created_at  TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (deck_id, tag)
);
CREATE INDEX IF NOT EXISTS idx_deck_tags_user ON deck_tags(user_id);

CREATE TABLE IF NOT EXISTS flashcards (
    id               TEXT PRIMARY KEY,
    user_id          TEXT NOT NULL,
    deck_id          TEXT NOT NULL REFERENCES decks(id) ON DELETE CASCADE,
    front            TEXT NOT NULL,
    back             TEXT NOT NULL,
    ease_factor      REAL NOT NULL DEFAULT 2.5,
    interval         INTEGER NOT NULL DEFAULT 0,
    repetitions      INTEGER NOT NULL DEFAULT 0,
    next_review_date TEXT NOT NULL,
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_flashcards_user ON flashcards(user_id);
CREATE INDEX IF NOT EXISTS idx_flashcards_deck ON flashcards(deck_id);

CREATE TABLE IF NOT EXISTS user_progress (
    user_id              TEXT PRIMARY KEY,
    total_cards_reviewed INTEGER NOT NULL DEFAULT 0,
    total_cards_mastered INTEGER NOT NULL DEFAULT 0,
    current_streak       INTEGER NOT NULL DEFAULT 0,
    last_practice_date   TEXT
);

CREATE TABLE IF NOT EXISTS user_tags (
    user_id     TEXT NOT NULL,
    tag         TEXT NOT NULL,
    PRIMARY KEY (user_id, tag)
);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
INSERT OR IGNORE INTO schema_version(version) VALUES (1);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _ts(value: datetime) -> str:
    return value.isoformat()


class SqliteRemoteStore(RemoteStore):
    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path

    async def init(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self._db_path) as db:
            await db.executescript(SCHEMA_SQL)
            await db.commit()
        logger.info("Store of record ready at %s", self._db_path)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with aiosqlite.connect(self._db_path) as db:
                db.row_factory = aiosqlite.Row
                await db.execute("PRAGMA foreign_keys=ON")
                yield db
        except aiosqlite.IntegrityError as e:
            raise RemoteStoreError(f"constraint violated: {e}") from e
        except aiosqlite.Error as e:
            raise RemoteUnavailableError(f"sqlite store error: {e}") from e

    async def _owns_deck(
        self, db: aiosqlite.Connection, deck_id: str, owner: Owner
    ) -> bool:
        clause, params = owner.sql()
        cursor = await db.execute(
            f"SELECT 1 FROM decks WHERE id = ? AND {clause}",  # noqa: S608
            (deck_id, *params),
        )
        return await cursor.fetchone() is not None

    # --- Pull ---

    async def fetch_decks(self, owner: Owner) -> list[Deck]:
        clause, params = owner.sql()
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT * FROM decks WHERE {clause} ORDER BY created_at DESC",  # noqa: S608
                params,
            )
            deck_rows = await cursor.fetchall()
            cursor = await db.execute(
                f"SELECT deck_id, tag FROM deck_tags WHERE {clause}",  # noqa: S608
                params,
            )
            tag_rows = await cursor.fetchall()

        tags_by_deck: dict[str, list[str]] = {}
        for row in tag_rows:
            tags_by_deck.setdefault(row["deck_id"], []).append(row["tag"])

        decks = []
        for row in deck_rows:
            d = dict(row)
            d.pop("user_id")
            d["tags"] = sorted(tags_by_deck.get(d["id"], []))
            decks.append(Deck(**d))
        return decks

    async def fetch_flashcards(self, owner: Owner) -> list[Flashcard]:
        clause, params = owner.sql()
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT * FROM flashcards WHERE {clause}",  # noqa: S608
                params,
            )
            rows = await cursor.fetchall()
        return [Flashcard(**dict(r)) for r in rows]

    async def fetch_progress(self, owner: Owner) -> UserProgress | None:
        clause, params = owner.sql()
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT * FROM user_progress WHERE {clause}",  # noqa: S608
                params,
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        d = dict(row)
        d.pop("user_id")
        return UserProgress(**d)

    async def fetch_tags(self, owner: Owner) -> list[str]:
        clause, params = owner.sql()
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT tag FROM user_tags WHERE {clause} ORDER BY tag",  # noqa: S608
                params,
            )
            rows = await cursor.fetchall()
        return [r[0] for r in rows]

    # --- Push ---

    async def update_flashcard_fields(
        self, card_id: str, fields: SchedulingState, owner: Owner
    ) -> bool:
        clause, params = owner.sql()
        async with self._connect() as db:
            cursor = await db.execute(
                f"""UPDATE flashcards
                    SET ease_factor = ?, interval = ?, repetitions = ?,
                        next_review_date = ?, updated_at = ?
                    WHERE id = ? AND {clause}""",  # noqa: S608
                (
                    fields.ease_factor,
                    fields.interval,
                    fields.repetitions,
                    _ts(fields.next_review_date),
                    _now(),
                    card_id,
                    *params,
                ),
            )
            await db.commit()
            return (cursor.rowcount or 0) > 0

    async def update_progress(
        self, snapshot: PendingProgressUpdate, owner: Owner
    ) -> None:
        async with self._connect() as db:
            await db.execute(
                """INSERT INTO user_progress
                   (user_id, total_cards_reviewed, current_streak, last_practice_date)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(user_id) DO UPDATE SET
                       total_cards_reviewed = excluded.total_cards_reviewed,
                       current_streak = excluded.current_streak,
                       last_practice_date = excluded.last_practice_date""",
                (
                    owner.user_id,
                    snapshot.total_cards_reviewed,
                    snapshot.current_streak,
                    _ts(snapshot.last_practice_date),
                ),
            )
            await db.commit()

    # --- Decks ---

    async def create_deck(self, deck: Deck, owner: Owner) -> None:
        async with self._connect() as db:
            await db.execute(
                """INSERT INTO decks (id, user_id, name, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    deck.id,
                    owner.user_id,
                    deck.name,
                    _ts(deck.created_at),
                    _ts(deck.updated_at),
                ),
            )
            await db.executemany(
                "INSERT OR IGNORE INTO deck_tags (deck_id, user_id, tag) VALUES (?, ?, ?)",
                [(deck.id, owner.user_id, t) for t in deck.tags],
            )
            await db.commit()

    async def update_deck(self, deck_id: str, name: str, owner: Owner) -> bool:
        clause, params = owner.sql()
        async with self._connect() as db:
            cursor = await db.execute(
                f"UPDATE decks SET name = ?, updated_at = ? WHERE id = ? AND {clause}",  # noqa: S608
                (name, _now(), deck_id, *params),
            )
            await db.commit()
            return (cursor.rowcount or 0) > 0

    async def delete_deck(self, deck_id: str, owner: Owner) -> bool:
        clause, params = owner.sql()
        async with self._connect() as db:
            cursor = await db.execute(
                f"DELETE FROM decks WHERE id = ? AND {clause}",  # noqa: S608
                (deck_id, *params),
            )
            await db.commit()
            return (cursor.rowcount or 0) > 0

    async def set_deck_tags(
        self, deck_id: str, tags: list[str], owner: Owner
    ) -> bool:
        clause, params = owner.sql()
        async with self._connect() as db:
            if not await self._owns_deck(db, deck_id, owner):
                return False
            await db.execute(
                f"DELETE FROM deck_tags WHERE deck_id = ? AND {clause}",  # noqa: S608
                (deck_id, *params),
            )
            await db.executemany(
                "INSERT INTO deck_tags (deck_id, user_id, tag) VALUES (?, ?, ?)",
                [(deck_id, owner.user_id, t) for t in tags],
            )
            await db.commit()
            return True

    # --- Flashcards ---

    async def create_flashcards(
        self, deck_id: str, cards: list[Flashcard], owner: Owner
    ) -> bool:
        async with self._connect() as db:
            if not await self._owns_deck(db, deck_id, owner):
                return False
            await db.executemany(
                """INSERT INTO flashcards
                   (id, user_id, deck_id, front, back, ease_factor, interval,
                    repetitions, next_review_date, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                [
                    (
                        c.id,
                        owner.user_id,
                        deck_id,
                        c.front,
                        c.back,
                        c.ease_factor,
                        c.interval,
                        c.repetitions,
                        _ts(c.next_review_date),
                        _ts(c.created_at),
                        _ts(c.updated_at),
                    )
                    for c in cards
                ],
            )
            await db.commit()
            return True

    async def update_flashcard_content(
        self, card_id: str, front: str, back: str, owner: Owner
    ) -> bool:
        clause, params = owner.sql()
        async with self._connect() as db:
            cursor = await db.execute(
                f"""UPDATE flashcards SET front = ?, back = ?, updated_at = ?
                    WHERE id = ? AND {clause}""",  # noqa: S608
                (front, back, _now(), card_id, *params),
            )
            await db.commit()
            return (cursor.rowcount or 0) > 0

    async def delete_flashcard(self, card_id: str, owner: Owner) -> bool:
        clause, params = owner.sql()
        async with self._connect() as db:
            cursor = await db.execute(
                f"DELETE FROM flashcards WHERE id = ? AND {clause}",  # noqa: S608
                (card_id, *params),
            )
            await db.commit()
            return (cursor.rowcount or 0) > 0

    # --- Tag registry ---

    async def add_tag(self, tag: str, owner: Owner) -> None:
        async with self._connect() as db:
            await db.execute(
                "INSERT OR IGNORE INTO user_tags (user_id, tag) VALUES (?, ?)",
                (owner.user_id, tag),
            )
            await db.commit()

    async def remove_tag(self, tag: str, owner: Owner) -> None:
        clause, params = owner.sql()
        async with self._connect() as db:
            await db.execute(
                f"DELETE FROM user_tags WHERE tag = ? AND {clause}",  # noqa: S608
                (tag, *params),
            )
            await db.execute(
                f"DELETE FROM deck_tags WHERE tag = ? AND {clause}",  # noqa: S608
                (tag, *params),
            )
            await db.commit()
