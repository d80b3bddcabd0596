"""
Local cache store and its pending-mutation queue.

Run with:
    pytest tests/test_cache_store.py -v
"""

import json
import sqlite3
from datetime import timedelta

import pytest
from pydantic import ValidationError

from flashsync.db.cache import CACHE_DECKS, CACHE_FLASHCARDS, CACHE_PENDING_UPDATES, CacheStore
from flashsync.db.kv import SqliteMedium
from flashsync.models.progress import (
    PendingFlashcardUpdate,
    PendingProgressUpdate,
    UserProgress,
)


def _delta(card_id, now, interval=1, reps=1):
    return PendingFlashcardUpdate(
        id=card_id,
        ease_factor=2.5,
        interval=interval,
        repetitions=reps,
        next_review_date=now + timedelta(days=interval),
    )


class TestDefaults:
    def test_empty_cache_reads_empty(self, store):
        assert store.get_decks() == []
        assert store.get_flashcards() == []
        assert store.get_tags() == []
        assert store.get_progress() == UserProgress()
        assert not store.has_pending_updates()

    def test_not_ready_until_marked(self, store, now):
        assert not store.is_ready()
        store.mark_synced(now)
        assert store.is_ready()
        assert store.get_last_sync() == now

    def test_corrupt_entry_reads_as_default(self, store, medium):
        medium.set(CACHE_DECKS, "{not json")
        medium.set(CACHE_PENDING_UPDATES, '{"flashcards": 7}')
        assert store.get_decks() == []
        assert not store.has_pending_updates()

    def test_out_of_range_card_reads_as_default(self, store, medium, make_card):
        card = make_card("c1").model_dump(mode="json")
        card["ease_factor"] = 1.0
        medium.set(CACHE_FLASHCARDS, json.dumps([card]))
        assert store.get_flashcards() == []


class TestDecks:
    def test_update_deck_merges_patch(self, store, make_deck):
        store.set_decks([make_deck("d1", "Old")])
        updated = store.update_deck("d1", {"name": "New"})
        assert updated.name == "New"
        assert store.get_deck("d1").name == "New"

    def test_update_missing_deck(self, store):
        assert store.update_deck("nope", {"name": "x"}) is None

    def test_delete_deck_cascades_to_cards(self, store, make_deck, make_card):
        store.set_decks([make_deck("d1"), make_deck("d2")])
        store.set_flashcards([make_card("c1", "d1"), make_card("c2", "d2")])

        assert store.delete_deck("d1") is True
        assert [d.id for d in store.get_decks()] == ["d2"]
        assert [c.id for c in store.get_flashcards()] == ["c2"]

    def test_delete_missing_deck(self, store):
        assert store.delete_deck("nope") is False

    def test_deck_tags_normalized(self, store, make_deck):
        store.set_decks([make_deck("d1")])
        deck = store.set_deck_tags("d1", [" verbs ", "b1", "verbs", ""])
        assert deck.tags == ["b1", "verbs"]


class TestFlashcards:
    def test_scheduling_fields_are_bounded(self, make_card):
        for bad in ({"ease_factor": 1.2}, {"interval": -1}, {"repetitions": -1}):
            with pytest.raises(ValidationError):
                make_card("c1", **bad)

    def test_cards_for_deck(self, store, make_card):
        store.set_flashcards([make_card("c1", "d1"), make_card("c2", "d2")])
        assert [c.id for c in store.get_flashcards_for_deck("d1")] == ["c1"]

    def test_update_flashcard(self, store, make_card):
        store.set_flashcards([make_card("c1")])
        card = store.update_flashcard("c1", {"interval": 6, "repetitions": 2})
        assert card.interval == 6
        assert store.get_flashcard("c1").repetitions == 2

    def test_update_missing_flashcard(self, store):
        assert store.update_flashcard("nope", {"interval": 1}) is None


class TestTags:
    def test_add_tag_once(self, store):
        assert store.add_tag("verbs") is True
        assert store.add_tag("verbs") is False
        assert store.get_tags() == ["verbs"]

    def test_set_tags_sorted_and_deduplicated(self, store):
        store.set_tags(["b", "a", "b"])
        assert store.get_tags() == ["a", "b"]


class TestPendingQueue:
    def test_card_updates_coalesce_by_id(self, store, now):
        store.queue_flashcard_update(_delta("c1", now, interval=1, reps=1))
        store.queue_flashcard_update(_delta("c2", now))
        store.queue_flashcard_update(_delta("c1", now, interval=6, reps=2))

        pending = store.get_pending_flashcard_updates()
        assert [u.id for u in pending] == ["c1", "c2"]
        assert pending[0].interval == 6

    def test_progress_snapshot_replaced(self, store, now):
        store.queue_progress_update(
            PendingProgressUpdate(total_cards_reviewed=1, current_streak=1, last_practice_date=now)
        )
        store.queue_progress_update(
            PendingProgressUpdate(total_cards_reviewed=2, current_streak=1, last_practice_date=now)
        )
        assert store.get_pending_progress_update().total_cards_reviewed == 2

    def test_clear_pending(self, store, now):
        store.queue_flashcard_update(_delta("c1", now))
        store.clear_pending_updates()
        assert not store.has_pending_updates()

    def test_discard_keeps_entries_queued_after_snapshot(self, store, now):
        store.queue_flashcard_update(_delta("c1", now))
        store.queue_flashcard_update(_delta("c2", now))
        pushed = store.get_pending_updates()

        # c1 graded again while the push was in flight
        store.queue_flashcard_update(_delta("c1", now, interval=6, reps=2))
        store.discard_pending(pushed)

        remaining = store.get_pending_flashcard_updates()
        assert [(u.id, u.interval) for u in remaining] == [("c1", 6)]

    def test_discard_progress_only_when_unchanged(self, store, now):
        snap = PendingProgressUpdate(total_cards_reviewed=1, current_streak=1, last_practice_date=now)
        store.queue_progress_update(snap)
        pushed = store.get_pending_updates()
        store.queue_progress_update(snap.model_copy(update={"total_cards_reviewed": 2}))

        store.discard_pending(pushed)
        assert store.get_pending_progress_update().total_cards_reviewed == 2


class TestClearAll:
    def test_clear_all_wipes_everything(self, store, make_deck, make_card, now):
        store.set_decks([make_deck()])
        store.set_flashcards([make_card("c1")])
        store.set_tags(["x"])
        store.queue_flashcard_update(_delta("c1", now))
        store.set_owner("alice")
        store.mark_synced(now)

        store.clear_all()

        assert store.get_decks() == []
        assert store.get_flashcards() == []
        assert store.get_tags() == []
        assert not store.has_pending_updates()
        assert not store.is_ready()
        assert store.get_owner() is None

    def test_persists_across_instances(self, tmp_path, make_deck):
        from flashsync.db import open_cache

        first = open_cache(tmp_path)
        first.set_decks([make_deck("d1")])
        second = open_cache(tmp_path)
        assert [d.id for d in second.get_decks()] == ["d1"]


class TestOwner:
    def test_unowned_until_set(self, store):
        assert store.get_owner() is None
        store.set_owner("alice")
        assert store.get_owner() == "alice"


class TestClose:
    def test_close_releases_connection(self, make_deck):
        store = CacheStore(SqliteMedium(":memory:"))
        store.set_decks([make_deck("d1")])
        store.close()
        with pytest.raises(sqlite3.ProgrammingError):
            store.get_decks()
