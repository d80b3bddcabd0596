"""
Progress statistics derived from the cache.

Run with:
    pytest tests/test_progress.py -v
"""

from datetime import timedelta

import pytest

from flashsync.models.progress import UserProgress
from flashsync.services.progress import (
    current_streak,
    deck_progress,
    decks_with_stats,
    overall_mastery,
    progress_stats,
    weakest_deck,
)


@pytest.fixture
def two_decks(store, make_deck, make_card):
    store.set_decks([make_deck("d1", "Spanish"), make_deck("d2", "German")])
    store.set_flashcards([
        make_card("a", "d1", interval=7, repetitions=3, due_in_days=7),
        make_card("b", "d1", interval=2, repetitions=1, due_in_days=2),
        make_card("c", "d1"),
        make_card("d", "d2", interval=30, repetitions=5, due_in_days=30),
    ])
    return store


class TestMastery:
    def test_overall_rounds_to_percent(self, two_decks):
        # 2 of 4 cards mastered
        assert overall_mastery(two_decks) == 50

    def test_empty_cache_is_zero(self, store):
        assert overall_mastery(store) == 0

    def test_half_rounds_up(self, store, make_deck, make_card):
        store.set_decks([make_deck("d1")])
        store.set_flashcards(
            [make_card("m", interval=7)] + [make_card(f"n{i}") for i in range(7)]
        )
        # 1 of 8 = 12.5%
        assert overall_mastery(store) == 13


class TestDeckProgress:
    def test_counts_and_icons(self, two_decks):
        by_id = {d.id: d for d in deck_progress(two_decks)}

        spanish = by_id["d1"]
        assert (spanish.new_count, spanish.learning_count, spanish.mastered_count) == (1, 1, 1)
        assert spanish.total_count == 3
        assert spanish.progress == 33
        assert spanish.icon == "pending"

        german = by_id["d2"]
        assert german.progress == 100
        assert german.icon == "done_all"

    def test_weakest_deck(self, two_decks):
        assert weakest_deck(two_decks).name == "Spanish"

    def test_weakest_deck_ties_keep_first(self, store, make_deck):
        store.set_decks([make_deck("d1", "First"), make_deck("d2", "Second")])
        assert weakest_deck(store).name == "First"

    def test_no_decks(self, store):
        assert weakest_deck(store) is None

    def test_due_counts(self, two_decks, now):
        stats = {d.id: d for d in decks_with_stats(two_decks, now)}
        assert stats["d1"].card_count == 3
        assert stats["d1"].due_card_count == 1
        assert stats["d2"].due_card_count == 0
        assert stats["d2"].mastery == 100


class TestStreakDisplay:
    def test_kept_through_yesterday(self, now):
        progress = UserProgress(current_streak=4, last_practice_date=now - timedelta(days=1))
        assert current_streak(progress, now) == 4

    def test_lapsed_after_missed_day(self, now):
        progress = UserProgress(current_streak=4, last_practice_date=now - timedelta(days=2))
        assert current_streak(progress, now) == 0

    def test_never_practiced(self, now):
        assert current_streak(UserProgress(), now) == 0

    def test_stats_summary(self, two_decks, now):
        two_decks.set_progress(UserProgress(total_cards_reviewed=12, current_streak=2, last_practice_date=now))
        stats = progress_stats(two_decks, now)
        assert stats.current_streak == 2
        assert stats.total_cards_mastered == 2
        assert stats.overall_mastery == 50
        assert stats.weakest_deck == "Spanish"
        assert stats.weakest_deck_mastery == 33
