"""
SM-2 scheduling.

Maps a card's scheduling state and a difficulty grade to the next state.
Pure: no I/O, no randomness. ``now`` is injectable so results are reproducible.

Grades map onto the SM-2 quality scale (0-5):
  hard -> 2, good -> 4, easy -> 5

Quality below 3 is a failed recall, so every "hard" answer resets the card.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Protocol

from flashsync.models.flashcard import Difficulty, SchedulingState

MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
PASSING_QUALITY = 3

_QUALITY = {
    Difficulty.HARD: 2,
    Difficulty.GOOD: 4,
    Difficulty.EASY: 5,
}


class Schedulable(Protocol):
    ease_factor: float
    interval: int
    repetitions: int


def difficulty_to_quality(difficulty: Difficulty) -> int:
    return _QUALITY[Difficulty(difficulty)]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_next_state(
    card: Schedulable,
    difficulty: Difficulty,
    now: datetime | None = None,
) -> SchedulingState:
    """Return the scheduling fields a card takes after being graded."""
    q = difficulty_to_quality(difficulty)
    ease = card.ease_factor
    interval = card.interval
    reps = card.repetitions

    if q < PASSING_QUALITY:
        reps = 0
        interval = 1
    else:
        ease = max(
            MIN_EASE_FACTOR,
            ease + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)),
        )
        if reps == 0:
            interval = 1
        elif reps == 1:
            interval = 6
        else:
            interval = _round_half_up(interval * ease)
        reps += 1

    now = now or datetime.now(timezone.utc)
    return SchedulingState(
        ease_factor=max(MIN_EASE_FACTOR, round(ease, 2)),
        interval=interval,
        repetitions=reps,
        next_review_date=now + timedelta(days=interval),
    )
