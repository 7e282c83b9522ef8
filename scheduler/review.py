"""Spaced repetition scheduling for highlights.

The ease factor and interval drive the schedule, SM-2 style. Each rating
nudges the ease factor and scales the grown interval:

    rating   ease delta   interval multiplier
    again      -0.20           x0.5
    hard       -0.05           x0.8
    good        0.00           x1.6
    easy       +0.10           x2.2

Mastery is a display value that follows the ease delta at half speed.
Intervals are capped at MAX_INTERVAL_DAYS (about a century) so the next
review date stays representable however long a highlight keeps succeeding.
"""
import datetime as dt
import math
from dataclasses import dataclass, replace
from typing import Protocol

from core import InvalidStateError, Rating, ReviewState
from core.timeutil import DAY


class Scheduler(Protocol):
    """Protocol for review schedulers."""

    def compute_next_review(self, state: ReviewState, rating, now: dt.datetime) -> ReviewState:
        """Return the state after grading a review at `now`."""
        ...


@dataclass(frozen=True)
class RatingModifier:
    ease_delta: float
    interval_multiplier: float


RATING_MODIFIERS: dict[Rating, RatingModifier] = {
    Rating.AGAIN: RatingModifier(ease_delta=-0.2, interval_multiplier=0.5),
    Rating.HARD: RatingModifier(ease_delta=-0.05, interval_multiplier=0.8),
    Rating.GOOD: RatingModifier(ease_delta=0.0, interval_multiplier=1.6),
    Rating.EASY: RatingModifier(ease_delta=0.1, interval_multiplier=2.2),
}

MIN_EASE_FACTOR = 1.3
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
MAX_INTERVAL_DAYS = 36500

# Synthetic rating by age at capture, and the mastery each one starts from.
STALE_CAPTURE_DAYS = 14
AGING_CAPTURE_DAYS = 5
BASELINE_MASTERY: dict[Rating, float] = {
    Rating.AGAIN: 0.3,
    Rating.HARD: 0.35,
    Rating.GOOD: 0.45,
}


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def validate_state(state: ReviewState) -> None:
    """Raise InvalidStateError if a stored state breaks its invariants."""
    if not isinstance(state.review_count, int) or state.review_count < 0:
        raise InvalidStateError(f"review_count must be a non-negative integer, got {state.review_count!r}")
    if not math.isfinite(state.ease_factor) or state.ease_factor < MIN_EASE_FACTOR:
        raise InvalidStateError(f"ease_factor must be >= {MIN_EASE_FACTOR}, got {state.ease_factor!r}")
    if not isinstance(state.interval_days, int) or state.interval_days < 1:
        raise InvalidStateError(f"interval_days must be a positive integer, got {state.interval_days!r}")
    if not math.isfinite(state.mastery_score) or not 0.0 <= state.mastery_score <= 1.0:
        raise InvalidStateError(f"mastery_score must be within [0, 1], got {state.mastery_score!r}")


class ReviewScheduler:
    """Ease/interval scheduler with per-rating multipliers.

    The first graded review is always followed by a 1 day interval and the
    second by a 6 day interval. From the third on, the previous interval
    grows by the previous ease factor and is then scaled by the rating.
    """

    @staticmethod
    def next_interval(state: ReviewState, modifier: RatingModifier) -> int:
        if state.review_count == 0:
            return FIRST_INTERVAL_DAYS
        if state.review_count == 1:
            return SECOND_INTERVAL_DAYS
        grown = _round_half_up(state.interval_days * state.ease_factor)
        # Drop float noise before the ceiling so 5 * 2.2 stays 11.
        scaled = round(grown * modifier.interval_multiplier, 6)
        return min(MAX_INTERVAL_DAYS, max(1, math.ceil(scaled)))

    def compute_next_review(self, state: ReviewState, rating, now: dt.datetime) -> ReviewState:
        """Grade one review and return the new state.

        Args:
            state: Current review state (left untouched)
            rating: A Rating or one of "again", "hard", "good", "easy"
            now: Moment of the review; the new interval is counted from here

        Returns:
            A new ReviewState with next_review_at at least one day after `now`

        Raises:
            InvalidRatingError: rating is not recognised
            InvalidStateError: state breaks an invariant
        """
        rating = Rating.parse(rating)
        validate_state(state)
        modifier = RATING_MODIFIERS[rating]

        interval_days = self.next_interval(state, modifier)
        ease_factor = round(max(MIN_EASE_FACTOR, state.ease_factor + modifier.ease_delta), 2)
        mastery_score = round(_clamp(state.mastery_score + modifier.ease_delta / 2, 0.0, 1.0), 2)

        return ReviewState(
            ease_factor=ease_factor,
            interval_days=interval_days,
            mastery_score=mastery_score,
            review_count=state.review_count + 1,
            last_reviewed_at=now,
            next_review_at=now + interval_days * DAY,
        )


def bootstrap_rating(age_days: float) -> Rating:
    """Synthetic rating for a highlight that was captured `age_days` ago."""
    if age_days > STALE_CAPTURE_DAYS:
        return Rating.AGAIN
    if age_days > AGING_CAPTURE_DAYS:
        return Rating.HARD
    return Rating.GOOD


def initial_review_state(captured_at: dt.datetime, now: dt.datetime,
                         scheduler: Scheduler = None) -> ReviewState:
    """Starting state for a freshly imported highlight with no review history.

    Older captures get a harsher synthetic rating and a lower baseline, and
    the step is anchored at the capture time, so stale material comes due at
    once while fresh material waits a day. The synthetic step is not a real
    review: review_count stays 0 and last_reviewed_at stays empty.
    """
    scheduler = scheduler or default_scheduler
    age_days = max(0.0, (now - captured_at).total_seconds() / 86400)
    rating = bootstrap_rating(age_days)
    mastery = BASELINE_MASTERY[rating]
    baseline = ReviewState(
        ease_factor=round(max(MIN_EASE_FACTOR, 2.3 + (mastery - 0.6)), 2),
        interval_days=FIRST_INTERVAL_DAYS,
        mastery_score=mastery,
    )
    anchor = min(captured_at, now)
    stepped = scheduler.compute_next_review(baseline, rating, anchor)
    return replace(stepped, review_count=0, last_reviewed_at=None)


# Default scheduler instance
default_scheduler = ReviewScheduler()


def compute_next_review(state: ReviewState, rating, now: dt.datetime) -> ReviewState:
    """Grade a review with the default scheduler."""
    return default_scheduler.compute_next_review(state, rating, now)
