"""
Scheduler - FSRS Algorithm Logic

Pure scheduling and state transitions (no database calls, no clock reads).

Main workflow:
1. Validate the rating
2. Compute elapsed days and retrievability from the caller's ``now``
3. Apply the first-exposure schedule or the continuous memory model
4. Return the new MemoryState + a ReviewLogEntry

Caller is responsible for loading the state beforehand and persisting both
results afterwards.
"""

from __future__ import annotations
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional, Tuple

from recall.fsrs import memory_updates
from recall.fsrs.constants import NEW_ITEM_SCHEDULE, Rating, State
from recall.fsrs.errors import InvalidRatingError, StateInvariantError
from recall.fsrs.memory_state import (
    MemoryState,
    calculate_retrievability,
    elapsed_days_since,
    initial_memory,
    require_aware,
)
from recall.fsrs.parameters import ParameterSet
from recall.fsrs.review_log import ReviewLogEntry


def validate_rating(rating) -> Rating:
    """
    Convert a raw rating into a Rating.

    Only integers 1-4 (or Rating members) are accepted; bools, floats and
    strings are rejected rather than coerced.

    Raises:
        InvalidRatingError: for anything else
    """
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRatingError(rating)
    try:
        return Rating(rating)
    except ValueError:
        raise InvalidRatingError(rating) from None


def schedule(
    params: ParameterSet,
    state: MemoryState,
    rating,
    now: datetime
) -> Tuple[MemoryState, ReviewLogEntry]:
    """
    Commit a review and return the updated state + log entry.

    Identical inputs always produce identical outputs.

    Args:
        params: Scheduling configuration
        state: Current memory state of the item
        rating: Learner's rating, 1-4
        now: Review time

    Returns:
        Tuple of (updated_state, review_log_entry)

    Raises:
        InvalidRatingError: if the rating is not 1-4
        StateInvariantError: if ``now`` is naive or precedes the last review,
            or the update leaves the representable range
    """
    grade = validate_rating(rating)
    _check_state(state)
    require_aware(now, "now")
    return _transition(params, state, grade, now)


def preview(
    params: ParameterSet,
    state: MemoryState,
    now: datetime
) -> dict[Rating, MemoryState]:
    """
    Candidate next states for every possible rating, nothing committed.

    Useful for showing the learner the interval each answer button leads to.
    """
    _check_state(state)
    require_aware(now, "now")
    return {
        grade: _transition(params, state, grade, now)[0]
        for grade in Rating
    }


def _check_state(state: MemoryState):
    if not isinstance(state, MemoryState):
        raise StateInvariantError(f"Expected a MemoryState; got {type(state).__name__}")


def _transition(
    params: ParameterSet,
    state: MemoryState,
    rating: Rating,
    now: datetime
) -> Tuple[MemoryState, ReviewLogEntry]:
    if state.state == State.NEW:
        return _first_exposure(params, state, rating, now)
    return _memory_update(params, state, rating, now)


def _first_exposure(
    params: ParameterSet,
    state: MemoryState,
    rating: Rating,
    now: datetime
) -> Tuple[MemoryState, ReviewLogEntry]:
    """
    Fixed short-term schedules for an item seen for the first time.

    Stability and difficulty are (re)initialised from the weights; only Easy
    consults the memory model for its interval.
    """
    stability, difficulty = initial_memory(params)

    if rating == Rating.EASY:
        new_state, interval = State.REVIEW, memory_updates.next_interval(params, stability)
    else:
        new_state, interval = NEW_ITEM_SCHEDULE[rating]

    updated = _commit(
        state,
        now,
        stability=stability,
        difficulty=difficulty,
        new_state=new_state,
        lapses=state.lapses,
        elapsed_days=0,
        interval=interval
    )
    return updated, _log_entry(state, updated, rating, now, retrievability=None)


def _memory_update(
    params: ParameterSet,
    state: MemoryState,
    rating: Rating,
    now: datetime
) -> Tuple[MemoryState, ReviewLogEntry]:
    """
    Continuous model for items in learning, review or relearning.

    Difficulty is updated first; the new difficulty feeds the stability
    update.
    """
    elapsed = elapsed_days_since(state.last_review, now)
    retrievability = calculate_retrievability(state.stability, elapsed)
    difficulty = memory_updates.next_difficulty(params, state.difficulty, rating)

    lapses = state.lapses
    if rating == Rating.AGAIN:
        stability = memory_updates.next_forget_stability(
            params, difficulty, state.stability, retrievability
        )
        if state.state == State.LEARNING:
            # Not yet graduated, so a failure is not a lapse
            new_state = State.LEARNING
        else:
            new_state = State.RELEARNING
            lapses += 1
    else:
        stability = memory_updates.next_recall_stability(
            params, difficulty, state.stability, retrievability, rating
        )
        new_state = State.REVIEW

    updated = _commit(
        state,
        now,
        stability=stability,
        difficulty=difficulty,
        new_state=new_state,
        lapses=lapses,
        elapsed_days=elapsed,
        interval=memory_updates.next_interval(params, stability)
    )
    return updated, _log_entry(state, updated, rating, now, retrievability=retrievability)


def _commit(
    state: MemoryState,
    now: datetime,
    stability: float,
    difficulty: float,
    new_state: State,
    lapses: int,
    elapsed_days: int,
    interval: int
) -> MemoryState:
    try:
        next_review = now + timedelta(days=interval)
    except OverflowError as exc:
        raise StateInvariantError(
            f"Next review {interval} days after {now.isoformat()} is out of range"
        ) from exc

    return replace(
        state,
        stability=stability,
        difficulty=difficulty,
        state=new_state,
        reps=state.reps + 1,
        lapses=lapses,
        elapsed_days=elapsed_days,
        scheduled_days=interval,
        last_review=now,
        next_review=next_review
    )


def _log_entry(
    before: MemoryState,
    after: MemoryState,
    rating: Rating,
    now: datetime,
    retrievability: Optional[float]
) -> ReviewLogEntry:
    return ReviewLogEntry(
        owner_id=after.owner_id,
        item_id=after.item_id,
        rating=rating,
        reviewed_at=now,
        state_before=before.state,
        state_after=after.state,
        stability_before=before.stability,
        difficulty_before=before.difficulty,
        stability_after=after.stability,
        difficulty_after=after.difficulty,
        retrievability=retrievability,
        elapsed_days=after.elapsed_days,
        scheduled_days=after.scheduled_days,
        reps=after.reps,
        lapses=after.lapses
    )
