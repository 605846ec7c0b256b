"""
FSRS - Free Spaced Repetition Scheduler

Main API of the scheduling engine.

This module implements a content-agnostic spaced repetition model with:
- Power forgetting curve: R = (1 + t / 9S)^-1
- Interpretable memory state (Stability, Difficulty, Retrievability)
- Fixed first-exposure schedules, then a continuous stability model
- Pure scheduling, with storage behind an injected ReviewStore

Quick start:
    from datetime import datetime, timezone
    from recall import fsrs

    params = fsrs.ParameterSet.default()
    now = datetime.now(timezone.utc)
    state = fsrs.MemoryState.initial(now, "learner-1", "item-42", params)

    # Process a review (algorithm only, no DB calls)
    state, entry = fsrs.schedule(params, state, fsrs.Rating.GOOD, now)
"""

# Constants and enums
from recall.fsrs.constants import (
    Rating,
    State,
    S_MIN,
    D_MIN,
    D_MAX,
    DEFAULT_REQUEST_RETENTION,
    DEFAULT_MAXIMUM_INTERVAL,
    DEFAULT_WEIGHTS,
    WEIGHTS_VERSION,
)

# Errors
from recall.fsrs.errors import (
    SchedulingError,
    ConfigError,
    InvalidRatingError,
    StateInvariantError,
    ConcurrentUpdateError,
)

# Values
from recall.fsrs.parameters import ParameterSet, DEFAULT_PARAMETERS
from recall.fsrs.memory_state import (
    MemoryState,
    calculate_retrievability,
    elapsed_days_since,
)
from recall.fsrs.review_log import ReviewLogEntry

# Core scheduler API (algorithm logic)
from recall.fsrs.scheduler import schedule, preview, validate_rating
from recall.fsrs.memory_updates import next_interval, next_difficulty

# Storage contract and host workflow
from recall.fsrs.persistence import ReviewStore, RegisteringStore, InMemoryReviewStore
from recall.fsrs.scheduling import review_item, register_items, build_session


__all__ = [
    # Core algorithm
    "schedule",
    "preview",
    "validate_rating",
    "next_interval",
    "next_difficulty",

    # Enums
    "Rating",
    "State",

    # Values
    "ParameterSet",
    "DEFAULT_PARAMETERS",
    "MemoryState",
    "ReviewLogEntry",
    "calculate_retrievability",
    "elapsed_days_since",

    # Errors
    "SchedulingError",
    "ConfigError",
    "InvalidRatingError",
    "StateInvariantError",
    "ConcurrentUpdateError",

    # Storage
    "ReviewStore",
    "RegisteringStore",
    "InMemoryReviewStore",
    "review_item",
    "register_items",
    "build_session",

    # Parameters
    "S_MIN",
    "D_MIN",
    "D_MAX",
    "DEFAULT_REQUEST_RETENTION",
    "DEFAULT_MAXIMUM_INTERVAL",
    "DEFAULT_WEIGHTS",
    "WEIGHTS_VERSION",
]
