"""
Review Log - immutable record of one committed scheduling decision.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from recall.fsrs.constants import Rating, State


@dataclass(frozen=True)
class ReviewLogEntry:
    """
    Log entry for a single committed review of an item.

    Captures the state before and after the review so history can be
    replayed or analysed without the live MemoryState.
    """
    owner_id: str
    item_id: str
    rating: Rating
    reviewed_at: datetime

    # Transition
    state_before: State
    state_after: State

    # Memory model before/after
    stability_before: float
    difficulty_before: float
    stability_after: float
    difficulty_after: float
    retrievability: Optional[float]  # None for a first exposure

    # Scheduling outcome
    elapsed_days: int
    scheduled_days: int
    reps: int
    lapses: int

    def __post_init__(self):
        object.__setattr__(self, "rating", Rating(self.rating))
        object.__setattr__(self, "state_before", State(self.state_before))
        object.__setattr__(self, "state_after", State(self.state_after))
