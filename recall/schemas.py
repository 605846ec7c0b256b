"""
Pydantic models for the persisted layout.

These records mirror MemoryState, ReviewLogEntry and ParameterSet field for
field. Storage collaborators serialise through them so that a value written
and read back reconstructs an identical engine value.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from recall.fsrs.constants import (
    DEFAULT_MAXIMUM_INTERVAL,
    DEFAULT_REQUEST_RETENTION,
    DEFAULT_WEIGHTS,
    WEIGHTS_VERSION,
    Rating,
    State,
)
from recall.fsrs.memory_state import MemoryState
from recall.fsrs.parameters import ParameterSet
from recall.fsrs.review_log import ReviewLogEntry


class MemoryStateRecord(BaseModel):
    """Persisted form of a MemoryState."""
    model_config = ConfigDict(frozen=True)

    owner_id: str
    item_id: str
    stability: float = Field(..., gt=0, description="Stability in days")
    difficulty: float = Field(..., ge=1, le=10)
    state: State
    reps: int = Field(..., ge=0)
    lapses: int = Field(..., ge=0)
    elapsed_days: int = Field(..., ge=0)
    scheduled_days: int = Field(..., ge=0)
    last_review: Optional[datetime] = None
    next_review: datetime

    @classmethod
    def from_state(cls, state: MemoryState) -> MemoryStateRecord:
        return cls(
            owner_id=state.owner_id,
            item_id=state.item_id,
            stability=state.stability,
            difficulty=state.difficulty,
            state=state.state,
            reps=state.reps,
            lapses=state.lapses,
            elapsed_days=state.elapsed_days,
            scheduled_days=state.scheduled_days,
            last_review=state.last_review,
            next_review=state.next_review,
        )

    def to_state(self) -> MemoryState:
        return MemoryState(**self.model_dump())


class ReviewLogRecord(BaseModel):
    """Persisted form of a ReviewLogEntry."""
    model_config = ConfigDict(frozen=True)

    owner_id: str
    item_id: str
    rating: Rating
    reviewed_at: datetime
    state_before: State
    state_after: State
    stability_before: float
    difficulty_before: float
    stability_after: float
    difficulty_after: float
    retrievability: Optional[float] = None
    elapsed_days: int = Field(..., ge=0)
    scheduled_days: int = Field(..., ge=0)
    reps: int = Field(..., ge=0)
    lapses: int = Field(..., ge=0)

    @classmethod
    def from_entry(cls, entry: ReviewLogEntry) -> ReviewLogRecord:
        return cls(
            owner_id=entry.owner_id,
            item_id=entry.item_id,
            rating=entry.rating,
            reviewed_at=entry.reviewed_at,
            state_before=entry.state_before,
            state_after=entry.state_after,
            stability_before=entry.stability_before,
            difficulty_before=entry.difficulty_before,
            stability_after=entry.stability_after,
            difficulty_after=entry.difficulty_after,
            retrievability=entry.retrievability,
            elapsed_days=entry.elapsed_days,
            scheduled_days=entry.scheduled_days,
            reps=entry.reps,
            lapses=entry.lapses,
        )

    def to_entry(self) -> ReviewLogEntry:
        return ReviewLogEntry(**self.model_dump())


class ParameterRecord(BaseModel):
    """Persisted form of a learner's ParameterSet."""
    model_config = ConfigDict(frozen=True)

    request_retention: float = DEFAULT_REQUEST_RETENTION
    maximum_interval: int = DEFAULT_MAXIMUM_INTERVAL
    w: list[float] = Field(default_factory=lambda: list(DEFAULT_WEIGHTS))
    weights_version: str = WEIGHTS_VERSION

    @classmethod
    def from_parameters(cls, params: ParameterSet) -> ParameterRecord:
        return cls(
            request_retention=params.request_retention,
            maximum_interval=params.maximum_interval,
            w=list(params.w),
        )

    def to_parameters(self) -> ParameterSet:
        """Raises ConfigError if the stored values no longer validate."""
        return ParameterSet.construct(
            self.request_retention,
            self.maximum_interval,
            self.w,
        )
