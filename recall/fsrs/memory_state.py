"""
Memory State - per-item learning progress and retrievability

Defines the core memory state variables and derived quantities.

Key concepts:
- Stability (S): Days until recall probability decays to 90%
- Difficulty (D): How hard the item is to retain (1-10 scale)
- Retrievability (R): Probability of successful recall at time t
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import math

from recall.fsrs.constants import (
    D_MAX,
    D_MIN,
    DECAY_FACTOR,
    INITIAL_DUE_DAYS,
    S_MIN,
    State,
)
from recall.fsrs.errors import StateInvariantError
from recall.fsrs.parameters import DEFAULT_PARAMETERS, ParameterSet


@dataclass(frozen=True)
class MemoryState:
    """
    Memory state for a single item of a single learner.

    Instances are only ever replaced, never mutated. The scheduler returns a
    new MemoryState for every committed review.
    """
    owner_id: str
    item_id: str

    # Memory model
    stability: float  # S, in days
    difficulty: float  # D, range 1-10
    state: State

    # Counters
    reps: int  # Committed reviews
    lapses: int  # Failures from review/relearning

    # Scheduling
    elapsed_days: int  # Days between the last two reviews
    scheduled_days: int  # Interval chosen at the last review
    last_review: Optional[datetime]
    next_review: datetime

    def __post_init__(self):
        """Coerce the state enum and reject values that break invariants."""
        try:
            object.__setattr__(self, "state", State(self.state))
        except ValueError:
            raise StateInvariantError(f"Unknown state {self.state!r}") from None

        if (
            isinstance(self.stability, bool)
            or not isinstance(self.stability, (int, float))
            or not math.isfinite(self.stability)
        ):
            raise StateInvariantError(f"stability must be a finite number; got {self.stability!r}")
        if self.stability <= 0:
            raise StateInvariantError(f"stability must be positive; got {self.stability}")
        if (
            isinstance(self.difficulty, bool)
            or not isinstance(self.difficulty, (int, float))
            or not D_MIN <= self.difficulty <= D_MAX
        ):
            raise StateInvariantError(
                f"difficulty must lie in [{D_MIN}, {D_MAX}]; got {self.difficulty!r}"
            )

        for name in ("reps", "lapses", "elapsed_days", "scheduled_days"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise StateInvariantError(f"{name} must be a non-negative integer; got {value!r}")

        if self.next_review is None:
            raise StateInvariantError("next_review must be set")
        require_aware(self.next_review, "next_review")
        if self.last_review is not None:
            require_aware(self.last_review, "last_review")
        if self.last_review is not None and self.next_review < self.last_review:
            raise StateInvariantError(
                f"next_review {self.next_review.isoformat()} precedes "
                f"last_review {self.last_review.isoformat()}"
            )

    @classmethod
    def initial(
        cls,
        now: datetime,
        owner_id: str,
        item_id: str,
        params: Optional[ParameterSet] = None
    ) -> MemoryState:
        """
        Initialize state for an item the learner has never seen.

        Stability and difficulty come from the weight vector; the first
        presentation is pencilled in one day out until a real review
        schedules it.

        Args:
            now: Creation time
            owner_id: Learner identifier
            item_id: Item identifier
            params: Parameters supplying the weights (defaults if omitted)

        Returns:
            New MemoryState in the ``new`` state
        """
        params = params or DEFAULT_PARAMETERS
        stability, difficulty = initial_memory(params)

        return cls(
            owner_id=owner_id,
            item_id=item_id,
            stability=stability,
            difficulty=difficulty,
            state=State.NEW,
            reps=0,
            lapses=0,
            elapsed_days=0,
            scheduled_days=0,
            last_review=None,
            next_review=now + timedelta(days=INITIAL_DUE_DAYS)
        )

    def retrievability_at(self, now: datetime) -> float:
        """Recall probability at ``now`` (1.0 for items never reviewed)."""
        return calculate_retrievability(
            self.stability,
            elapsed_days_since(self.last_review, now)
        )

    def is_due(self, now: datetime) -> bool:
        """True for reviewed items whose next review has arrived."""
        require_aware(now, "now")
        return self.state != State.NEW and self.next_review <= now


def initial_memory(params: ParameterSet) -> tuple[float, float]:
    """
    Starting (stability, difficulty) derived from the weight vector.

    Returns:
        (max(w[0], S_MIN), clamp(w[2], D_MIN, D_MAX))
    """
    stability = max(params.w[0], S_MIN)
    difficulty = min(max(params.w[2], D_MIN), D_MAX)
    return stability, difficulty


def calculate_retrievability(
    stability: float,
    elapsed_days: float
) -> float:
    """
    Calculate retrievability using the power forgetting curve.

    Formula: R = (1 + t / (9 * S))^-1

    Where:
    - t = days since last review
    - S = stability (in days)

    At t = S the curve passes through R = 0.9, which is what makes stability
    the interval for a 90% retention target.

    Args:
        stability: Current stability in days
        elapsed_days: Time since last review in days

    Returns:
        Retrievability between 0 and 1
    """
    if elapsed_days <= 0:
        return 1.0

    return 1.0 / (1.0 + elapsed_days / (DECAY_FACTOR * stability))


def elapsed_days_since(last_review: Optional[datetime], now: datetime) -> int:
    """
    Whole days between the last review and ``now``.

    Items never reviewed count as zero elapsed days; their creation time is
    not used as a stand-in.

    Raises:
        StateInvariantError: if ``now`` precedes ``last_review`` or is naive
    """
    require_aware(now, "now")
    if last_review is None:
        return 0

    delta = now - last_review
    if delta < timedelta(0):
        raise StateInvariantError(
            f"Review time {now.isoformat()} precedes last review {last_review.isoformat()}"
        )
    return delta.days


def require_aware(value: datetime, name: str) -> datetime:
    """
    Reject naive datetimes.

    Naive and aware values cannot be compared, and a naive value has no
    single meaning once it crosses a storage boundary.
    """
    if not isinstance(value, datetime):
        raise StateInvariantError(f"{name} must be a datetime; got {value!r}")
    if value.tzinfo is None or value.utcoffset() is None:
        raise StateInvariantError(f"{name} must be timezone-aware; got {value.isoformat()}")
    return value
