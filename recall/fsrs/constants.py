"""
FSRS Constants and Parameters

All fixed values for the scheduling engine in one place: rating and state
enums, bounds on the memory variables, and the default weight vector.
"""

from enum import Enum, IntEnum


# ---- Ratings ----

class Rating(IntEnum):
    """Learner's self-reported recall quality."""
    AGAIN = 1   # Retrieval failed
    HARD = 2    # Retrieved with high effort
    GOOD = 3    # Retrieved normally
    EASY = 4    # Retrieved fluently


# ---- Learning States ----

class State(str, Enum):
    """Where an item sits in the learning cycle."""
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


# ---- Bounds ----

S_MIN = 0.1      # Stability floor (days)
D_MIN = 1.0      # Minimum difficulty
D_MAX = 10.0     # Maximum difficulty

# Retention the forgetting curve is calibrated against: R(S) = 0.9
BASE_RETENTION = 0.9
# Scale of the forgetting curve R = (1 + t / (FACTOR * S))^-1
DECAY_FACTOR = 9.0


# ---- Defaults ----

DEFAULT_REQUEST_RETENTION = 0.9
DEFAULT_MAXIMUM_INTERVAL = 36500  # 100 years

WEIGHTS_LENGTH = 19
WEIGHTS_VERSION = "v1"

# Index roles:
#   0 initial stability       2 initial difficulty
#   4 difficulty bias         5 difficulty step per rating
#   6 mean reversion / recall growth exponent
#   7 stability decay         8 retrievability gain
#   9-12 forget branch        13 hard penalty        14 easy bonus
#   1, 3, 15-18 reserved
DEFAULT_WEIGHTS = (
    1.0,
    1.0,
    5.0,
    -0.5,
    0.0,
    0.5,
    0.2,
    -0.12,
    0.8,
    2.0,
    -0.2,
    0.2,
    1.0,
    0.3,
    2.0,
    0.0,
    0.0,
    0.0,
    0.0,
)


# ---- Fixed first-exposure schedules (days) ----
# Easy is absent: it graduates straight to the continuous model.

NEW_ITEM_SCHEDULE = {
    Rating.AGAIN: (State.LEARNING, 1),
    Rating.HARD: (State.LEARNING, 6),
    Rating.GOOD: (State.REVIEW, 10),
}

# Placeholder gap between creating an item and its first presentation
INITIAL_DUE_DAYS = 1
