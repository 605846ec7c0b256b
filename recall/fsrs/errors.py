"""
Typed failures raised by the scheduling engine.

All of them derive from ``ValueError``: each one means the caller handed the
engine something it cannot use, and none of them is retried internally.
"""


class SchedulingError(ValueError):
    """Base class for every engine failure."""


class ConfigError(SchedulingError):
    """A ParameterSet could not be built from the supplied values."""


class InvalidRatingError(SchedulingError):
    """A rating outside Again/Hard/Good/Easy was submitted."""

    def __init__(self, rating):
        super().__init__(f"Rating must be one of 1, 2, 3, 4; got {rating!r}")
        self.rating = rating


class StateInvariantError(SchedulingError):
    """A MemoryState violates its invariants (usually a storage bug upstream)."""


class ConcurrentUpdateError(SchedulingError):
    """Another writer committed a newer version of the same item first."""

    def __init__(self, owner_id: str, item_id: str, expected_reps: int):
        super().__init__(
            f"Item {owner_id}/{item_id} changed concurrently "
            f"(expected stored reps={expected_reps})"
        )
        self.owner_id = owner_id
        self.item_id = item_id
        self.expected_reps = expected_reps
