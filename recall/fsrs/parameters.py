"""
Parameter Set - validated memory-model configuration.

A ParameterSet bundles the target retention, the interval cap and the weight
vector. It is built once, validated eagerly and never mutated; per-learner
personalisation produces a new instance via ``with_overrides``.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional
import math

from recall.fsrs.constants import (
    DEFAULT_MAXIMUM_INTERVAL,
    DEFAULT_REQUEST_RETENTION,
    DEFAULT_WEIGHTS,
    WEIGHTS_LENGTH,
)
from recall.fsrs.errors import ConfigError


@dataclass(frozen=True)
class ParameterSet:
    """
    Immutable scheduling configuration.

    Attributes:
        request_retention: Target recall probability at review time, in (0, 1)
        maximum_interval: Longest interval ever scheduled, in days
        w: Weight vector of the memory model
    """
    request_retention: float = DEFAULT_REQUEST_RETENTION
    maximum_interval: int = DEFAULT_MAXIMUM_INTERVAL
    w: tuple = field(default=DEFAULT_WEIGHTS)

    def __post_init__(self):
        retention = self.request_retention
        if isinstance(retention, bool) or not isinstance(retention, (int, float)):
            raise ConfigError(f"request_retention must be a number; got {retention!r}")
        if not math.isfinite(retention) or not 0.0 < retention < 1.0:
            raise ConfigError(
                f"request_retention must lie strictly between 0 and 1; got {retention!r}"
            )

        interval = self.maximum_interval
        if isinstance(interval, bool) or not isinstance(interval, int):
            raise ConfigError(f"maximum_interval must be an integer; got {interval!r}")
        if interval < 1:
            raise ConfigError(f"maximum_interval must be positive; got {interval}")

        weights = _coerce_weights(self.w)
        # Frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "request_retention", float(retention))
        object.__setattr__(self, "w", weights)

    @classmethod
    def construct(
        cls,
        retention: float,
        max_interval: int,
        weights: Iterable[float],
    ) -> ParameterSet:
        """
        Build a validated ParameterSet.

        Raises:
            ConfigError: if any value is out of range or non-finite
        """
        return cls(
            request_retention=retention,
            maximum_interval=max_interval,
            w=weights,
        )

    @classmethod
    def default(cls) -> ParameterSet:
        """Defaults for learners with no personalisation data yet."""
        return cls()

    def with_overrides(
        self,
        retention: Optional[float] = None,
        max_interval: Optional[int] = None,
        weights: Optional[Iterable[float]] = None,
    ) -> ParameterSet:
        """Return a validated copy with the given fields replaced."""
        changes = {}
        if retention is not None:
            changes["request_retention"] = retention
        if max_interval is not None:
            changes["maximum_interval"] = max_interval
        if weights is not None:
            changes["w"] = weights
        return replace(self, **changes)


def _coerce_weights(weights) -> tuple:
    if weights is None or isinstance(weights, (str, bytes)):
        raise ConfigError(f"weights must be a sequence of numbers; got {weights!r}")
    try:
        values = tuple(weights)
    except TypeError:
        raise ConfigError(f"weights must be a sequence of numbers; got {weights!r}") from None

    if len(values) != WEIGHTS_LENGTH:
        raise ConfigError(
            f"weights must contain exactly {WEIGHTS_LENGTH} values; got {len(values)}"
        )

    result = []
    for index, value in enumerate(values):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"w[{index}] must be a number; got {value!r}")
        if not math.isfinite(value):
            raise ConfigError(f"w[{index}] must be finite; got {value!r}")
        result.append(float(value))
    return tuple(result)


DEFAULT_PARAMETERS = ParameterSet()
