"""
Memory Updates

Implements the stability, difficulty and interval formulas applied at every
committed review of an item past its first exposure.

Key principles:
- Successful recall at low retrievability produces the largest stability gains
- Failure resets stability through a separate forget branch
- Difficulty reverts towards its initial value so it cannot drift to an extreme
"""

from __future__ import annotations
import math

from recall.fsrs.constants import (
    BASE_RETENTION,
    D_MAX,
    D_MIN,
    S_MIN,
    Rating,
)
from recall.fsrs.errors import StateInvariantError
from recall.fsrs.parameters import ParameterSet


def clamp_difficulty(difficulty: float) -> float:
    return max(D_MIN, min(D_MAX, difficulty))


def _finite_stability(value: float) -> float:
    if not math.isfinite(value):
        raise StateInvariantError(f"Stability update is not representable: {value!r}")
    return max(S_MIN, value)


def next_difficulty(
    params: ParameterSet,
    difficulty: float,
    rating: Rating
) -> float:
    """
    Update difficulty based on retrieval outcome.

    Formula:
        D_new = clip(
            D + (w4 - (rating - 3) * w5) + w6 * (D_init - D),
            min=1,
            max=10
        )

    Again and Hard raise difficulty, Easy lowers it. The last term pulls D
    back towards the initial difficulty w2.

    Args:
        params: Parameter set supplying the weights
        difficulty: Current difficulty
        rating: Learner's rating

    Returns:
        New difficulty value (clipped to [1, 10])
    """
    w = params.w
    initial = clamp_difficulty(w[2])
    step = w[4] - (int(rating) - 3) * w[5]
    reversion = w[6] * (initial - difficulty)
    return clamp_difficulty(difficulty + step + reversion)


def next_recall_stability(
    params: ParameterSet,
    difficulty: float,
    stability: float,
    retrievability: float,
    rating: Rating
) -> float:
    """
    Update stability after successful retrieval (Hard/Good/Easy).

    Formula:
        S_new = S * (1 + e^w6 * (11 - D) * S^w7 * (e^(w8 * (1 - R)) - 1)
                     * hard_penalty * easy_bonus)

    Where hard_penalty = w13 for Hard and easy_bonus = w14 for Easy (1
    otherwise).

    Returns:
        New stability value (never below S_MIN)

    Raises:
        StateInvariantError: if the weights push the result out of float range
    """
    if rating == Rating.AGAIN:
        raise ValueError("Use next_forget_stability for AGAIN ratings")

    w = params.w
    hard_penalty = w[13] if rating == Rating.HARD else 1.0
    easy_bonus = w[14] if rating == Rating.EASY else 1.0

    try:
        growth = (
            math.exp(w[6])
            * (11.0 - difficulty)
            * math.pow(stability, w[7])
            * (math.exp(w[8] * (1.0 - retrievability)) - 1.0)
            * hard_penalty
            * easy_bonus
        )
    except OverflowError as exc:
        raise StateInvariantError(f"Stability update overflowed: {exc}") from exc
    return _finite_stability(stability * (1.0 + growth))


def next_forget_stability(
    params: ParameterSet,
    difficulty: float,
    stability: float,
    retrievability: float
) -> float:
    """
    Update stability after failed retrieval (Again).

    Formula:
        S_new = w9 * D^w10 * S^w11 * e^(w12 * (1 - R))

    Returns:
        New stability value (never below S_MIN)

    Raises:
        StateInvariantError: if the weights push the result out of float range
    """
    w = params.w
    try:
        new_stability = (
            w[9]
            * math.pow(difficulty, w[10])
            * math.pow(stability, w[11])
            * math.exp(w[12] * (1.0 - retrievability))
        )
    except OverflowError as exc:
        raise StateInvariantError(f"Stability update overflowed: {exc}") from exc
    return _finite_stability(new_stability)


def next_interval(params: ParameterSet, stability: float) -> int:
    """
    Days until retrievability decays to the requested retention.

    Formula:
        I = round(S * (ln(request_retention) / ln(0.9)))

    Halves round up. Clipped to [1, maximum_interval]. Non-decreasing in S
    for a fixed retention.
    """
    # Ratio first: at retention 0.9 it is exactly 1.0, so I == round(S)
    factor = math.log(params.request_retention) / math.log(BASE_RETENTION)
    raw = stability * factor
    if not raw < params.maximum_interval:
        return params.maximum_interval
    return max(1, math.floor(raw + 0.5))
