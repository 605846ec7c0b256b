"""
Unit tests for MemoryState and the forgetting curve.
"""

import dataclasses
from datetime import timedelta

import pytest

from recall.fsrs import (
    DEFAULT_WEIGHTS,
    MemoryState,
    ParameterSet,
    State,
    StateInvariantError,
    calculate_retrievability,
    elapsed_days_since,
)


class TestInitial:
    """MemoryState.initial"""

    def test_initial_defaults(self, now, params):
        state = MemoryState.initial(now, "learner-1", "item-1", params)

        assert state.state == State.NEW
        assert state.stability == max(DEFAULT_WEIGHTS[0], 0.1)
        assert state.difficulty == DEFAULT_WEIGHTS[2]
        assert state.reps == 0
        assert state.lapses == 0
        assert state.elapsed_days == 0
        assert state.scheduled_days == 0
        assert state.last_review is None
        assert state.next_review == now + timedelta(days=1)

    def test_initial_without_params_uses_defaults(self, now, params):
        assert MemoryState.initial(now, "a", "b") == MemoryState.initial(now, "a", "b", params)

    def test_initial_stability_floored(self, now):
        weights = list(DEFAULT_WEIGHTS)
        weights[0] = 0.01
        params = ParameterSet.construct(0.9, 36500, weights)
        assert MemoryState.initial(now, "a", "b", params).stability == 0.1

    @pytest.mark.parametrize("w2, expected", [(-3.0, 1.0), (42.0, 10.0), (7.5, 7.5)])
    def test_initial_difficulty_clamped(self, now, w2, expected):
        weights = list(DEFAULT_WEIGHTS)
        weights[2] = w2
        params = ParameterSet.construct(0.9, 36500, weights)
        assert MemoryState.initial(now, "a", "b", params).difficulty == expected

    def test_is_immutable(self, now):
        state = MemoryState.initial(now, "a", "b")
        with pytest.raises(dataclasses.FrozenInstanceError):
            state.reps = 5


class TestInvariants:
    """Invalid states are rejected with StateInvariantError"""

    def test_non_positive_stability(self, make_state):
        with pytest.raises(StateInvariantError):
            make_state(stability=0.0)

    @pytest.mark.parametrize("difficulty", [0.5, 10.5])
    def test_difficulty_out_of_range(self, make_state, difficulty):
        with pytest.raises(StateInvariantError):
            make_state(difficulty=difficulty)

    @pytest.mark.parametrize("field", ["reps", "lapses"])
    def test_negative_counters(self, make_state, field):
        with pytest.raises(StateInvariantError):
            make_state(**{field: -1})

    def test_next_review_before_last_review(self, make_state, now):
        with pytest.raises(StateInvariantError):
            make_state(elapsed=2, next_review=now - timedelta(days=5))

    def test_unknown_state(self, make_state):
        with pytest.raises(StateInvariantError):
            make_state(state="mastered")

    def test_state_string_is_coerced(self, make_state):
        assert make_state(state="relearning").state == State.RELEARNING


class TestRetrievability:
    """Forgetting curve R = (1 + t / 9S)^-1"""

    def test_no_elapsed_time_is_full_recall(self):
        assert calculate_retrievability(5.0, 0) == 1.0

    def test_ninety_percent_at_stability(self):
        assert calculate_retrievability(10.0, 10) == pytest.approx(0.9)

    def test_decays_with_time(self):
        values = [calculate_retrievability(4.0, t) for t in range(0, 30, 3)]
        assert values == sorted(values, reverse=True)

    def test_retrievability_at_uses_last_review(self, make_state, now):
        state = make_state(stability=10.0, elapsed=10)
        assert state.retrievability_at(now) == pytest.approx(0.9)

    def test_new_item_has_full_recall(self, now):
        assert MemoryState.initial(now, "a", "b").retrievability_at(now + timedelta(days=30)) == 1.0


class TestElapsedDays:

    def test_never_reviewed_is_zero(self, now):
        assert elapsed_days_since(None, now) == 0

    def test_whole_days(self, now):
        assert elapsed_days_since(now - timedelta(days=3, hours=20), now) == 3

    def test_review_time_before_last_review(self, now):
        with pytest.raises(StateInvariantError):
            elapsed_days_since(now + timedelta(hours=1), now)

    def test_is_due(self, make_state, now):
        assert make_state(elapsed=10, scheduled_days=10).is_due(now)
        assert not make_state(elapsed=1, scheduled_days=10).is_due(now)
        assert not MemoryState.initial(now - timedelta(days=30), "a", "b").is_due(now)


class TestTypeChecks:
    """Bools and naive timestamps are rejected"""

    @pytest.mark.parametrize("field", ["stability", "difficulty"])
    def test_bool_memory_values(self, make_state, field):
        with pytest.raises(StateInvariantError):
            make_state(**{field: True})

    def test_naive_initial_time(self, now):
        with pytest.raises(StateInvariantError):
            MemoryState.initial(now.replace(tzinfo=None), "a", "b")

    def test_naive_next_review(self, make_state, now):
        with pytest.raises(StateInvariantError):
            make_state(next_review=now.replace(tzinfo=None))

    def test_naive_now_for_elapsed_days(self, now):
        with pytest.raises(StateInvariantError):
            elapsed_days_since(now - timedelta(days=2), now.replace(tzinfo=None))

    def test_naive_now_for_due_check(self, make_state, now):
        with pytest.raises(StateInvariantError):
            make_state().is_due(now.replace(tzinfo=None))
