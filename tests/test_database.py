"""
Tests for the SQLAlchemy review store (in-memory SQLite).
"""

from datetime import timedelta, timezone

import pytest

from recall.fsrs import (
    ConcurrentUpdateError,
    MemoryState,
    Rating,
    State,
    StateInvariantError,
    schedule,
)
from recall.fsrs.models import MemoryStateModel, ReviewLogModel
from recall.fsrs.persistence import ReviewStore


class TestSchema:

    def test_store_satisfies_protocol(self, sql_store):
        assert isinstance(sql_store, ReviewStore)

    def test_init_db_is_idempotent(self, sql_store):
        sql_store.init_db()
        assert sql_store.load("learner-1", "missing") is None

    def test_reset_db_clears_data(self, sql_store, now):
        sql_store.register(MemoryState.initial(now, "learner-1", "item-1"))
        sql_store.reset_db()
        assert sql_store.get_all_states("learner-1") == []


class TestLoadAndRegister:

    def test_register_then_load_round_trip(self, sql_store, now):
        state = MemoryState.initial(now, "learner-1", "item-1")
        assert sql_store.register(state) is True
        assert sql_store.load("learner-1", "item-1") == state

    def test_register_existing_item_is_noop(self, sql_store, now):
        state = MemoryState.initial(now, "learner-1", "item-1")
        sql_store.register(state)
        assert sql_store.register(MemoryState.initial(now + timedelta(days=3), "learner-1", "item-1")) is False
        assert sql_store.load("learner-1", "item-1") == state

    def test_loaded_timestamps_are_utc_aware(self, sql_store, params, now, make_state):
        state, entry = schedule(params, make_state(reps=0, state=State.LEARNING), Rating.GOOD, now)
        sql_store.persist(state, entry)

        loaded = sql_store.load(state.owner_id, state.item_id)
        assert loaded == state
        assert loaded.last_review.tzinfo is not None
        assert loaded.next_review.utcoffset() == timedelta(0)

    def test_non_utc_timestamps_compare_equal(self, sql_store, now):
        local = timezone(timedelta(hours=2))
        state = MemoryState.initial(now.astimezone(local), "learner-1", "item-1")
        sql_store.register(state)
        assert sql_store.load("learner-1", "item-1") == state

    def test_naive_time_is_rejected_before_storage(self, sql_store, params, now):
        naive = now.replace(tzinfo=None)
        with pytest.raises(StateInvariantError):
            sql_store.register(MemoryState.initial(naive, "learner-1", "item-1"))

        state = MemoryState.initial(now, "learner-1", "item-1")
        sql_store.register(state)
        with pytest.raises(StateInvariantError):
            schedule(params, sql_store.load("learner-1", "item-1"), Rating.GOOD, naive)
        assert sql_store.load("learner-1", "item-1") == state

    def test_corrupt_row_raises_state_invariant_error(self, sql_store, now):
        session = sql_store.get_session()
        try:
            session.add(MemoryStateModel(
                owner_id="learner-1", item_id="broken", stability=-2.0, difficulty=5.0,
                state="review", reps=1, lapses=0, elapsed_days=0, scheduled_days=1,
                last_review=now, next_review=now + timedelta(days=1),
            ))
            session.commit()
        finally:
            session.close()

        with pytest.raises(StateInvariantError):
            sql_store.load("learner-1", "broken")


class TestPersist:

    def test_persist_updates_state_and_appends_log(self, sql_store, params, now):
        state = MemoryState.initial(now, "learner-1", "item-1", params)
        sql_store.register(state)

        first, first_entry = schedule(params, state, Rating.GOOD, now)
        sql_store.persist(first, first_entry)
        later = now + timedelta(days=first.scheduled_days)
        second, second_entry = schedule(params, first, Rating.AGAIN, later)
        sql_store.persist(second, second_entry)

        assert sql_store.load("learner-1", "item-1") == second
        assert sql_store.get_item_history("learner-1", "item-1") == [first_entry, second_entry]

    def test_persist_inserts_unregistered_item(self, sql_store, params, now):
        state, entry = schedule(params, MemoryState.initial(now, "learner-1", "fresh"), Rating.HARD, now)
        sql_store.persist(state, entry)
        assert sql_store.load("learner-1", "fresh") == state

    def test_stale_write_rejected(self, sql_store, params, now):
        base = MemoryState.initial(now, "learner-1", "item-1", params)
        sql_store.register(base)

        # Two sessions read the same version and both try to commit
        winner, winner_entry = schedule(params, base, Rating.GOOD, now)
        loser, loser_entry = schedule(params, base, Rating.AGAIN, now + timedelta(minutes=1))
        sql_store.persist(winner, winner_entry)

        with pytest.raises(ConcurrentUpdateError):
            sql_store.persist(loser, loser_entry)

        assert sql_store.load("learner-1", "item-1") == winner
        assert sql_store.get_item_history("learner-1", "item-1") == [winner_entry]

    def test_concurrent_first_write_rejected(self, sql_store, params, now):
        base = MemoryState.initial(now, "learner-1", "item-1", params)
        winner, winner_entry = schedule(params, base, Rating.GOOD, now)
        loser, loser_entry = schedule(params, base, Rating.EASY, now)

        sql_store.persist(winner, winner_entry)
        with pytest.raises(ConcurrentUpdateError):
            sql_store.persist(loser, loser_entry)

    def test_log_rows_are_append_only(self, sql_store, params, now, make_state):
        state = make_state(reps=0, state=State.LEARNING)
        for offset in range(3):
            state, entry = schedule(params, state, Rating.GOOD, now + timedelta(days=30 * offset))
            sql_store.persist(state, entry)

        session = sql_store.get_session()
        try:
            assert session.query(ReviewLogModel).count() == 3
        finally:
            session.close()


class TestQueries:

    def test_get_due_states(self, sql_store, params, now, make_state):
        due = make_state(item_id="due", reps=0, elapsed=20)
        due_state, due_entry = schedule(params, due, Rating.GOOD, now - timedelta(days=20))
        sql_store.persist(due_state, due_entry)

        fresh_state, fresh_entry = schedule(params, make_state(item_id="fresh", reps=0), Rating.EASY, now)
        sql_store.persist(fresh_state, fresh_entry)

        sql_store.register(MemoryState.initial(now - timedelta(days=9), "learner-1", "never-seen"))
        sql_store.register(MemoryState.initial(now - timedelta(days=9), "learner-2", "other"))

        due_items = sql_store.get_due_states("learner-1", now)
        assert [s.item_id for s in due_items] == ["due"]

    def test_get_all_states_scoped_by_owner(self, sql_store, now):
        for owner, item in [("learner-1", "b"), ("learner-1", "a"), ("learner-2", "c")]:
            sql_store.register(MemoryState.initial(now, owner, item))
        assert [s.item_id for s in sql_store.get_all_states("learner-1")] == ["a", "b"]

    def test_get_recent_entries_newest_first(self, sql_store, params, now):
        state = MemoryState.initial(now, "learner-1", "item-1", params)
        entries = []
        for offset in range(4):
            state, entry = schedule(params, state, Rating.GOOD, now + timedelta(days=40 * offset))
            sql_store.persist(state, entry)
            entries.append(entry)

        recent = sql_store.get_recent_entries("learner-1", limit=2)
        assert recent == [entries[3], entries[2]]
