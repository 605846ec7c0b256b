"""
Shared fixtures for the scheduling engine tests.

Everything here is deterministic: a fixed clock and explicit states, so no
test depends on the wall clock.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from recall.fsrs import MemoryState, ParameterSet, State
from recall.fsrs.database import SqlAlchemyReviewStore


NOW = datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def params():
    return ParameterSet.default()


@pytest.fixture
def make_state():
    """Factory for reviewed states; ``elapsed`` sets last_review relative to NOW."""

    def _make(
        item_id="item-1",
        owner_id="learner-1",
        stability=10.0,
        difficulty=5.0,
        state=State.REVIEW,
        reps=3,
        lapses=0,
        elapsed=10,
        scheduled_days=10,
        next_review=None,
    ):
        last_review = NOW - timedelta(days=elapsed)
        return MemoryState(
            owner_id=owner_id,
            item_id=item_id,
            stability=stability,
            difficulty=difficulty,
            state=state,
            reps=reps,
            lapses=lapses,
            elapsed_days=0,
            scheduled_days=scheduled_days,
            last_review=last_review,
            next_review=next_review or last_review + timedelta(days=scheduled_days),
        )

    return _make


@pytest.fixture
def sql_store():
    """SQLAlchemy store on a shared in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    store = SqlAlchemyReviewStore(engine)
    store.init_db()
    yield store
    engine.dispose()
