"""
Database - SQLAlchemy reference implementation of the ReviewStore

Handles all database operations for memory states and the review log.
Works against any SQLAlchemy backend (Postgres in production, SQLite in
tests).

This module handles ONLY database I/O.
Algorithm logic is handled by the scheduler module.
"""

from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import create_engine, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from recall.fsrs.constants import State
from recall.fsrs.errors import ConcurrentUpdateError, StateInvariantError
from recall.fsrs.memory_state import MemoryState
from recall.fsrs.models import Base, MemoryStateModel, ReviewLogModel
from recall.fsrs.persistence import expected_stored_reps
from recall.fsrs.review_log import ReviewLogEntry
from recall.schemas import MemoryStateRecord, ReviewLogRecord

logger = logging.getLogger(__name__)

# Engine shared across stores created without an explicit engine
_engine: Optional[Engine] = None


def get_engine() -> Engine:
    """
    Get the SQLAlchemy engine configured by DATABASE_URL.

    Uses connection pooling for server databases. The engine is created once
    and reused.

    Returns:
        SQLAlchemy Engine instance
    """
    global _engine

    if _engine is not None:
        return _engine

    from recall.config import get_database_url

    db_url = get_database_url()
    if db_url.startswith("sqlite"):
        _engine = create_engine(db_url, echo=False)
    else:
        _engine = create_engine(
            db_url,
            pool_size=5,           # Keep 5 connections open
            max_overflow=10,       # Allow up to 10 extra connections
            pool_pre_ping=True,    # Verify connections before use
            echo=False
        )
    return _engine


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise timestamps to aware UTC; naive values read back from SQLite were written as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _state_row(state: MemoryState) -> dict:
    values = MemoryStateRecord.from_state(state).model_dump()
    values["state"] = state.state.value
    values["last_review"] = _as_utc(state.last_review)
    values["next_review"] = _as_utc(state.next_review)
    return values


def _entry_row(entry: ReviewLogEntry) -> dict:
    values = ReviewLogRecord.from_entry(entry).model_dump()
    values["rating"] = int(entry.rating)
    values["state_before"] = entry.state_before.value
    values["state_after"] = entry.state_after.value
    values["reviewed_at"] = _as_utc(entry.reviewed_at)
    return values


def _to_state(row: MemoryStateModel) -> MemoryState:
    """
    Rebuild a MemoryState from its row.

    Raises:
        StateInvariantError: if the stored row is corrupt
    """
    try:
        record = MemoryStateRecord(
            owner_id=row.owner_id,
            item_id=row.item_id,
            stability=row.stability,
            difficulty=row.difficulty,
            state=row.state,
            reps=row.reps,
            lapses=row.lapses,
            elapsed_days=row.elapsed_days,
            scheduled_days=row.scheduled_days,
            last_review=_as_utc(row.last_review),
            next_review=_as_utc(row.next_review),
        )
    except ValidationError as exc:
        raise StateInvariantError(
            f"Stored state for {row.owner_id}/{row.item_id} is invalid: {exc}"
        ) from exc
    return record.to_state()


def _to_entry(row: ReviewLogModel) -> ReviewLogEntry:
    record = ReviewLogRecord(
        owner_id=row.owner_id,
        item_id=row.item_id,
        rating=row.rating,
        reviewed_at=_as_utc(row.reviewed_at),
        state_before=row.state_before,
        state_after=row.state_after,
        stability_before=row.stability_before,
        difficulty_before=row.difficulty_before,
        stability_after=row.stability_after,
        difficulty_after=row.difficulty_after,
        retrievability=row.retrievability,
        elapsed_days=row.elapsed_days,
        scheduled_days=row.scheduled_days,
        reps=row.reps,
        lapses=row.lapses,
    )
    return record.to_entry()


class SqlAlchemyReviewStore:
    """
    ReviewStore over the ``memory_state`` and ``review_log`` tables.

    Each call opens its own session, so one store can be shared between
    threads.
    """

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine or get_engine()
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def get_session(self) -> Session:
        return self._session_factory()

    # ---- Schema ----

    def init_db(self):
        """
        Initialize database schema if tables don't exist.

        Safe to call multiple times - only creates missing tables.
        """
        Base.metadata.create_all(self.engine)

    def reset_db(self):
        """
        DANGEROUS: Delete all data and recreate tables.

        All review history will be lost!
        """
        Base.metadata.drop_all(self.engine)
        logger.warning("Dropped memory_state and review_log tables")
        self.init_db()

    # ---- ReviewStore ----

    def load(self, owner_id: str, item_id: str) -> Optional[MemoryState]:
        """
        Load memory state from database.

        Returns:
            MemoryState if found, None for an item never registered
        """
        session = self.get_session()
        try:
            row = session.get(MemoryStateModel, (owner_id, item_id))
            if row is None:
                return None
            return _to_state(row)
        finally:
            session.close()

    def register(self, state: MemoryState) -> bool:
        """
        Insert a state for an item the store has never seen.

        Returns:
            True if inserted, False if the item already existed
        """
        session = self.get_session()
        try:
            if session.get(MemoryStateModel, (state.owner_id, state.item_id)) is not None:
                return False
            session.add(MemoryStateModel(**_state_row(state)))
            session.commit()
            return True
        except IntegrityError:
            # Lost an insert race; the other writer's row stands
            session.rollback()
            return False
        finally:
            session.close()

    def persist(self, state: MemoryState, entry: ReviewLogEntry) -> None:
        """
        Write the committed state and append its log entry in one transaction.

        Raises:
            ConcurrentUpdateError: if the stored reps is not ``state.reps - 1``
        """
        expected = expected_stored_reps(state)
        session = self.get_session()
        try:
            result = session.execute(
                update(MemoryStateModel)
                .where(
                    MemoryStateModel.owner_id == state.owner_id,
                    MemoryStateModel.item_id == state.item_id,
                    MemoryStateModel.reps == expected
                )
                .values(**_state_row(state))
                .execution_options(synchronize_session=False)
            )

            if result.rowcount == 0:
                exists = session.get(MemoryStateModel, (state.owner_id, state.item_id)) is not None
                if exists or expected != 0:
                    raise ConcurrentUpdateError(state.owner_id, state.item_id, expected)
                session.add(MemoryStateModel(**_state_row(state)))

            session.add(ReviewLogModel(**_entry_row(entry)))
            session.commit()
            logger.debug(
                "Committed %s/%s reps=%d state=%s next_review=%s",
                state.owner_id, state.item_id, state.reps,
                state.state.value, state.next_review.isoformat()
            )
        except ConcurrentUpdateError:
            session.rollback()
            logger.warning(
                "Rejected stale write for %s/%s (expected stored reps=%d)",
                state.owner_id, state.item_id, expected
            )
            raise
        except IntegrityError:
            session.rollback()
            logger.warning(
                "Concurrent first write for %s/%s", state.owner_id, state.item_id
            )
            raise ConcurrentUpdateError(state.owner_id, state.item_id, expected) from None
        finally:
            session.close()

    # ---- Queries ----

    def get_all_states(self, owner_id: str) -> list[MemoryState]:
        """All memory states of one learner."""
        session = self.get_session()
        try:
            rows = session.query(MemoryStateModel).filter(
                MemoryStateModel.owner_id == owner_id
            ).order_by(MemoryStateModel.item_id).all()
            return [_to_state(row) for row in rows]
        finally:
            session.close()

    def get_due_states(self, owner_id: str, now: datetime) -> list[MemoryState]:
        """
        Reviewed items whose next review has arrived.

        Returns:
            States sorted by next_review, stability, item_id
        """
        session = self.get_session()
        try:
            rows = session.query(MemoryStateModel).filter(
                MemoryStateModel.owner_id == owner_id,
                MemoryStateModel.state != State.NEW.value,
                MemoryStateModel.next_review <= _as_utc(now)
            ).order_by(
                MemoryStateModel.next_review,
                MemoryStateModel.stability,
                MemoryStateModel.item_id
            ).all()
            return [_to_state(row) for row in rows]
        finally:
            session.close()

    def get_recent_entries(self, owner_id: str, limit: int = 10) -> list[ReviewLogEntry]:
        """
        Get recent review log entries (newest first).
        """
        session = self.get_session()
        try:
            rows = session.query(ReviewLogModel).filter(
                ReviewLogModel.owner_id == owner_id
            ).order_by(
                ReviewLogModel.reviewed_at.desc(),
                ReviewLogModel.id.desc()
            ).limit(limit).all()
            return [_to_entry(row) for row in rows]
        finally:
            session.close()

    def get_item_history(self, owner_id: str, item_id: str) -> list[ReviewLogEntry]:
        """All log entries of one item, oldest first."""
        session = self.get_session()
        try:
            rows = session.query(ReviewLogModel).filter(
                ReviewLogModel.owner_id == owner_id,
                ReviewLogModel.item_id == item_id
            ).order_by(ReviewLogModel.id).all()
            return [_to_entry(row) for row in rows]
        finally:
            session.close()
