"""
SQLAlchemy ORM Models for the reference review store

Defines MemoryStateModel and ReviewLogModel. Columns mirror MemoryState and
ReviewLogEntry field for field.
"""

from sqlalchemy import Column, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class MemoryStateModel(Base):
    """
    Persistent memory state for a single item (owner_id + item_id).

    ``reps`` doubles as the row version: every committed review bumps it by
    one, and writers only update the row whose reps they read.
    """
    __tablename__ = 'memory_state'

    # Primary key: composite of owner_id and item_id
    owner_id = Column(String(255), primary_key=True, nullable=False)
    item_id = Column(String(255), primary_key=True, nullable=False)

    # Memory model
    stability = Column(Float, nullable=False)
    difficulty = Column(Float, nullable=False)
    state = Column(String(20), nullable=False)

    # Counters
    reps = Column(Integer, nullable=False, default=0)
    lapses = Column(Integer, nullable=False, default=0)

    # Scheduling
    elapsed_days = Column(Integer, nullable=False, default=0)
    scheduled_days = Column(Integer, nullable=False, default=0)
    last_review = Column(DateTime(timezone=True), nullable=True)
    next_review = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('idx_memory_state_due', 'owner_id', 'next_review'),
    )

    def __repr__(self):
        return f"<MemoryStateModel({self.owner_id}, {self.item_id}, {self.state}, reps={self.reps})>"


class ReviewLogModel(Base):
    """
    Append-only log entry for a single committed review.
    """
    __tablename__ = 'review_log'

    # Primary key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Item identifiers
    owner_id = Column(String(255), nullable=False)
    item_id = Column(String(255), nullable=False)

    # Timing and rating
    reviewed_at = Column(DateTime(timezone=True), nullable=False)
    rating = Column(Integer, nullable=False)  # 1=AGAIN, 2=HARD, 3=GOOD, 4=EASY

    # Transition
    state_before = Column(String(20), nullable=False)
    state_after = Column(String(20), nullable=False)

    # Memory model before/after
    stability_before = Column(Float, nullable=False)
    difficulty_before = Column(Float, nullable=False)
    stability_after = Column(Float, nullable=False)
    difficulty_after = Column(Float, nullable=False)
    retrievability = Column(Float, nullable=True)

    # Scheduling outcome
    elapsed_days = Column(Integer, nullable=False)
    scheduled_days = Column(Integer, nullable=False)
    reps = Column(Integer, nullable=False)
    lapses = Column(Integer, nullable=False)

    __table_args__ = (
        Index('idx_review_log_item', 'owner_id', 'item_id'),
        Index('idx_review_log_reviewed_at', 'reviewed_at'),
    )

    def __repr__(self):
        return f"<ReviewLogModel(id={self.id}, {self.owner_id}/{self.item_id}, rating={self.rating})>"
