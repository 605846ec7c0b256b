"""
Scheduling - host workflow around the pure scheduler

Ties the scheduler, the queue selector and a ReviewStore together.

Main workflow:
1. Learner answers an item
2. Load its state (or initialise a new one)
3. Compute the committed transition
4. Persist state and log entry
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Iterable, Optional, Tuple

from recall import queue
from recall.fsrs import scheduler
from recall.fsrs.memory_state import MemoryState
from recall.fsrs.parameters import DEFAULT_PARAMETERS, ParameterSet
from recall.fsrs.persistence import RegisteringStore, ReviewStore
from recall.fsrs.review_log import ReviewLogEntry

logger = logging.getLogger(__name__)


def review_item(
    store: ReviewStore,
    owner_id: str,
    item_id: str,
    rating,
    now: datetime,
    params: Optional[ParameterSet] = None
) -> Tuple[MemoryState, ReviewLogEntry]:
    """
    Record a review and persist the updated state.

    Args:
        store: Storage collaborator
        owner_id: Learner identifier
        item_id: Item identifier
        rating: Learner's rating, 1-4
        now: Review time
        params: Learner's parameters (defaults if omitted)

    Returns:
        Tuple of (committed_state, review_log_entry)

    Raises:
        InvalidRatingError: rating outside 1-4; nothing is persisted
        ConcurrentUpdateError: another review of the item committed first
    """
    params = params or DEFAULT_PARAMETERS

    # Rejected ratings must not touch storage
    grade = scheduler.validate_rating(rating)

    state = store.load(owner_id, item_id)
    if state is None:
        state = MemoryState.initial(now, owner_id, item_id, params)

    updated, entry = scheduler.schedule(params, state, grade, now)
    store.persist(updated, entry)

    logger.info(
        "Reviewed %s/%s: %s -> %s, rating=%s, next in %d days",
        owner_id, item_id, entry.state_before.value, entry.state_after.value,
        grade.name, updated.scheduled_days
    )
    return updated, entry


def register_items(
    store: RegisteringStore,
    owner_id: str,
    item_ids: Iterable[str],
    now: datetime,
    params: Optional[ParameterSet] = None
) -> int:
    """
    Create ``new`` states for items the learner has not encountered yet.

    Returns:
        Number of items actually created
    """
    params = params or DEFAULT_PARAMETERS
    created = 0
    for item_id in item_ids:
        if store.register(MemoryState.initial(now, owner_id, item_id, params)):
            created += 1
    return created


def build_session(
    states: Iterable[MemoryState],
    now: datetime,
    new_limit: int = 10,
    due_limit: int = 50,
    policy: Optional[queue.MixPolicy] = None
) -> list[MemoryState]:
    """
    Pick the next study batch from a snapshot of a learner's states.

    Thin wrapper over ``queue.select_batch`` with session-sized defaults;
    due items go first unless another policy is given.
    """
    policy = queue.MixPolicy(policy or queue.MixPolicy.DUE_FIRST)
    batch = queue.select_batch(states, now, new_limit, due_limit, policy)
    logger.debug("Built session of %d items (policy=%s)", len(batch), policy.value)
    return batch
