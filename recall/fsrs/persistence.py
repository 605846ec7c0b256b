"""
Persistence Layer - contract between the engine and its storage host

The scheduler never performs I/O. Hosts persist committed results through a
``ReviewStore``:

- load(owner_id, item_id) -> MemoryState or None
- persist(state, entry): write the committed state and append its log entry
  in one step

Stores that can seed unseen items also provide register(state) -> bool
(``RegisteringStore``).

Writes are compare-and-swap on ``reps``: the stored reps must equal
``state.reps - 1``, otherwise another review won the race and
ConcurrentUpdateError is raised.
"""

from __future__ import annotations
import logging
import threading
from typing import Optional, Protocol, runtime_checkable

from recall.fsrs.errors import ConcurrentUpdateError
from recall.fsrs.memory_state import MemoryState
from recall.fsrs.review_log import ReviewLogEntry

logger = logging.getLogger(__name__)


@runtime_checkable
class ReviewStore(Protocol):
    """Storage collaborator expected by the host workflow."""

    def load(self, owner_id: str, item_id: str) -> Optional[MemoryState]:
        ...

    def persist(self, state: MemoryState, entry: ReviewLogEntry) -> None:
        ...


@runtime_checkable
class RegisteringStore(ReviewStore, Protocol):
    """ReviewStore that can also seed ``new`` states ahead of the first review."""

    def register(self, state: MemoryState) -> bool:
        ...


def expected_stored_reps(state: MemoryState) -> int:
    """Version a committed state must replace."""
    return state.reps - 1


class InMemoryReviewStore:
    """
    Process-local ReviewStore backed by dicts.

    Suitable for tests and single-process hosts. A lock serialises the
    compare-and-swap so concurrent writers see the same guarantees as the
    SQL store.
    """

    def __init__(self):
        self._states: dict[tuple[str, str], MemoryState] = {}
        self._log: list[ReviewLogEntry] = []
        self._lock = threading.Lock()

    def load(self, owner_id: str, item_id: str) -> Optional[MemoryState]:
        with self._lock:
            return self._states.get((owner_id, item_id))

    def register(self, state: MemoryState) -> bool:
        """Store a brand-new state if the item is unknown. Returns True if stored."""
        key = (state.owner_id, state.item_id)
        with self._lock:
            if key in self._states:
                return False
            self._states[key] = state
            return True

    def persist(self, state: MemoryState, entry: ReviewLogEntry) -> None:
        key = (state.owner_id, state.item_id)
        expected = expected_stored_reps(state)
        with self._lock:
            current = self._states.get(key)
            stored_reps = current.reps if current is not None else 0
            if stored_reps != expected:
                logger.warning(
                    "Rejected stale write for %s/%s (stored reps=%d, expected %d)",
                    state.owner_id, state.item_id, stored_reps, expected
                )
                raise ConcurrentUpdateError(state.owner_id, state.item_id, expected)
            self._states[key] = state
            self._log.append(entry)

    def states(self, owner_id: str) -> list[MemoryState]:
        with self._lock:
            return [s for (owner, _), s in self._states.items() if owner == owner_id]

    def entries(self, owner_id: str, item_id: Optional[str] = None) -> list[ReviewLogEntry]:
        with self._lock:
            return [
                e for e in self._log
                if e.owner_id == owner_id and (item_id is None or e.item_id == item_id)
            ]
