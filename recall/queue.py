"""
Queue selector for picking the items of a study session.

Partitions memory states into two pools and draws a bounded batch from them:
1. Due pool: reviewed items whose next review has arrived
2. New pool: items never presented

Ordering is fully deterministic (no shuffling) so the same snapshot always
yields the same batch.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, TypeVar

from recall.fsrs.constants import State
from recall.fsrs.memory_state import MemoryState, require_aware


T = TypeVar("T")


class MixPolicy(str, Enum):
    """How due and new items are combined in a batch."""
    DUE_FIRST = "due_first"
    NEW_FIRST = "new_first"
    INTERLEAVE = "interleave"


@dataclass(frozen=True)
class QueuePartition:
    """Due and new pools, each already in presentation order."""
    due: list[MemoryState]
    new: list[MemoryState]


def _due_order(state: MemoryState):
    return (state.next_review, state.stability, state.item_id)


def _new_order(state: MemoryState):
    return (state.next_review, state.item_id)


def partition(states: Iterable[MemoryState], now: datetime) -> QueuePartition:
    """
    Split states into ordered due and new pools (no DB calls).

    Due items are sorted by next review, then stability (weakest first), then
    item_id. New items are sorted by their placeholder next review, then
    item_id. Items that are neither new nor due are left out.
    """
    require_aware(now, "now")
    due: list[MemoryState] = []
    new: list[MemoryState] = []
    for state in states:
        if state.state == State.NEW:
            new.append(state)
        elif state.next_review <= now:
            due.append(state)

    due.sort(key=_due_order)
    new.sort(key=_new_order)
    return QueuePartition(due=due, new=new)


def interleave(first: list[T], second: list[T]) -> list[T]:
    """
    Merge two lists proportionally, keeping each list's internal order.

    At every step the list that has consumed the smaller share of its items
    goes next; ties go to ``first``.
    """
    merged: list[T] = []
    i = j = 0
    while i < len(first) or j < len(second):
        if j >= len(second):
            take_first = True
        elif i >= len(first):
            take_first = False
        else:
            # i / len(first) <= j / len(second), cross-multiplied
            take_first = i * len(second) <= j * len(first)

        if take_first:
            merged.append(first[i])
            i += 1
        else:
            merged.append(second[j])
            j += 1
    return merged


def select_batch(
    states: Iterable[MemoryState],
    now: datetime,
    new_limit: int,
    due_limit: int,
    policy: MixPolicy = MixPolicy.DUE_FIRST
) -> list[MemoryState]:
    """
    Select the next batch of items to present.

    Args:
        states: Snapshot of the learner's memory states
        now: Current time
        new_limit: Maximum number of new items in the batch
        due_limit: Maximum number of due items in the batch
        policy: How the two pools are combined

    Returns:
        At most ``due_limit + new_limit`` states in presentation order

    Raises:
        ValueError: if a limit is negative
    """
    if new_limit < 0 or due_limit < 0:
        raise ValueError(f"Limits must be non-negative; got new={new_limit}, due={due_limit}")

    pools = partition(states, now)
    due = pools.due[:due_limit]
    new = pools.new[:new_limit]

    policy = MixPolicy(policy)
    if policy == MixPolicy.DUE_FIRST:
        return due + new
    if policy == MixPolicy.NEW_FIRST:
        return new + due
    return interleave(due, new)
