"""Bounded identity set with circular-buffer eviction."""

import threading
from typing import Generic, Hashable, TypeVar

from loguru import logger

T = TypeVar("T", bound=Hashable)

DEFAULT_CAPACITY = 65535


class BoundedIdentitySet(Generic[T]):
    """
    Capacity-limited set that forgets the oldest arrivals first.

    A ring of ``capacity`` slots records arrival order and a set answers
    membership in O(1). Duplicate arrivals take a slot as well, so eviction
    follows arrival order rather than distinct identities. Once the ring is
    full every arrival overwrites the slot under the cursor and drops that
    slot's previous occupant from the set.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._slots: list[T] = []
        self._cursor = 0
        self._members: set[T] = set()
        self._lock = threading.Lock()

    def admit(self, item: T) -> bool:
        """
        Record an arrival.
        Returns True if the item was not resident (newly admitted), False if it is a duplicate.
        """
        with self._lock:
            if len(self._slots) < self.capacity:
                self._slots.append(item)
            else:
                oldest = self._slots[self._cursor]
                self._slots[self._cursor] = item
                # An earlier duplicate arrival may already have evicted it
                self._members.discard(oldest)
                logger.debug(f"Identity limit reached, evicted oldest entry {oldest!r}")
                self._cursor += 1
                if self._cursor >= self.capacity:
                    self._cursor = 0

            if item in self._members:
                return False
            self._members.add(item)
            return True

    @property
    def slots_used(self) -> int:
        """Number of ring slots filled so far."""
        with self._lock:
            return len(self._slots)

    def __contains__(self, item: T) -> bool:
        with self._lock:
            return item in self._members

    def __len__(self) -> int:
        with self._lock:
            return len(self._members)

    def __repr__(self) -> str:
        with self._lock:
            return f"BoundedIdentitySet(capacity={self.capacity}, size={len(self._members)})"
