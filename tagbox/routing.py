"""A bucketed hash table that tracks in-flight events by their id."""

from __future__ import annotations

import threading
from typing import Any, Iterator, Protocol

TABLE_SIZE = 64
TABLE_MASK = TABLE_SIZE - 1
BUCKET_CAPACITY = 4
TOTAL_CAPACITY = TABLE_SIZE * BUCKET_CAPACITY

_MASK64 = 0xFFFFFFFFFFFFFFFF


class Routed(Protocol):
    event_id: int


def hash_event_id(event_id: int) -> int:
    """Mix a 64-bit event id into a well-spread 64-bit hash."""
    value = event_id & _MASK64
    value ^= value >> 33
    value = (value * 0xFF51AFD7ED558CCD) & _MASK64
    value ^= value >> 33
    value = (value * 0xC4CEB9FE1A85EC53) & _MASK64
    value ^= value >> 33
    return value


def routing_index(event_id: int) -> int:
    """Return the bucket that holds ``event_id``."""
    return hash_event_id(event_id) & TABLE_MASK


class _Bucket:
    __slots__ = ("lock", "slots")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.slots: list[Any] = [None] * BUCKET_CAPACITY

    @property
    def count(self) -> int:
        return sum(slot is not None for slot in self.slots)


class RoutingTable:
    """Fixed-capacity table of entries keyed by ``event_id``.

    Each bucket holds at most four entries; an insert into a full bucket
    fails and is counted as a collision.
    """

    def __init__(self) -> None:
        self._buckets = [_Bucket() for _ in range(TABLE_SIZE)]
        self._counter_lock = threading.Lock()
        self.total_entries = 0
        self.collisions = 0

    def insert(self, entry: Routed) -> bool:
        """Store ``entry``; return False if its bucket is already full."""
        if entry.event_id == 0:
            raise ValueError("event id 0 marks an empty slot")
        bucket = self._buckets[routing_index(entry.event_id)]
        with bucket.lock:
            for position, slot in enumerate(bucket.slots):
                if slot is None:
                    bucket.slots[position] = entry
                    break
            else:
                with self._counter_lock:
                    self.collisions += 1
                return False
        with self._counter_lock:
            self.total_entries += 1
        return True

    def lookup(self, event_id: int) -> Any | None:
        """Return the entry for ``event_id``, or None if absent."""
        bucket = self._buckets[routing_index(event_id)]
        with bucket.lock:
            return next(
                (
                    slot
                    for slot in bucket.slots
                    if slot is not None and slot.event_id == event_id
                ),
                None,
            )

    def remove(self, event_id: int) -> bool:
        """Drop the entry for ``event_id``; return whether one was found."""
        bucket = self._buckets[routing_index(event_id)]
        with bucket.lock:
            for position, slot in enumerate(bucket.slots):
                if slot is not None and slot.event_id == event_id:
                    bucket.slots[position] = None
                    break
            else:
                return False
        with self._counter_lock:
            self.total_entries -= 1
        return True

    def is_full(self) -> bool:
        """Return whether every slot in the table is taken."""
        return self.total_entries >= TOTAL_CAPACITY

    def utilization(self) -> int:
        """Return the share of occupied slots as a whole percentage."""
        return self.total_entries * 100 // TOTAL_CAPACITY

    def __len__(self) -> int:
        return self.total_entries

    def __contains__(self, event_id: object) -> bool:
        return isinstance(event_id, int) and self.lookup(event_id) is not None

    def __iter__(self) -> Iterator[Any]:
        """Yield stored entries bucket by bucket, in slot order."""
        for bucket in self._buckets:
            with bucket.lock:
                entries = [slot for slot in bucket.slots if slot is not None]
            yield from entries