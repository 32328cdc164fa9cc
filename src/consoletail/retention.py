"""Bounded retention buffer for the most recent records."""

import threading
from collections import deque
from typing import Deque, Generic, Iterable, Iterator, TypeVar

T = TypeVar("T")

# Observed capacities for the different consumers
ROLLING_CAPACITY = 2000
INTERNAL_LOG_CAPACITY = 500


class RetentionBuffer(Generic[T]):
    """Fixed-size buffer retaining the most recent items in insertion order.

    Eviction is strict FIFO. ``append`` and ``replace_all`` each take a
    short internal lock so readers never observe half of a batch. Once
    closed, the buffer silently discards writes.
    """

    def __init__(self, capacity: int = ROLLING_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._items: Deque[T] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._closed = False

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._closed

    def append(self, items: Iterable[T]) -> None:
        """Append a batch, evicting the oldest items beyond capacity."""
        batch = list(items)
        with self._lock:
            if self._closed:
                return
            self._items.extend(batch)

    def replace_all(self, items: Iterable[T]) -> None:
        """Atomically replace the whole content (used after a rotation)."""
        batch = list(items)
        with self._lock:
            if self._closed:
                return
            self._items.clear()
            self._items.extend(batch)

    def snapshot(self) -> list[T]:
        """Return a copy of the current content, oldest first."""
        with self._lock:
            return list(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def close(self) -> None:
        """Stop accepting writes."""
        with self._lock:
            self._closed = True

    def __iter__(self) -> Iterator[T]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


__all__ = ["RetentionBuffer", "ROLLING_CAPACITY", "INTERNAL_LOG_CAPACITY"]
