"""Fixed-capacity FIFO buffer used for every bounded history."""

from collections import deque
from typing import Generic, Iterator, TypeVar

T = TypeVar("T")


class RingBuffer(Generic[T]):
    """
    Circular buffer: appending to a full buffer evicts the oldest item in O(1).

    Usage:
        errors = RingBuffer[dict](capacity=10)
        errors.append({"time": ..., "error": ...})
        errors.recent(5)
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._items: deque[T] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._items.maxlen or 0

    def append(self, item: T) -> T | None:
        """Add ``item``; returns the evicted item when the buffer was full."""
        evicted = self._items[0] if len(self._items) == self.capacity else None
        self._items.append(item)
        return evicted

    def recent(self, n: int) -> list[T]:
        """The last ``n`` items, oldest first."""
        if n <= 0:
            return []
        return list(self._items)[-n:]

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __getitem__(self, index: int) -> T:
        return self._items[index]
