from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Generic, TypeVar

T = TypeVar("T")


class RingBuffer(Generic[T]):
    """
    Fixed-capacity FIFO ring buffer.
    Appending to a full buffer evicts the oldest entry in O(1).
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._data: list[T | None] = [None] * capacity
        self._start = 0
        self._size = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, item: T) -> None:
        idx = (self._start + self._size) % self._capacity
        self._data[idx] = item
        if self._size < self._capacity:
            self._size += 1
        else:
            self._start = (self._start + 1) % self._capacity

    def extend(self, items: Iterable[T]) -> None:
        for item in items:
            self.append(item)

    def clear(self) -> None:
        self._data = [None] * self._capacity
        self._start = 0
        self._size = 0

    def to_list(self) -> list[T]:
        """Logical contents, oldest first."""
        return list(self)

    def __len__(self) -> int:
        return self._size

    def __bool__(self) -> bool:
        return self._size > 0

    def __getitem__(self, index: int) -> T:
        """Index the *logical* contents; ``buf[-1]`` is the newest item."""
        size = self._size
        if size == 0:
            raise IndexError("RingBuffer is empty")

        if index < 0:
            index += size

        if index < 0 or index >= size:
            raise IndexError("RingBuffer index out of range")

        item = self._data[(self._start + index) % self._capacity]
        assert item is not None
        return item

    def __iter__(self) -> Iterator[T]:
        for i in range(self._size):
            item = self._data[(self._start + i) % self._capacity]
            assert item is not None
            yield item
