from __future__ import annotations

from collections.abc import Iterator
from typing import Optional

import numpy as np

from .models import DataPoint
from .ringbuffer import RingBuffer

# ~5 minutes of history at one sample per second.
DEFAULT_HISTORY_CAPACITY = 300


class SampleBuffer:
    """
    Bounded history of :class:`DataPoint` samples for one sensor channel.

    Thin wrapper around :class:`RingBuffer` that adds monotonic-time window
    queries. Pushing beyond ``capacity`` evicts the oldest points first.
    """

    __slots__ = ("_buffer",)

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        self._buffer: RingBuffer[DataPoint] = RingBuffer(capacity)

    @property
    def capacity(self) -> int:
        return self._buffer.capacity

    def push(self, point: DataPoint) -> None:
        self._buffer.append(point)

    def clear(self) -> None:
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)

    def __iter__(self) -> Iterator[DataPoint]:
        return iter(self._buffer)

    def snapshot(self) -> list[DataPoint]:
        """Copy of the contents in push order."""
        return self._buffer.to_list()

    def latest(self) -> Optional[DataPoint]:
        if not self._buffer:
            return None
        return self._buffer[-1]

    def window(self, now: float, duration: float) -> list[DataPoint]:
        """
        Return points with ``now - duration <= monotonic_timestamp <= now``.

        Order is preserved and the buffer itself is not modified.
        """
        cutoff = now - duration
        return [
            point
            for point in self._buffer
            if cutoff <= point.monotonic_timestamp <= now
        ]

    def window_values(self, now: float, duration: float) -> np.ndarray:
        """Values of :meth:`window` as a ``float64`` array (RR values in ms)."""
        points = self.window(now, duration)
        return np.fromiter((p.value for p in points), dtype=np.float64, count=len(points))

    def as_arrays(self) -> tuple[np.ndarray, np.ndarray]:
        """Return ``(monotonic_timestamps, values)`` for all buffered points."""
        data = self._buffer.to_list()
        count = len(data)
        times = np.fromiter((p.monotonic_timestamp for p in data), dtype=np.float64, count=count)
        values = np.fromiter((p.value for p in data), dtype=np.float64, count=count)
        return times, values
