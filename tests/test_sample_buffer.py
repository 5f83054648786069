from __future__ import annotations

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from hrvsense.core.models import DataPoint
from hrvsense.core.ringbuffer import RingBuffer
from hrvsense.core.sample_buffer import SampleBuffer

_WALL = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _point(t: float, value: int) -> DataPoint:
    return DataPoint(wall_timestamp=_WALL + timedelta(seconds=t), monotonic_timestamp=t, value=value)


def test_ringbuffer_evicts_oldest() -> None:
    buf: RingBuffer[int] = RingBuffer(3)
    buf.extend(range(5))
    assert len(buf) == 3
    assert buf.to_list() == [2, 3, 4]
    assert buf[0] == 2
    assert buf[-1] == 4


def test_ringbuffer_rejects_bad_capacity() -> None:
    with pytest.raises(ValueError):
        RingBuffer(0)


def test_ringbuffer_index_errors() -> None:
    buf: RingBuffer[int] = RingBuffer(2)
    with pytest.raises(IndexError):
        buf[0]
    buf.append(1)
    with pytest.raises(IndexError):
        buf[2]
    assert not RingBuffer(1)


def test_push_beyond_capacity_keeps_last_points_in_order() -> None:
    buffer = SampleBuffer(capacity=300)
    points = [_point(float(i), 60 + i % 40) for i in range(450)]
    for point in points:
        buffer.push(point)

    assert len(buffer) == 300
    assert buffer.snapshot() == points[-300:]
    assert buffer.latest() == points[-1]


def test_window_is_inclusive_and_ordered() -> None:
    buffer = SampleBuffer(capacity=10)
    for t in (0.0, 1.0, 2.0, 3.0, 4.0):
        buffer.push(_point(t, int(800 + t)))

    window = buffer.window(now=3.0, duration=2.0)
    assert [p.monotonic_timestamp for p in window] == [1.0, 2.0, 3.0]
    # Query does not mutate.
    assert len(buffer) == 5


def test_window_on_empty_buffer() -> None:
    buffer = SampleBuffer(capacity=5)
    assert buffer.window(now=100.0, duration=60.0) == []
    assert buffer.latest() is None
    assert buffer.window_values(100.0, 60.0).size == 0


def test_array_views() -> None:
    buffer = SampleBuffer(capacity=4)
    for t, v in ((0.5, 810), (1.5, 790), (2.5, 805)):
        buffer.push(_point(t, v))

    times, values = buffer.as_arrays()
    np.testing.assert_allclose(times, [0.5, 1.5, 2.5])
    np.testing.assert_allclose(values, [810, 790, 805])
    np.testing.assert_allclose(buffer.window_values(2.5, 1.0), [790, 805])

    buffer.clear()
    assert len(buffer) == 0
