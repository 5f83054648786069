from __future__ import annotations

from datetime import timedelta

from hrvsense.core.clock import PrecisionClock, TimingSession


def test_now_never_decreases(fake_time) -> None:
    clock = PrecisionClock(monotonic=fake_time.monotonic, wall=fake_time.wall)
    first = clock.now()
    fake_time.value -= 5.0  # simulate a misbehaving source
    assert clock.now() == first
    fake_time.advance(10.0)
    assert clock.now() > first


def test_conversion_requires_epoch(fake_time) -> None:
    clock = PrecisionClock(monotonic=fake_time.monotonic, wall=fake_time.wall)
    assert clock.monotonic_to_wall(1000.0) is None
    assert clock.wall_to_monotonic(fake_time.wall()) is None

    epoch = clock.establish_epoch()
    assert clock.monotonic_to_wall(epoch.monotonic_time) == epoch.wall_time


def test_conversion_is_linear_offset(clock, fake_time) -> None:
    base = clock.now()
    wall = clock.monotonic_to_wall(base + 0.8)
    assert wall - clock.monotonic_to_wall(base) == timedelta(seconds=0.8)
    assert clock.wall_to_monotonic(wall) == base + 0.8


def test_reset_epoch_drops_reference(clock) -> None:
    clock.reset_epoch()
    assert clock.epoch is None
    assert clock.monotonic_to_wall(0.0) is None
    assert "epoch_wall_time" not in clock.metadata()


def test_timing_session_elapsed_and_conversion(clock, fake_time) -> None:
    session = TimingSession("AA:BB", clock)
    assert session.elapsed() == 0.0

    fake_time.advance(12.5)
    assert session.elapsed() == 12.5
    assert session.monotonic_to_wall(session.now()) == session.start_wall_time + timedelta(seconds=12.5)

    meta = session.metadata()
    assert meta["session_id"] == "AA:BB"
    assert meta["elapsed_time"] == 12.5


def test_timing_sessions_keep_independent_epochs(clock, fake_time) -> None:
    first = TimingSession("one", clock)
    fake_time.advance(30.0)
    second = TimingSession("two", clock)

    assert second.start_monotonic_time - first.start_monotonic_time == 30.0
    assert first.elapsed() == 30.0
    assert second.elapsed() == 0.0
