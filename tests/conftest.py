from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Set

import pytest

from hrvsense.config import HrvSenseConfig
from hrvsense.core.clock import PrecisionClock
from hrvsense.core.coordinator import SessionCoordinator
from hrvsense.core.errors import TransportError
from hrvsense.core.events import DeviceConnected
from hrvsense.core.models import DeviceInfo

WALL_START = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


class FakeTime:
    """Manually advanced monotonic clock with a matching wall clock."""

    def __init__(self, start: float = 1000.0, wall_start: datetime = WALL_START) -> None:
        self._start = start
        self.value = start
        self.wall_start = wall_start

    def monotonic(self) -> float:
        return self.value

    def wall(self) -> datetime:
        return self.wall_start + timedelta(seconds=self.value - self._start)

    def advance(self, seconds: float) -> None:
        self.value += seconds


class ManualCall:
    def __init__(self, due: float, delay: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.delay = delay
        self.callback = callback
        self.fired = False
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """Scheduler that only fires callbacks when time is advanced explicitly."""

    def __init__(self, fake_time: FakeTime) -> None:
        self._time = fake_time
        self.calls: List[ManualCall] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualCall:
        call = ManualCall(self._time.value + delay, delay, callback)
        self.calls.append(call)
        return call

    @property
    def pending(self) -> List[ManualCall]:
        return [c for c in self.calls if not c.fired and not c.cancelled]

    def advance(self, seconds: float) -> None:
        target = self._time.value + seconds
        while True:
            due = [c for c in self.pending if c.due <= target]
            if not due:
                break
            call = min(due, key=lambda c: c.due)
            self._time.value = max(self._time.value, call.due)
            call.fired = True
            call.callback()
        self._time.value = target

    def run_all(self, limit: int = 100) -> None:
        for _ in range(limit):
            pending = self.pending
            if not pending:
                return
            nxt = min(pending, key=lambda c: c.due)
            self.advance(max(0.0, nxt.due - self._time.value))
        raise AssertionError("scheduler did not settle")


class FakeTransport:
    """Records every adapter call; operations named in ``failing`` raise."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.failing: Set[str] = set()
        self.sink: Optional[Callable] = None

    def bind(self, sink) -> None:
        self.sink = sink

    def _record(self, operation: str, *args: str) -> None:
        self.calls.append((operation, *args))
        if operation in self.failing:
            raise TransportError(f"{operation} failed")

    def connect(self, device_id: str) -> None:
        self._record("connect", device_id)

    def disconnect(self, device_id: str) -> None:
        self._record("disconnect", device_id)

    def start_heart_rate_stream(self, device_id: str) -> None:
        self._record("start_heart_rate_stream", device_id)

    def start_rr_stream(self, device_id: str) -> None:
        self._record("start_rr_stream", device_id)

    def stop_streams(self, device_id: str) -> None:
        self._record("stop_streams", device_id)

    def start_scan(self) -> None:
        self._record("start_scan")

    def stop_scan(self) -> None:
        self._record("stop_scan")

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def clock(fake_time: FakeTime) -> PrecisionClock:
    clk = PrecisionClock(monotonic=fake_time.monotonic, wall=fake_time.wall)
    clk.establish_epoch()
    return clk


@pytest.fixture
def scheduler(fake_time: FakeTime) -> ManualScheduler:
    return ManualScheduler(fake_time)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def config() -> HrvSenseConfig:
    return HrvSenseConfig()


@pytest.fixture
def coordinator(transport, clock, scheduler, config) -> SessionCoordinator:
    return SessionCoordinator(transport, config=config, clock=clock, scheduler=scheduler)


@pytest.fixture
def connect_device(coordinator: SessionCoordinator):
    """Connect ``device_id`` through the coordinator and confirm it like the radio would."""

    def _connect(device_id: str, name: Optional[str] = None):
        coordinator.connect_to(DeviceInfo(device_id, name or f"Polar H10 {device_id[-6:]}"))
        coordinator.handle_event(DeviceConnected(device_id))
        return coordinator.get_session(device_id)

    return _connect
