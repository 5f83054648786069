"""Monotonic/wall clock pairing used to timestamp every recorded sample.

:class:`PrecisionClock` reads a monotonic, sub-millisecond clock that is
immune to NTP or user adjustments. Wall-clock datetimes are only derived by
linear offset from an established :class:`ClockEpoch`, so two samples that
are 0.8 s apart in monotonic time are always 0.8 s apart on the wall clock
too.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

MonotonicFn = Callable[[], float]
WallFn = Callable[[], datetime]

TIMING_METHOD = "perf_counter"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ClockEpoch:
    """Paired (wall, monotonic) snapshot correlating the two clocks."""

    wall_time: datetime
    monotonic_time: float

    def to_wall(self, monotonic_time: float) -> datetime:
        return self.wall_time + timedelta(seconds=monotonic_time - self.monotonic_time)

    def to_monotonic(self, wall_time: datetime) -> float:
        return self.monotonic_time + (wall_time - self.wall_time).total_seconds()


class PrecisionClock:
    """
    Monotonic clock with an optional process-wide epoch.

    Parameters
    ----------
    monotonic:
        Callable returning seconds from an arbitrary origin. Defaults to
        :func:`time.perf_counter`, the highest resolution monotonic clock.
    wall:
        Callable returning an aware UTC :class:`datetime`.
    """

    def __init__(
        self,
        monotonic: MonotonicFn | None = None,
        wall: WallFn | None = None,
    ) -> None:
        self._monotonic = monotonic or time.perf_counter
        self._wall = wall or _utc_now
        self._last = float("-inf")
        self._epoch: Optional[ClockEpoch] = None

    @property
    def epoch(self) -> Optional[ClockEpoch]:
        return self._epoch

    def now(self) -> float:
        """Return the current monotonic time in seconds (never decreasing)."""
        value = float(self._monotonic())
        if value < self._last:
            value = self._last
        self._last = value
        return value

    def wall_now(self) -> datetime:
        return self._wall()

    def capture_epoch(self) -> ClockEpoch:
        """Read both clocks back to back without storing the result."""
        monotonic = self.now()
        wall = self._wall()
        return ClockEpoch(wall_time=wall, monotonic_time=monotonic)

    def establish_epoch(self) -> ClockEpoch:
        """Capture and store the process-wide reference point."""
        self._epoch = self.capture_epoch()
        logger.debug(
            "Clock epoch established at %s (monotonic %.6f)",
            self._epoch.wall_time.isoformat(),
            self._epoch.monotonic_time,
        )
        return self._epoch

    def reset_epoch(self) -> None:
        self._epoch = None

    def monotonic_to_wall(self, monotonic_time: float) -> Optional[datetime]:
        """Convert using the stored epoch; ``None`` until one is established."""
        if self._epoch is None:
            return None
        return self._epoch.to_wall(monotonic_time)

    def wall_to_monotonic(self, wall_time: datetime) -> Optional[float]:
        """Estimate a monotonic time for ``wall_time``; ``None`` without epoch."""
        if self._epoch is None:
            return None
        return self._epoch.to_monotonic(wall_time)

    @staticmethod
    def duration(start: float, end: float) -> float:
        return end - start

    def metadata(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "timing_method": TIMING_METHOD,
            "precision": "sub-millisecond",
            "monotonic": True,
        }
        if self._epoch is not None:
            info["epoch_wall_time"] = self._epoch.wall_time.isoformat()
            info["epoch_monotonic_time"] = self._epoch.monotonic_time
        return info


class TimingSession:
    """
    Private epoch for one sensor's recording segment.

    Each session captures its own start reference so concurrently recording
    sensors never share (or overwrite) each other's epoch.
    """

    def __init__(self, session_id: str, clock: PrecisionClock) -> None:
        self.session_id = session_id
        self._clock = clock
        self._epoch = clock.capture_epoch()

    @property
    def start_wall_time(self) -> datetime:
        return self._epoch.wall_time

    @property
    def start_monotonic_time(self) -> float:
        return self._epoch.monotonic_time

    def now(self) -> float:
        return self._clock.now()

    def elapsed(self) -> float:
        """Monotonic seconds since the session started (includes pauses)."""
        return self._clock.duration(self._epoch.monotonic_time, self._clock.now())

    def monotonic_to_wall(self, monotonic_time: float) -> datetime:
        return self._epoch.to_wall(monotonic_time)

    def metadata(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "start_wall_time": self.start_wall_time.isoformat(),
            "start_monotonic_time": self.start_monotonic_time,
            "elapsed_time": self.elapsed(),
            "timing_method": TIMING_METHOD,
        }

    def __repr__(self) -> str:
        return f"<TimingSession(id={self.session_id!r}, elapsed={self.elapsed():.3f}s)>"


__all__ = ["ClockEpoch", "PrecisionClock", "TimingSession"]
