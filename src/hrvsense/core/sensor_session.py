"""Per-device state: connection, recording, buffers, statistics and HRV."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ..analysis.hrv import MIN_HRV_SAMPLES, compute_hrv
from ..tools.debug import time_block
from .clock import PrecisionClock, TimingSession
from .models import (
    INSUFFICIENT_HRV,
    ConnectionState,
    DataPoint,
    HRVMetrics,
    HRVWindow,
    RecordingState,
)
from .sample_buffer import DEFAULT_HISTORY_CAPACITY, SampleBuffer

logger = logging.getLogger(__name__)

# Allowed recording transitions; Idle <-> Paused is deliberately absent.
_TRANSITIONS = {
    (RecordingState.IDLE, RecordingState.RECORDING),
    (RecordingState.RECORDING, RecordingState.PAUSED),
    (RecordingState.PAUSED, RecordingState.RECORDING),
    (RecordingState.RECORDING, RecordingState.IDLE),
    (RecordingState.PAUSED, RecordingState.IDLE),
}


class SensorSession:
    """
    Everything known about one connected sensor.

    Live values (``heart_rate``, ``rr_interval``, ``battery_level``) always
    reflect the latest sample. Histories, running statistics and HRV only
    change while the session is :attr:`RecordingState.RECORDING`.

    Instances are not thread-safe: the owning coordinator serializes every
    call onto a single thread.
    """

    def __init__(
        self,
        device_id: str,
        device_name: str,
        clock: PrecisionClock,
        *,
        history_capacity: int = DEFAULT_HISTORY_CAPACITY,
        hrv_window: HRVWindow = HRVWindow.FIVE_MINUTES,
        hrv_min_samples: int = MIN_HRV_SAMPLES,
    ) -> None:
        self.device_id = device_id
        self.device_name = device_name
        self._clock = clock
        self._hrv_min_samples = hrv_min_samples

        self.connection_state = ConnectionState.CONNECTING
        self.recording_state = RecordingState.IDLE

        self.heart_rate = 0
        self.rr_interval = 0
        self.battery_level = 0
        self.last_update: Optional[datetime] = None

        self.heart_rate_history = SampleBuffer(history_capacity)
        self.rr_interval_history = SampleBuffer(history_capacity)

        self.min_heart_rate = 0
        self.max_heart_rate = 0
        self.total_heart_rate_samples = 0
        self._heart_rate_sum = 0

        self.hrv_window = hrv_window
        self.hrv = INSUFFICIENT_HRV

        self.timing_session: Optional[TimingSession] = None

    # ------------------------------------------------------------------ derived
    @property
    def display_id(self) -> str:
        """Last six characters of the device id."""
        return self.device_id[-6:]

    @property
    def is_active(self) -> bool:
        return self.connection_state is ConnectionState.CONNECTED and self.heart_rate > 0

    @property
    def average_heart_rate(self) -> int:
        if self.total_heart_rate_samples == 0:
            return 0
        return self._heart_rate_sum // self.total_heart_rate_samples

    @property
    def session_start_time(self) -> Optional[datetime]:
        if self.timing_session is None:
            return None
        return self.timing_session.start_wall_time

    @property
    def session_duration(self) -> float:
        """Monotonic seconds since the current timing session began (0 without one)."""
        if self.timing_session is None:
            return 0.0
        return self.timing_session.elapsed()

    @property
    def sdnn(self) -> float:
        return self.hrv.sdnn

    @property
    def rmssd(self) -> float:
        return self.hrv.rmssd

    @property
    def hrv_sample_count(self) -> int:
        return self.hrv.sample_count

    # --------------------------------------------------------------- recording
    def _transition(self, target: RecordingState) -> bool:
        current = self.recording_state
        if (current, target) not in _TRANSITIONS:
            logger.debug(
                "Ignoring recording transition %s -> %s for %s",
                current.value,
                target.value,
                self.display_id,
            )
            return False
        self.recording_state = target
        return True

    def start(self) -> bool:
        """Start a fresh recording from Idle, or resume from Paused."""
        previous = self.recording_state
        if not self._transition(RecordingState.RECORDING):
            return False
        if previous is RecordingState.IDLE:
            self.timing_session = TimingSession(self.device_id, self._clock)
            logger.info("Started new recording for %s (timer reset)", self.display_id)
        else:
            logger.info("Resumed recording for %s (timer continues)", self.display_id)
        return True

    def pause(self) -> bool:
        if not self._transition(RecordingState.PAUSED):
            return False
        logger.info("Paused recording for %s", self.display_id)
        return True

    def stop(self) -> bool:
        """Return to Idle; buffers and the timing session are kept for review."""
        if not self._transition(RecordingState.IDLE):
            return False
        logger.info("Stopped recording for %s", self.display_id)
        return True

    # -------------------------------------------------------------- ingestion
    def _ensure_timing_session(self) -> TimingSession:
        if self.timing_session is None:
            self.timing_session = TimingSession(self.device_id, self._clock)
        return self.timing_session

    def _stamp(self, value: int) -> DataPoint:
        session = self._ensure_timing_session()
        monotonic = session.now()
        return DataPoint(
            wall_timestamp=session.monotonic_to_wall(monotonic),
            monotonic_timestamp=monotonic,
            value=value,
        )

    def accept_heart_rate_sample(self, bpm: int) -> None:
        self.heart_rate = bpm
        self.last_update = self._clock.wall_now()

        if self.recording_state is not RecordingState.RECORDING:
            return

        self.heart_rate_history.push(self._stamp(bpm))

        if self.min_heart_rate == 0 or bpm < self.min_heart_rate:
            self.min_heart_rate = bpm
        if bpm > self.max_heart_rate:
            self.max_heart_rate = bpm
        self._heart_rate_sum += bpm
        self.total_heart_rate_samples += 1

    def accept_rr_sample(self, rr_ms: int) -> None:
        self.rr_interval = rr_ms

        if self.recording_state is not RecordingState.RECORDING:
            return

        self.rr_interval_history.push(self._stamp(rr_ms))
        self.recalculate_hrv()

    def accept_battery_level(self, percent: int) -> None:
        self.battery_level = percent

    # --------------------------------------------------------------------- HRV
    def set_hrv_window(self, window: HRVWindow) -> None:
        self.hrv_window = window
        self.recalculate_hrv()

    def recalculate_hrv(self) -> HRVMetrics:
        if len(self.rr_interval_history) < self._hrv_min_samples:
            self.hrv = INSUFFICIENT_HRV
            return self.hrv
        now = self.timing_session.now() if self.timing_session is not None else self._clock.now()
        with time_block(f"hrv[{self.display_id}]", emitter=logger.debug):
            values = self.rr_interval_history.window_values(now, self.hrv_window.seconds)
            self.hrv = compute_hrv(values, min_samples=self._hrv_min_samples)
        return self.hrv

    # ------------------------------------------------------------------- reset
    def reset(self) -> None:
        """Zero live values, statistics and HRV; clear histories; drop timing."""
        self.heart_rate = 0
        self.rr_interval = 0
        self.battery_level = 0
        self.heart_rate_history.clear()
        self.rr_interval_history.clear()
        self.min_heart_rate = 0
        self.max_heart_rate = 0
        self.total_heart_rate_samples = 0
        self._heart_rate_sum = 0
        self.hrv = INSUFFICIENT_HRV
        self.timing_session = None

    def summary(self) -> Dict[str, Any]:
        """Compact, deterministic status mapping for logging or display."""
        return {
            "device_id": self.device_id,
            "connection": self.connection_state.value,
            "recording": self.recording_state.value,
            "heart_rate": self.heart_rate,
            "rr_interval": self.rr_interval,
            "battery": self.battery_level,
            "samples": len(self.heart_rate_history),
            "sdnn": round(self.hrv.sdnn, 2),
            "rmssd": round(self.hrv.rmssd, 2),
            "hrv_window": self.hrv_window.label,
            "duration_s": round(self.session_duration, 3),
        }

    def __repr__(self) -> str:
        return (
            f"<SensorSession(id={self.display_id}, {self.connection_state.value}, "
            f"{self.recording_state.value})>"
        )
