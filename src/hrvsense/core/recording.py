"""Immutable snapshots of recorded sensor data.

A :class:`SensorRecording` freezes one :class:`SensorSession`'s buffers,
statistics and timing; a :class:`RecordingSession` groups the snapshots of
every sensor taken at the same moment. Both serialize with ``to_mapping()``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .models import DataPoint

if TYPE_CHECKING:
    from .sensor_session import SensorSession

logger = logging.getLogger(__name__)


def _format_duration(seconds: float) -> str:
    total = int(seconds)
    return f"{total // 60:02d}:{total % 60:02d}"


def _nonzero_mean(values: Iterable[float]) -> float:
    kept = [v for v in values if v > 0]
    if not kept:
        return 0.0
    return sum(kept) / len(kept)


@dataclass(frozen=True)
class SensorStatistics:
    min_heart_rate: int
    max_heart_rate: int
    average_heart_rate: int
    total_heart_rate_samples: int
    sdnn: float
    rmssd: float
    hrv_window: str
    hrv_sample_count: int

    @property
    def formatted_sdnn(self) -> str:
        return f"{self.sdnn:.1f} ms" if self.sdnn > 0 else "N/A"

    @property
    def formatted_rmssd(self) -> str:
        return f"{self.rmssd:.1f} ms" if self.rmssd > 0 else "N/A"

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "min_heart_rate": self.min_heart_rate,
            "max_heart_rate": self.max_heart_rate,
            "average_heart_rate": self.average_heart_rate,
            "total_heart_rate_samples": self.total_heart_rate_samples,
            "sdnn": self.sdnn,
            "rmssd": self.rmssd,
            "hrv_window": self.hrv_window,
            "hrv_sample_count": self.hrv_sample_count,
        }


@dataclass(frozen=True)
class TimingMetadata:
    """Start reference of a timing session plus the moment it was captured."""

    session_id: str
    start_wall_time: datetime
    start_monotonic_time: float
    end_wall_time: datetime

    @property
    def duration(self) -> float:
        return (self.end_wall_time - self.start_wall_time).total_seconds()

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "start_wall_time": self.start_wall_time.isoformat(),
            "start_monotonic_time": self.start_monotonic_time,
            "end_wall_time": self.end_wall_time.isoformat(),
            "duration": self.duration,
        }


@dataclass(frozen=True)
class SensorRecording:
    id: str
    sensor_id: str
    sensor_name: str
    heart_rate_data: Tuple[DataPoint, ...]
    rr_interval_data: Tuple[DataPoint, ...]
    statistics: SensorStatistics
    timing_metadata: TimingMetadata

    @property
    def display_id(self) -> str:
        return self.sensor_id[-6:]

    @property
    def data_point_count(self) -> int:
        return len(self.heart_rate_data)

    @property
    def duration(self) -> float:
        """Seconds between the first and last heart-rate sample."""
        if len(self.heart_rate_data) < 2:
            return 0.0
        first = self.heart_rate_data[0].wall_timestamp
        last = self.heart_rate_data[-1].wall_timestamp
        return (last - first).total_seconds()

    @property
    def formatted_duration(self) -> str:
        return _format_duration(self.duration)

    @classmethod
    def from_session(
        cls,
        session: "SensorSession",
        *,
        end_wall_time: datetime,
        recording_id: Optional[str] = None,
    ) -> Optional["SensorRecording"]:
        """
        Snapshot ``session``; ``None`` when it has no timing session or no
        heart-rate history to keep.
        """
        timing = session.timing_session
        if timing is None:
            logger.debug("No timing session for %s", session.display_id)
            return None
        heart_rate_data = tuple(session.heart_rate_history)
        if not heart_rate_data:
            logger.debug("No heart-rate data for %s", session.display_id)
            return None

        statistics = SensorStatistics(
            min_heart_rate=session.min_heart_rate,
            max_heart_rate=session.max_heart_rate,
            average_heart_rate=session.average_heart_rate,
            total_heart_rate_samples=session.total_heart_rate_samples,
            sdnn=session.sdnn,
            rmssd=session.rmssd,
            hrv_window=session.hrv_window.label,
            hrv_sample_count=session.hrv_sample_count,
        )
        metadata = TimingMetadata(
            session_id=timing.session_id,
            start_wall_time=timing.start_wall_time,
            start_monotonic_time=timing.start_monotonic_time,
            end_wall_time=end_wall_time,
        )
        return cls(
            id=recording_id or str(uuid.uuid4()),
            sensor_id=session.device_id,
            sensor_name=session.device_name,
            heart_rate_data=heart_rate_data,
            rr_interval_data=tuple(session.rr_interval_history),
            statistics=statistics,
            timing_metadata=metadata,
        )

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sensor_id": self.sensor_id,
            "sensor_name": self.sensor_name,
            "heart_rate_data": [p.to_mapping() for p in self.heart_rate_data],
            "rr_interval_data": [p.to_mapping() for p in self.rr_interval_data],
            "statistics": self.statistics.to_mapping(),
            "timing_metadata": self.timing_metadata.to_mapping(),
        }


def default_recording_name(date: datetime) -> str:
    """E.g. ``"Recording - Oct 17, 2026 at 3:04 PM"``."""
    hour = date.hour % 12 or 12
    return f"Recording - {date:%b} {date.day}, {date.year} at {hour}:{date:%M %p}"


@dataclass
class RecordingSession:
    """Every sensor's snapshot from one capture; only ``name`` is mutable."""

    id: str
    name: str
    start_date: datetime
    end_date: datetime
    sensor_recordings: Tuple[SensorRecording, ...] = field(default_factory=tuple)

    @classmethod
    def create(
        cls,
        *,
        start_date: datetime,
        end_date: datetime,
        sensor_recordings: Sequence[SensorRecording],
        name: Optional[str] = None,
    ) -> "RecordingSession":
        return cls(
            id=str(uuid.uuid4()),
            name=(name or "").strip() or default_recording_name(start_date),
            start_date=start_date,
            end_date=end_date,
            sensor_recordings=tuple(sensor_recordings),
        )

    @property
    def duration(self) -> float:
        return (self.end_date - self.start_date).total_seconds()

    @property
    def formatted_duration(self) -> str:
        return _format_duration(self.duration)

    @property
    def sensor_count(self) -> int:
        return len(self.sensor_recordings)

    @property
    def total_data_points(self) -> int:
        return sum(r.data_point_count for r in self.sensor_recordings)

    @property
    def average_heart_rate(self) -> int:
        return int(_nonzero_mean(r.statistics.average_heart_rate for r in self.sensor_recordings))

    @property
    def average_sdnn(self) -> float:
        return _nonzero_mean(r.statistics.sdnn for r in self.sensor_recordings)

    @property
    def average_rmssd(self) -> float:
        return _nonzero_mean(r.statistics.rmssd for r in self.sensor_recordings)

    def matches(self, text: str) -> bool:
        """Case-insensitive match on the name or any sensor name/id."""
        needle = text.strip().lower()
        if not needle:
            return True
        if needle in self.name.lower():
            return True
        return any(
            needle in r.sensor_name.lower() or needle in r.sensor_id.lower()
            for r in self.sensor_recordings
        )

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "duration": self.duration,
            "sensor_recordings": [r.to_mapping() for r in self.sensor_recordings],
        }


def sorted_by_date(
    recordings: Iterable[RecordingSession], *, newest_first: bool = True
) -> List[RecordingSession]:
    return sorted(recordings, key=lambda r: r.start_date, reverse=newest_first)


def search(recordings: Iterable[RecordingSession], text: str) -> List[RecordingSession]:
    return [r for r in recordings if r.matches(text)]


__all__ = [
    "SensorStatistics",
    "TimingMetadata",
    "SensorRecording",
    "RecordingSession",
    "default_recording_name",
    "sorted_by_date",
    "search",
]
