"""Shared dataclasses and enums for sensor sessions and samples."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Union


class ConnectionState(Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class RecordingState(Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"


class HRVWindow(Enum):
    """Time window used for HRV calculation."""

    ONE_MINUTE = "1 Minute"
    TWO_MINUTES = "2 Minutes"
    FIVE_MINUTES = "5 Minutes"
    TEN_MINUTES = "10 Minutes"

    @property
    def seconds(self) -> float:
        return _WINDOW_SECONDS[self]

    @property
    def label(self) -> str:
        return self.value

    @property
    def description(self) -> str:
        return {
            HRVWindow.ONE_MINUTE: "Ultra-short term (1 min)",
            HRVWindow.TWO_MINUTES: "Ultra-short term (2 min)",
            HRVWindow.FIVE_MINUTES: "Short-term (5 min) - Research standard",
            HRVWindow.TEN_MINUTES: "Extended (10 min)",
        }[self]

    @classmethod
    def parse(cls, value: Union["HRVWindow", str, int, float, None]) -> "HRVWindow":
        """
        Resolve ``value`` into a window.

        Accepts an existing member, a label (``"5 Minutes"``), a short key
        (``"5min"``, ``"5m"``) or a duration in seconds (``300``).
        Raises :class:`ValueError` for anything else.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            for member in cls:
                if member.seconds == float(value):
                    return member
            raise ValueError(f"Unsupported HRV window length: {value!r} s")
        text = str(value or "").strip().lower()
        for member in cls:
            if text == member.value.lower():
                return member
        compact = text.replace(" ", "").replace("minutes", "min").replace("minute", "min")
        if compact.endswith("m"):
            compact = compact + "in"
        for member in cls:
            if compact == f"{int(member.seconds // 60)}min":
                return member
        raise ValueError(f"Unknown HRV window: {value!r}")


_WINDOW_SECONDS: Dict[HRVWindow, float] = {
    HRVWindow.ONE_MINUTE: 60.0,
    HRVWindow.TWO_MINUTES: 120.0,
    HRVWindow.FIVE_MINUTES: 300.0,
    HRVWindow.TEN_MINUTES: 600.0,
}


class DeviceFeature(Enum):
    HEART_RATE = "hr"
    BATTERY_INFO = "battery_info"
    ONLINE_STREAMING = "online_streaming"


@dataclass(frozen=True)
class DeviceInfo:
    """Descriptor for a discovered sensor."""

    device_id: str
    name: str
    rssi: int | None = None


@dataclass(frozen=True, slots=True)
class DataPoint:
    """One timestamped scalar sample (heart rate in bpm or RR in ms)."""

    wall_timestamp: datetime
    monotonic_timestamp: float
    value: int

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "timestamp": self.wall_timestamp.isoformat(),
            "unix_time": self.wall_timestamp.timestamp(),
            "monotonic_time": self.monotonic_timestamp,
            "value": self.value,
        }



@dataclass(frozen=True)
class HRVMetrics:
    """Result of one HRV computation; all zeros means insufficient data."""

    sdnn: float = 0.0
    rmssd: float = 0.0
    sample_count: int = 0

    @property
    def is_available(self) -> bool:
        return self.sample_count > 0


INSUFFICIENT_HRV = HRVMetrics()

__all__ = [
    "ConnectionState",
    "RecordingState",
    "HRVWindow",
    "DeviceFeature",
    "DeviceInfo",
    "DataPoint",
    "HRVMetrics",
    "INSUFFICIENT_HRV",
]
