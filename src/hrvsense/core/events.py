"""Transport events delivered to the coordinator.

Adapters report everything that happens on the radio link as one of the
dataclasses below; :meth:`SessionCoordinator.handle_event` is the single
place that dispatches on them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple, Union

from .models import DeviceFeature, DeviceInfo


@dataclass(frozen=True)
class DeviceConnecting:
    device_id: str


@dataclass(frozen=True)
class DeviceConnected:
    device_id: str


@dataclass(frozen=True)
class DeviceDisconnected:
    device_id: str
    pairing_error: bool = False


@dataclass(frozen=True)
class HeartRateFrame:
    """One heart-rate notification; RR intervals ride along in the same frame."""

    device_id: str
    bpm: int
    rr_intervals_ms: Tuple[int, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RrSample:
    """A single RR (peak-to-peak) interval from a dedicated RR stream."""

    device_id: str
    rr_ms: int


@dataclass(frozen=True)
class BatteryLevel:
    device_id: str
    percent: int


@dataclass(frozen=True)
class FeatureReady:
    device_id: str
    feature: DeviceFeature


@dataclass(frozen=True)
class RadioPowerChanged:
    is_on: bool


@dataclass(frozen=True)
class DeviceDiscovered:
    device: DeviceInfo


@dataclass(frozen=True)
class ScanFailed:
    reason: str


TransportEvent = Union[
    DeviceConnecting,
    DeviceConnected,
    DeviceDisconnected,
    HeartRateFrame,
    RrSample,
    BatteryLevel,
    FeatureReady,
    RadioPowerChanged,
    DeviceDiscovered,
    ScanFailed,
]

__all__ = [
    "DeviceConnecting",
    "DeviceConnected",
    "DeviceDisconnected",
    "HeartRateFrame",
    "RrSample",
    "BatteryLevel",
    "FeatureReady",
    "RadioPowerChanged",
    "DeviceDiscovered",
    "ScanFailed",
    "TransportEvent",
]
