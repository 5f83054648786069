"""Core session engine: clock, buffers, sensor sessions and snapshots.

This package sits between the transport layer and whatever front end drives
it. Leaf building blocks are re-exported here. Sensor sessions, the coordinator,
its event loop and :func:`build_engine` are imported from their own modules
(:mod:`.sensor_session`, :mod:`.coordinator`, :mod:`.event_loop`,
:mod:`.engine_wiring`) since they pull in :mod:`hrvsense.analysis` and
:mod:`hrvsense.transport`, which import the types below.
"""

# Timing and buffers
from .clock import ClockEpoch, PrecisionClock, TimingSession
from .ringbuffer import RingBuffer
from .sample_buffer import DEFAULT_HISTORY_CAPACITY, SampleBuffer

# Shared model types
from .errors import (
    CommandError,
    HrvSenseError,
    RecordingNotFoundError,
    TransportError,
    UnknownDeviceError,
)
from .models import (
    INSUFFICIENT_HRV,
    ConnectionState,
    DataPoint,
    DeviceFeature,
    DeviceInfo,
    HRVMetrics,
    HRVWindow,
    RecordingState,
)
from .status import StatusMessage

# Snapshots
from .recording import RecordingSession, SensorRecording, SensorStatistics, TimingMetadata

__all__ = [
    "ClockEpoch",
    "PrecisionClock",
    "TimingSession",
    "RingBuffer",
    "DEFAULT_HISTORY_CAPACITY",
    "SampleBuffer",
    "HrvSenseError",
    "CommandError",
    "UnknownDeviceError",
    "RecordingNotFoundError",
    "TransportError",
    "ConnectionState",
    "RecordingState",
    "HRVWindow",
    "DeviceFeature",
    "DeviceInfo",
    "DataPoint",
    "HRVMetrics",
    "INSUFFICIENT_HRV",
    "StatusMessage",
    "SensorStatistics",
    "TimingMetadata",
    "SensorRecording",
    "RecordingSession",
]
