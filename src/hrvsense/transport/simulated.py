"""
Synthetic sensor radio for the CLI and integration tests.

Each :class:`SimulatedSensor` emits one heart-rate frame per beat-ish
interval with an RR value drawn from a normal distribution, so SDNN roughly
tracks ``rr_jitter_ms``. Everything is delivered through the bound
:data:`~hrvsense.transport.base.EventSink` from background threads, the same
way a real radio SDK calls back.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import numpy as np

from ..core.errors import TransportError
from ..core.events import (
    BatteryLevel,
    DeviceConnected,
    DeviceConnecting,
    DeviceDisconnected,
    DeviceDiscovered,
    FeatureReady,
    HeartRateFrame,
    TransportEvent,
)
from ..core.models import DeviceFeature, DeviceInfo
from .base import EventSink

logger = logging.getLogger(__name__)


@dataclass
class SimulatedSensor:
    """Parameters of one virtual chest strap."""

    device_id: str
    name: str
    heart_rate_bpm: float = 65.0
    rr_jitter_ms: float = 40.0
    battery_percent: int = 90
    rssi: int = -60
    # Number of upcoming connect() calls that raise before one succeeds.
    failing_connects: int = 0
    # Emit a transient drop after this many seconds of streaming.
    drop_after_s: Optional[float] = None


class _Streamer:
    def __init__(self, thread: threading.Thread, stop_event: threading.Event) -> None:
        self.thread = thread
        self.stop_event = stop_event

    def stop(self) -> None:
        self.stop_event.set()


class SimulatedTransport:
    """:class:`~hrvsense.transport.base.TransportAdapter` backed by numpy noise."""

    def __init__(
        self,
        sensors: Sequence[SimulatedSensor],
        *,
        frame_interval_s: Optional[float] = None,
        connect_latency_s: float = 0.05,
        scan_interval_s: float = 0.05,
        seed: Optional[int] = None,
    ) -> None:
        self._sensors: Dict[str, SimulatedSensor] = {s.device_id: s for s in sensors}
        self._frame_interval_s = frame_interval_s
        self._connect_latency_s = max(0.0, connect_latency_s)
        self._scan_interval_s = max(0.0, scan_interval_s)
        self._rng = np.random.default_rng(seed)
        self._rng_lock = threading.Lock()
        self._sink: Optional[EventSink] = None
        self._streamers: Dict[str, _Streamer] = {}
        self._connected: set[str] = set()
        self._scan_stop: Optional[threading.Event] = None
        self._lock = threading.RLock()

    @property
    def sensors(self) -> Dict[str, SimulatedSensor]:
        return dict(self._sensors)

    def bind(self, sink: EventSink) -> None:
        self._sink = sink

    def _emit(self, event: TransportEvent) -> None:
        sink = self._sink
        if sink is None:
            logger.debug("No sink bound, dropping %r", event)
            return
        sink(event)

    def _sensor(self, device_id: str) -> SimulatedSensor:
        sensor = self._sensors.get(device_id)
        if sensor is None:
            raise TransportError(f"Device {device_id} not in range")
        return sensor

    # ---------------------------------------------------------------- scanning
    def start_scan(self) -> None:
        with self._lock:
            if self._scan_stop is not None:
                self._scan_stop.set()
            stop_event = threading.Event()
            self._scan_stop = stop_event

        def _scan() -> None:
            for sensor in list(self._sensors.values()):
                if stop_event.wait(self._scan_interval_s):
                    return
                self._emit(DeviceDiscovered(DeviceInfo(sensor.device_id, sensor.name, sensor.rssi)))

        threading.Thread(target=_scan, name="HrvSenseSimScan", daemon=True).start()

    def stop_scan(self) -> None:
        with self._lock:
            if self._scan_stop is not None:
                self._scan_stop.set()
                self._scan_stop = None

    # -------------------------------------------------------------- connection
    def connect(self, device_id: str) -> None:
        sensor = self._sensor(device_id)
        with self._lock:
            if sensor.failing_connects > 0:
                sensor.failing_connects -= 1
                raise TransportError(f"Connection to {sensor.name} timed out")

        def _connect() -> None:
            self._emit(DeviceConnecting(device_id))
            if self._connect_latency_s:
                threading.Event().wait(self._connect_latency_s)
            with self._lock:
                self._connected.add(device_id)
            self._emit(DeviceConnected(device_id))
            self._emit(BatteryLevel(device_id, sensor.battery_percent))
            self._emit(FeatureReady(device_id, DeviceFeature.HEART_RATE))

        threading.Thread(target=_connect, name=f"HrvSenseSimConnect[{device_id}]", daemon=True).start()

    def disconnect(self, device_id: str) -> None:
        self._sensor(device_id)
        self.stop_streams(device_id)
        with self._lock:
            self._connected.discard(device_id)
        self._emit(DeviceDisconnected(device_id))

    def drop(self, device_id: str) -> None:
        """Simulate an unexpected link loss."""
        logger.info("Simulating link loss for %s", device_id)
        self.disconnect(device_id)

    # ----------------------------------------------------------------- streams
    def _next_rr_ms(self, sensor: SimulatedSensor) -> int:
        mean = 60000.0 / max(1.0, sensor.heart_rate_bpm)
        with self._rng_lock:
            value = self._rng.normal(mean, sensor.rr_jitter_ms)
        return int(np.clip(round(value), 250, 2000))

    def start_heart_rate_stream(self, device_id: str) -> None:
        sensor = self._sensor(device_id)
        with self._lock:
            if device_id not in self._connected:
                raise TransportError(f"Device {device_id} not connected")
            existing = self._streamers.get(device_id)
            if existing is not None and existing.thread.is_alive():
                return
            stop_event = threading.Event()

            def _stream() -> None:
                elapsed = 0.0
                while not stop_event.is_set():
                    rr_ms = self._next_rr_ms(sensor)
                    interval = self._frame_interval_s if self._frame_interval_s is not None else rr_ms / 1000.0
                    if stop_event.wait(interval):
                        return
                    elapsed += interval
                    bpm = int(round(60000.0 / rr_ms))
                    self._emit(HeartRateFrame(device_id, bpm, (rr_ms,)))
                    if sensor.drop_after_s is not None and elapsed >= sensor.drop_after_s:
                        sensor.drop_after_s = None
                        stop_event.set()
                        with self._lock:
                            self._connected.discard(device_id)
                            self._streamers.pop(device_id, None)
                        self._emit(DeviceDisconnected(device_id))
                        return

            thread = threading.Thread(target=_stream, name=f"HrvSenseSimStream[{device_id}]", daemon=True)
            self._streamers[device_id] = _Streamer(thread, stop_event)
            thread.start()

    def start_rr_stream(self, device_id: str) -> None:
        self._sensor(device_id)
        # RR values already ride along with every heart-rate frame.
        raise TransportError("Dedicated RR stream not supported by simulator")

    def stop_streams(self, device_id: str) -> None:
        with self._lock:
            streamer = self._streamers.pop(device_id, None)
        if streamer is not None:
            streamer.stop()

    def close(self) -> None:
        self.stop_scan()
        with self._lock:
            streamers = list(self._streamers.values())
            self._streamers.clear()
            self._connected.clear()
        for streamer in streamers:
            streamer.stop()


def demo_sensors(count: int, *, base_heart_rate: float = 62.0) -> list[SimulatedSensor]:
    """``count`` sensors with slightly different heart rates and variability."""
    return [
        SimulatedSensor(
            device_id=f"SIM-{index:02d}-{0xA1B2C0 + index:06X}",
            name=f"Simulated Strap {index + 1}",
            heart_rate_bpm=base_heart_rate + 4.0 * index,
            rr_jitter_ms=30.0 + 10.0 * index,
            battery_percent=max(5, 95 - 7 * index),
        )
        for index in range(count)
    ]


__all__ = ["SimulatedSensor", "SimulatedTransport", "demo_sensors"]
