"""
Session Coordinator
Owns every sensor session and keeps maintained devices connected.
"""

from __future__ import annotations

import logging
from typing import Dict, List, NamedTuple, Optional, Set, Union

from ..config.runtime import HrvSenseConfig
from ..transport.base import LINK_OK, LinkResult, TransportAdapter, TransportLink
from .clock import PrecisionClock
from .errors import CommandError, UnknownDeviceError
from .events import (
    BatteryLevel,
    DeviceConnected,
    DeviceConnecting,
    DeviceDisconnected,
    DeviceDiscovered,
    FeatureReady,
    HeartRateFrame,
    RadioPowerChanged,
    RrSample,
    ScanFailed,
    TransportEvent,
)
from .models import ConnectionState, DeviceFeature, DeviceInfo, HRVWindow, RecordingState
from .recording import RecordingSession, SensorRecording
from .scheduler import ScheduledCall, Scheduler
from .sensor_session import SensorSession
from .status import StatusMessage

logger = logging.getLogger(__name__)

RADIO_OFF_MESSAGE = "Bluetooth is turned off"


class RecordingStats(NamedTuple):
    recording: int
    paused: int
    idle: int


class SessionCoordinator:
    """
    Coordinates sensor sessions, recording state and reconnection.

    Responsibilities:
    - Create/tear down a :class:`SensorSession` per connected device
    - Route transport events to the matching session
    - Reconnect dropped devices with linear backoff up to a cap
    - Fan out global start/pause/stop commands
    - Report aggregate recording state

    Not thread-safe: run every call on one thread (see
    :class:`~hrvsense.core.event_loop.CoordinatorLoop`).
    """

    def __init__(
        self,
        transport: Optional[TransportAdapter] = None,
        *,
        config: Optional[HrvSenseConfig] = None,
        clock: Optional[PrecisionClock] = None,
        scheduler: Scheduler,
    ) -> None:
        """
        Initialize the coordinator

        Args:
            transport: Adapter for the wireless link; may be attached later
            config: Engine limits (capacity, backoff, HRV defaults)
            clock: Monotonic/wall clock shared by all sessions
            scheduler: Runs delayed callbacks (backoff, stream restarts) on the
                thread that owns this coordinator, e.g.
                :attr:`CoordinatorLoop.scheduler <hrvsense.core.event_loop.CoordinatorLoop.scheduler>`
        """
        self._config = (config or HrvSenseConfig()).sanitized()
        self.clock = clock or PrecisionClock()
        self._scheduler: Scheduler = scheduler
        self._link = TransportLink(transport)

        self._sessions: Dict[str, SensorSession] = {}
        self._maintained: Set[str] = set()
        self._reconnect_attempts: Dict[str, int] = {}
        self._pending_reconnects: Dict[str, ScheduledCall] = {}
        self._pending_restarts: Dict[str, ScheduledCall] = {}
        self._terminal_failures: Dict[str, str] = {}
        self._health_check: Optional[ScheduledCall] = None

        self._discovered: Dict[str, DeviceInfo] = {}
        self.is_scanning = False
        self.is_radio_on = True
        self.in_background = False

        self.global_recording_state = RecordingState.IDLE
        self.error = StatusMessage(display_seconds=self._config.message_display_s)

        logger.info("Session coordinator initialized (transport ready: %s)", self._link.is_ready)

    # ------------------------------------------------------------------ access
    @property
    def config(self) -> HrvSenseConfig:
        return self._config

    @property
    def transport(self) -> TransportLink:
        return self._link

    def attach_transport(self, transport: TransportAdapter) -> None:
        self._link.attach(transport)

    @property
    def sessions(self) -> Dict[str, SensorSession]:
        return dict(self._sessions)

    @property
    def connected_sensors(self) -> List[SensorSession]:
        """Sessions sorted by device id."""
        return [self._sessions[key] for key in sorted(self._sessions)]

    @property
    def discovered_devices(self) -> List[DeviceInfo]:
        return list(self._discovered.values())

    @property
    def maintained_devices(self) -> frozenset[str]:
        return frozenset(self._maintained)

    @property
    def terminal_failures(self) -> Dict[str, str]:
        return dict(self._terminal_failures)

    @property
    def error_message(self) -> Optional[str]:
        return self.error.current(self.clock.now())

    def get_session(self, device_id: str) -> SensorSession:
        session = self._sessions.get(device_id)
        if session is None:
            raise UnknownDeviceError(device_id)
        return session

    def reconnection_attempts(self, device_id: str) -> int:
        return self._reconnect_attempts.get(device_id, 0)

    def has_pending_reconnection(self, device_id: str) -> bool:
        return device_id in self._pending_reconnects

    def _report_error(self, message: str) -> None:
        logger.warning(message)
        self.error.set(message, self.clock.now())

    # ---------------------------------------------------------------- scanning
    def start_scan(self) -> LinkResult:
        self._discovered.clear()
        self.error.clear()
        result = self._link.start_scan()
        self.is_scanning = result.ok
        if not result.ok:
            self._report_error(f"Search failed: {result.error}")
        return result

    def stop_scan(self) -> LinkResult:
        if not self.is_scanning:
            return LINK_OK
        self.is_scanning = False
        return self._link.stop_scan()

    # -------------------------------------------------------------- connection
    def _new_session(self, device: DeviceInfo) -> SensorSession:
        return SensorSession(
            device.device_id,
            device.name,
            self.clock,
            history_capacity=self._config.history_capacity,
            hrv_window=self._config.hrv_window,
            hrv_min_samples=self._config.hrv_min_samples,
        )

    def connect_to(self, device: DeviceInfo) -> LinkResult:
        """User-initiated connect; a failure here is not retried."""
        self.stop_scan()
        self.error.clear()

        device_id = device.device_id
        self._cancel_pending(device_id)
        self._sessions[device_id] = self._new_session(device)
        self._maintained.add(device_id)
        self._reconnect_attempts[device_id] = 0
        self._terminal_failures.pop(device_id, None)

        result = self._link.connect(device_id)
        if not result.ok:
            self._report_error(f"Connection failed: {result.error}")
            self._sessions.pop(device_id, None)
            self._maintained.discard(device_id)
            self._reconnect_attempts.pop(device_id, None)
            return result

        logger.info("Connecting to %s (%s)", device.name, device_id)
        return result

    def disconnect(self, device_id: str) -> bool:
        """
        User-initiated disconnect: stop maintaining, close and discard state.

        Returns False when no session existed for ``device_id``.
        """
        self._maintained.discard(device_id)
        self._reconnect_attempts.pop(device_id, None)
        self._terminal_failures.pop(device_id, None)
        self._cancel_pending(device_id)

        session = self._sessions.pop(device_id, None)
        if session is None:
            return False

        self._link.stop_streams(device_id)
        result = self._link.disconnect(device_id)
        if not result.ok:
            self._report_error(f"Disconnect failed: {result.error}")
        session.reset()
        logger.info("Disconnected %s", session.display_id)
        return True

    def reconnect(self, device_id: str) -> None:
        """Manually restart the reconnection cycle, e.g. after a terminal failure."""
        session = self.get_session(device_id)
        self._maintained.add(device_id)
        self._reconnect_attempts[device_id] = 0
        self._terminal_failures.pop(device_id, None)
        self._cancel_pending(device_id)
        if session.connection_state is ConnectionState.CONNECTED:
            return
        self._attempt_reconnection(device_id)

    def _cancel_pending(self, device_id: str) -> None:
        handle = self._pending_reconnects.pop(device_id, None)
        if handle is not None:
            handle.cancel()
            logger.debug("Cancelled pending reconnection for %s", device_id)
        restart = self._pending_restarts.pop(device_id, None)
        if restart is not None:
            restart.cancel()

    # ------------------------------------------------------------ reconnection
    def _attempt_reconnection(self, device_id: str) -> None:
        if device_id in self._pending_reconnects:
            logger.debug("Reconnection for %s already pending", device_id)
            return

        attempts = self._reconnect_attempts.get(device_id, 0)
        max_attempts = self._config.max_reconnect_attempts
        if attempts >= max_attempts:
            self._fail_terminally(device_id)
            return

        self._reconnect_attempts[device_id] = attempts + 1
        delay = attempts * self._config.reconnect_base_delay_s
        logger.info(
            "Reconnection attempt %d/%d for %s in %.1fs",
            attempts + 1,
            max_attempts,
            device_id,
            delay,
        )
        self._pending_reconnects[device_id] = self._scheduler.call_later(
            delay, lambda: self._run_reconnection(device_id)
        )

    def _run_reconnection(self, device_id: str) -> None:
        self._pending_reconnects.pop(device_id, None)
        if device_id not in self._maintained:
            logger.info("Skipping reconnection - %s no longer maintained", device_id)
            return

        session = self._sessions.get(device_id)
        if session is not None:
            session.connection_state = ConnectionState.CONNECTING

        logger.info("Attempting to reconnect to %s", device_id)
        result = self._link.connect(device_id)
        if result.ok:
            return

        if session is not None:
            session.connection_state = ConnectionState.DISCONNECTED
        self._attempt_reconnection(device_id)

    def _fail_terminally(self, device_id: str) -> None:
        message = f"Failed to reconnect to device {device_id[-6:]}"
        logger.error("Max reconnection attempts reached for %s", device_id)
        self._terminal_failures[device_id] = message
        self.error.set(message, self.clock.now())

    # ----------------------------------------------------------------- streams
    def _start_streams(self, device_id: str) -> bool:
        hr = self._link.start_heart_rate_stream(device_id)
        if not hr.ok:
            logger.warning("HR stream failed for %s: %s", device_id, hr.error)
        rr = self._link.start_rr_stream(device_id)
        if not rr.ok:
            logger.info("RR stream not available for %s: %s", device_id, rr.error)
        return hr.ok

    def restart_streams(self, device_id: str) -> bool:
        """Stop then re-request both data streams for a known device."""
        if device_id not in self._sessions:
            return False
        logger.info("Restarting streams for %s", device_id)
        self._link.stop_streams(device_id)
        return self._start_streams(device_id)

    def _schedule_stream_restart(self, device_id: str) -> None:
        previous = self._pending_restarts.pop(device_id, None)
        if previous is not None:
            previous.cancel()
        self._pending_restarts[device_id] = self._scheduler.call_later(
            self._config.stream_restart_delay_s,
            lambda: self._run_stream_restart(device_id),
        )

    def _run_stream_restart(self, device_id: str) -> None:
        self._pending_restarts.pop(device_id, None)
        session = self._sessions.get(device_id)
        if session is not None and session.connection_state is ConnectionState.CONNECTED:
            self.restart_streams(device_id)

    # ------------------------------------------------------------------ events
    def handle_event(self, event: TransportEvent) -> None:
        """Single dispatch point for everything the transport reports."""
        if isinstance(event, HeartRateFrame):
            self._on_heart_rate_frame(event)
        elif isinstance(event, RrSample):
            self._on_rr_sample(event)
        elif isinstance(event, DeviceConnecting):
            self._on_connecting(event)
        elif isinstance(event, DeviceConnected):
            self._on_connected(event)
        elif isinstance(event, DeviceDisconnected):
            self._on_disconnected(event)
        elif isinstance(event, BatteryLevel):
            self._on_battery_level(event)
        elif isinstance(event, FeatureReady):
            self._on_feature_ready(event)
        elif isinstance(event, RadioPowerChanged):
            self._on_radio_power(event)
        elif isinstance(event, DeviceDiscovered):
            self._on_discovered(event)
        elif isinstance(event, ScanFailed):
            self._on_scan_failed(event)
        else:
            logger.warning("Unhandled transport event: %r", event)

    def _on_heart_rate_frame(self, event: HeartRateFrame) -> None:
        session = self._sessions.get(event.device_id)
        if session is None:
            logger.debug("Dropping HR frame for unknown device %s", event.device_id)
            return
        session.accept_heart_rate_sample(event.bpm)
        if event.rr_intervals_ms:
            # Only the first RR interval of a frame is consumed.
            if len(event.rr_intervals_ms) > 1:
                logger.debug(
                    "Ignoring %d extra RR values for %s",
                    len(event.rr_intervals_ms) - 1,
                    session.display_id,
                )
            session.accept_rr_sample(event.rr_intervals_ms[0])

    def _on_rr_sample(self, event: RrSample) -> None:
        session = self._sessions.get(event.device_id)
        if session is not None:
            session.accept_rr_sample(event.rr_ms)

    def _on_connecting(self, event: DeviceConnecting) -> None:
        session = self._sessions.get(event.device_id)
        if session is not None:
            session.connection_state = ConnectionState.CONNECTING

    def _on_connected(self, event: DeviceConnected) -> None:
        device_id = event.device_id
        session = self._sessions.get(device_id)
        if session is None:
            logger.debug("Connected event for unknown device %s", device_id)
            return

        session.connection_state = ConnectionState.CONNECTED
        self._reconnect_attempts[device_id] = 0
        self._terminal_failures.pop(device_id, None)
        pending = self._pending_reconnects.pop(device_id, None)
        if pending is not None:
            pending.cancel()

        if device_id in self._maintained:
            logger.info("Device %s connected - will restart streams", device_id)
            self._schedule_stream_restart(device_id)
        self.error.clear()

    def _on_disconnected(self, event: DeviceDisconnected) -> None:
        device_id = event.device_id
        session = self._sessions.get(device_id)
        if session is not None:
            session.connection_state = ConnectionState.DISCONNECTED

        if event.pairing_error:
            name = session.device_name if session is not None else device_id
            if device_id in self._maintained:
                # Retried like any drop; only the exhausted cap reaches the user.
                logger.warning("Pairing error with %s - will reconnect", name)
            else:
                self._report_error(f"Pairing error with {name}")

        restart = self._pending_restarts.pop(device_id, None)
        if restart is not None:
            restart.cancel()

        if device_id in self._maintained:
            # Transient drop: keep histories and recording state for the reconnect.
            logger.info("Device %s disconnected unexpectedly - will reconnect", device_id)
            self._attempt_reconnection(device_id)
        elif session is not None:
            self._sessions.pop(device_id, None)
            session.reset()

    def _on_battery_level(self, event: BatteryLevel) -> None:
        session = self._sessions.get(event.device_id)
        if session is not None:
            session.accept_battery_level(event.percent)

    def _on_feature_ready(self, event: FeatureReady) -> None:
        logger.info("Feature %s ready for %s", event.feature.value, event.device_id)
        if event.feature is DeviceFeature.HEART_RATE and event.device_id in self._sessions:
            self._start_streams(event.device_id)

    def _on_radio_power(self, event: RadioPowerChanged) -> None:
        self.is_radio_on = event.is_on
        if event.is_on:
            self.error.clear_if(RADIO_OFF_MESSAGE)
        else:
            self._report_error(RADIO_OFF_MESSAGE)

    def _on_discovered(self, event: DeviceDiscovered) -> None:
        if not self.is_scanning:
            return
        device = event.device
        if device.device_id not in self._discovered:
            logger.info("Discovered %s (%s)", device.name, device.device_id)
            self._discovered[device.device_id] = device

    def _on_scan_failed(self, event: ScanFailed) -> None:
        self.is_scanning = False
        self._report_error(f"Search failed: {event.reason}")

    # --------------------------------------------------------------- recording
    def start_all(self) -> None:
        self.global_recording_state = RecordingState.RECORDING
        sessions = list(self._sessions.values())
        for session in sessions:
            session.start()
        logger.info("Started recording on %d sensors", len(sessions))

    def pause_all(self) -> None:
        self.global_recording_state = RecordingState.PAUSED
        for session in list(self._sessions.values()):
            session.pause()
        logger.info("Paused all recordings")

    def stop_all(self) -> None:
        self.global_recording_state = RecordingState.IDLE
        for session in list(self._sessions.values()):
            session.stop()
        logger.info("Stopped all recordings")

    def start(self, device_id: str) -> bool:
        return self.get_session(device_id).start()

    def pause(self, device_id: str) -> bool:
        return self.get_session(device_id).pause()

    def stop(self, device_id: str) -> bool:
        return self.get_session(device_id).stop()

    def set_hrv_window(self, device_id: str, window: Union[HRVWindow, str, int]) -> HRVWindow:
        resolved = HRVWindow.parse(window)
        self.get_session(device_id).set_hrv_window(resolved)
        return resolved

    # ------------------------------------------------------------- aggregates
    @property
    def recording_stats(self) -> RecordingStats:
        counts = {state: 0 for state in RecordingState}
        for session in self._sessions.values():
            counts[session.recording_state] += 1
        return RecordingStats(
            recording=counts[RecordingState.RECORDING],
            paused=counts[RecordingState.PAUSED],
            idle=counts[RecordingState.IDLE],
        )

    @property
    def any_recording(self) -> bool:
        return any(s.recording_state is RecordingState.RECORDING for s in self._sessions.values())

    @property
    def has_individual_recordings(self) -> bool:
        """True when sensors record although no global recording was started."""
        return self.global_recording_state is RecordingState.IDLE and self.any_recording

    @property
    def global_session_duration(self) -> float:
        return max((s.session_duration for s in self._sessions.values()), default=0.0)

    # --------------------------------------------------------------- snapshots
    def snapshot(self, device_id: str) -> Optional[SensorRecording]:
        session = self.get_session(device_id)
        return SensorRecording.from_session(session, end_wall_time=self.clock.wall_now())

    def capture_recording(self, name: Optional[str] = None) -> RecordingSession:
        """Materialize the current recording across all sensors."""
        if self.global_recording_state is RecordingState.IDLE:
            raise CommandError("No active recording to capture")

        end_wall_time = self.clock.wall_now()
        sensor_recordings = []
        for session in self.connected_sensors:
            recording = SensorRecording.from_session(session, end_wall_time=end_wall_time)
            if recording is None:
                logger.info("Skipped sensor %s - no data to save", session.device_id)
                continue
            sensor_recordings.append(recording)

        if not sensor_recordings:
            raise CommandError("No sensor data to save")

        return RecordingSession.create(
            start_date=min(r.timing_metadata.start_wall_time for r in sensor_recordings),
            end_date=max(r.timing_metadata.end_wall_time for r in sensor_recordings),
            sensor_recordings=sensor_recordings,
            name=name,
        )

    # -------------------------------------------------------------- lifecycle
    def check_connection_health(self) -> None:
        for device_id in sorted(self._maintained):
            session = self._sessions.get(device_id)
            if session is None or session.connection_state is not ConnectionState.CONNECTED:
                logger.warning("Sensor %s not connected - attempting reconnection", device_id)
                self._attempt_reconnection(device_id)
            else:
                self._reconnect_attempts[device_id] = 0

    def reconnect_lost_devices(self) -> None:
        for device_id in sorted(self._maintained):
            session = self._sessions.get(device_id)
            if session is None or session.connection_state is not ConnectionState.CONNECTED:
                self._attempt_reconnection(device_id)

    def _schedule_health_check(self) -> None:
        self._health_check = self._scheduler.call_later(
            self._config.health_check_interval_s, self._run_health_check
        )

    def _run_health_check(self) -> None:
        if not self.in_background:
            return
        self.check_connection_health()
        self._schedule_health_check()

    def enter_background(self) -> None:
        if self.in_background:
            return
        self.in_background = True
        logger.info("Entering background - monitoring connection health")
        self._schedule_health_check()

    def enter_foreground(self) -> None:
        self.in_background = False
        if self._health_check is not None:
            self._health_check.cancel()
            self._health_check = None
        logger.info("Entering foreground - checking connections")
        self.reconnect_lost_devices()
        for device_id, session in sorted(self._sessions.items()):
            if session.connection_state is ConnectionState.CONNECTED:
                self._schedule_stream_restart(device_id)

    def shutdown(self) -> None:
        """Cancel timers and disconnect every sensor."""
        self.in_background = False
        if self._health_check is not None:
            self._health_check.cancel()
            self._health_check = None
        self.stop_scan()
        for device_id in list(self._sessions):
            self.disconnect(device_id)
        for device_id in list(self._pending_reconnects):
            self._cancel_pending(device_id)

    def __repr__(self) -> str:
        return (
            f"<SessionCoordinator(sensors={len(self._sessions)}, "
            f"state={self.global_recording_state.value})>"
        )
