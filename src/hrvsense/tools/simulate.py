"""
Run a timed multi-sensor session against :class:`SimulatedTransport`.

Scans, connects every virtual sensor, records for ``--duration`` seconds
(optionally forcing a link drop to exercise reconnection), prints a per-sensor
HRV summary and captures the recording in memory.

Example::

    hrvsense-sim --sensors 3 --duration 90 --hrv-window 1min --drop-after 20
"""

from __future__ import annotations

import argparse
import logging
import time
from typing import Sequence

from ..config import load_config
from ..core.engine_wiring import EngineHandles, build_engine
from ..core.errors import CommandError
from ..core.models import ConnectionState, HRVWindow
from ..transport.simulated import SimulatedTransport, demo_sensors
from .debug import configure_logging

logger = logging.getLogger(__name__)


def _wait_for(predicate, timeout: float, poll: float = 0.05) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(poll)
    return predicate()


def _print_summary(handles: EngineHandles) -> None:
    coordinator = handles.coordinator
    sessions = handles.loop.call(lambda: [s.summary() for s in coordinator.connected_sensors])
    print(f"{'sensor':>8} {'state':>12} {'hr':>4} {'rr':>5} {'n':>5} {'sdnn':>7} {'rmssd':>7}")
    for row in sessions:
        print(
            f"{row['device_id'][-6:]:>8} {row['connection']:>12} {row['heart_rate']:>4} "
            f"{row['rr_interval']:>5} {row['samples']:>5} {row['sdnn']:>7.2f} {row['rmssd']:>7.2f}"
        )


def run_session(
    handles: EngineHandles,
    transport: SimulatedTransport,
    *,
    duration_s: float,
    hrv_window: HRVWindow,
    report_interval_s: float,
    connect_timeout_s: float = 5.0,
) -> int:
    loop = handles.loop
    coordinator = handles.coordinator
    expected = len(transport.sensors)

    loop.call(coordinator.start_scan)
    if not _wait_for(lambda: len(loop.call(lambda: coordinator.discovered_devices)) >= expected, connect_timeout_s):
        found = len(loop.call(lambda: coordinator.discovered_devices))
        logger.warning("Only discovered %d/%d sensors", found, expected)

    for device in loop.call(lambda: coordinator.discovered_devices):
        loop.call(coordinator.connect_to, device)

    def _all_connected() -> bool:
        states = loop.call(lambda: [s.connection_state for s in coordinator.connected_sensors])
        return bool(states) and all(state is ConnectionState.CONNECTED for state in states)

    if not _wait_for(_all_connected, connect_timeout_s):
        print("[WARN] Not every sensor connected; recording with what is available")

    for session in loop.call(lambda: coordinator.connected_sensors):
        loop.call(coordinator.set_hrv_window, session.device_id, hrv_window)
    print(f"[INFO] HRV window: {hrv_window.label} - {hrv_window.description}")
    loop.call(coordinator.start_all)

    started = time.monotonic()
    next_report = started + report_interval_s
    try:
        while time.monotonic() - started < duration_s:
            time.sleep(0.1)
            if time.monotonic() >= next_report:
                _print_summary(handles)
                next_report += report_interval_s
    except KeyboardInterrupt:
        print("[INFO] Interrupted, finishing session")

    try:
        recording = loop.call(handles.recordings.capture, coordinator)
    except CommandError as exc:
        print(f"[WARN] Nothing captured: {exc}")
    else:
        print(
            f"[INFO] Captured {recording.name!r}: {recording.sensor_count} sensors, "
            f"{recording.total_data_points} points, avg SDNN {recording.average_sdnn:.1f} ms"
        )

    loop.call(coordinator.stop_all)
    _print_summary(handles)
    loop.call(coordinator.shutdown)
    return 0


# --------------------------------------------------------------------------- # CLI
def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Simulated multi-sensor heart-rate session with live HRV."
    )
    parser.add_argument("-c", "--config", type=str, help="Optional YAML config file.")
    parser.add_argument(
        "-n",
        "--sensors",
        type=int,
        default=2,
        help="Number of simulated sensors (default: 2).",
    )
    parser.add_argument(
        "-d",
        "--duration",
        type=float,
        default=30.0,
        help="Recording length in seconds (default: 30).",
    )
    parser.add_argument(
        "-w",
        "--hrv-window",
        type=str,
        default=None,
        help="HRV window: 1min, 2min, 5min or 10min (default: from config).",
    )
    parser.add_argument(
        "--frame-interval",
        type=float,
        default=None,
        help="Seconds between frames; default follows the simulated RR interval.",
    )
    parser.add_argument(
        "--drop-after",
        type=float,
        default=None,
        help="Force a link drop on the first sensor after this many seconds.",
    )
    parser.add_argument(
        "--report-interval",
        type=float,
        default=5.0,
        help="Seconds between summary tables (default: 5).",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible runs.")
    parser.add_argument("--log-level", type=str, default=None, help="Override the configured log level.")

    args = parser.parse_args(argv)
    if args.sensors < 1:
        parser.error("--sensors must be at least 1")

    cfg = load_config(args.config).sanitized()
    configure_logging(args.log_level or cfg.log_level)

    try:
        hrv_window = HRVWindow.parse(args.hrv_window) if args.hrv_window else cfg.hrv_window
    except ValueError as exc:
        parser.error(str(exc))

    sensors = demo_sensors(args.sensors)
    if args.drop_after is not None:
        sensors[0].drop_after_s = args.drop_after
    transport = SimulatedTransport(sensors, frame_interval_s=args.frame_interval, seed=args.seed)

    handles = build_engine(cfg, transport=transport)
    handles.loop.start()
    try:
        return run_session(
            handles,
            transport,
            duration_s=args.duration,
            hrv_window=hrv_window,
            report_interval_s=max(0.5, args.report_interval),
        )
    finally:
        handles.loop.stop()
        transport.close()


if __name__ == "__main__":
    raise SystemExit(main())
