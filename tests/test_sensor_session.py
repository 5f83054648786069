from __future__ import annotations

import pytest

from hrvsense.analysis.hrv import compute_hrv
from hrvsense.core.models import INSUFFICIENT_HRV, ConnectionState, HRVWindow, RecordingState
from hrvsense.core.sensor_session import SensorSession


@pytest.fixture
def session(clock) -> SensorSession:
    return SensorSession("8C4F12A0B1C2", "Polar H10 A0B1C2", clock, history_capacity=300)


def _feed(session: SensorSession, fake_time, rr_values, step: float = 1.0) -> None:
    for rr in rr_values:
        fake_time.advance(step)
        session.accept_heart_rate_sample(round(60000 / rr))
        session.accept_rr_sample(rr)


def test_initial_state(session) -> None:
    assert session.connection_state is ConnectionState.CONNECTING
    assert session.recording_state is RecordingState.IDLE
    assert session.timing_session is None
    assert session.session_duration == 0.0
    assert session.display_id == "A0B1C2"
    assert not session.is_active


def test_live_values_update_without_recording(session) -> None:
    session.accept_heart_rate_sample(72)
    session.accept_rr_sample(833)
    session.accept_battery_level(80)

    assert session.heart_rate == 72
    assert session.rr_interval == 833
    assert session.battery_level == 80
    assert session.last_update is not None
    assert len(session.heart_rate_history) == 0
    assert len(session.rr_interval_history) == 0
    assert session.total_heart_rate_samples == 0


def test_start_from_idle_creates_fresh_timing_session(session, fake_time) -> None:
    assert session.start()
    first = session.timing_session
    fake_time.advance(20.0)
    assert session.stop()
    assert session.start()

    assert session.timing_session is not first
    assert session.session_duration == pytest.approx(0.0)


def test_pause_resume_keeps_elapsed_time(session, fake_time) -> None:
    session.start()
    timing = session.timing_session
    fake_time.advance(10.0)
    assert session.pause()
    at_pause = session.session_duration
    fake_time.advance(5.0)
    assert session.start()

    assert session.timing_session is timing
    assert session.session_duration >= at_pause
    assert session.session_duration == pytest.approx(15.0)


def test_idle_and_paused_never_transition_directly(session) -> None:
    assert not session.pause()
    assert session.recording_state is RecordingState.IDLE
    assert not session.stop()

    session.start()
    session.pause()
    assert not session.pause()
    assert session.stop()
    assert session.recording_state is RecordingState.IDLE


def test_stop_keeps_buffers(session, fake_time) -> None:
    session.start()
    _feed(session, fake_time, [800, 810, 790])
    session.pause()
    session.stop()

    assert len(session.heart_rate_history) == 3
    assert len(session.rr_interval_history) == 3
    assert session.timing_session is not None


def test_samples_while_paused_are_not_buffered(session, fake_time) -> None:
    session.start()
    _feed(session, fake_time, [800, 810])
    session.pause()
    _feed(session, fake_time, [900])

    assert len(session.rr_interval_history) == 2
    assert session.rr_interval == 900


def test_running_statistics(session, fake_time) -> None:
    session.start()
    for bpm in (70, 65, 81, 72):
        fake_time.advance(1.0)
        session.accept_heart_rate_sample(bpm)

    assert session.min_heart_rate == 65
    assert session.max_heart_rate == 81
    assert session.total_heart_rate_samples == 4
    # (70 + 65 + 81 + 72) // 4
    assert session.average_heart_rate == 72


def test_samples_are_timestamped_from_timing_session(session, fake_time) -> None:
    session.start()
    start_wall = session.timing_session.start_wall_time
    fake_time.advance(2.5)
    session.accept_heart_rate_sample(70)

    point = session.heart_rate_history.latest()
    assert point.monotonic_timestamp == session.timing_session.start_monotonic_time + 2.5
    assert (point.wall_timestamp - start_wall).total_seconds() == pytest.approx(2.5)


def test_hrv_recomputed_on_every_rr_sample(session, fake_time) -> None:
    session.start()
    _feed(session, fake_time, [800, 810, 790, 805])
    assert session.hrv == INSUFFICIENT_HRV

    _feed(session, fake_time, [795])
    assert session.hrv_sample_count == 5
    assert session.sdnn > 0
    assert session.rmssd > 0


def test_changing_window_recomputes(session, fake_time) -> None:
    session.start()
    # Five samples 20 s apart span 80 s: inside 2 minutes, not inside 1 minute.
    _feed(session, fake_time, [800, 810, 790, 805, 795], step=20.0)
    assert session.hrv_sample_count == 5

    session.set_hrv_window(HRVWindow.ONE_MINUTE)
    assert session.hrv == INSUFFICIENT_HRV

    session.set_hrv_window(HRVWindow.TWO_MINUTES)
    assert session.hrv_sample_count == 5


def test_hrv_ignores_rr_samples_older_than_window(session, fake_time) -> None:
    session.set_hrv_window(HRVWindow.ONE_MINUTE)
    session.start()
    _feed(session, fake_time, [600])
    # Last sample lands at t=76, so the window [16, 76] drops the 600 ms outlier at t=1.
    _feed(session, fake_time, [800, 810, 790, 805, 795], step=15.0)

    assert len(session.rr_interval_history) == 6
    assert session.hrv == compute_hrv([800, 810, 790, 805, 795])


def test_no_value_range_validation(session, fake_time) -> None:
    session.start()
    fake_time.advance(1.0)
    session.accept_heart_rate_sample(400)
    session.accept_rr_sample(5000)
    assert session.max_heart_rate == 400
    assert session.rr_interval_history.latest().value == 5000


def test_reset_clears_everything(session, fake_time) -> None:
    session.start()
    _feed(session, fake_time, [800, 810, 790, 805, 795])
    session.accept_battery_level(50)
    session.reset()

    assert session.heart_rate == 0
    assert session.rr_interval == 0
    assert session.battery_level == 0
    assert len(session.heart_rate_history) == 0
    assert len(session.rr_interval_history) == 0
    assert session.min_heart_rate == session.max_heart_rate == 0
    assert session.average_heart_rate == 0
    assert session.hrv == INSUFFICIENT_HRV
    assert session.timing_session is None


def test_summary_is_plain_mapping(session) -> None:
    summary = session.summary()
    assert summary["device_id"] == session.device_id
    assert summary["recording"] == "idle"
    assert summary["hrv_window"] == "5 Minutes"
