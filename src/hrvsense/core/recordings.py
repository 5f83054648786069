"""In-memory catalogue of captured :class:`RecordingSession` objects."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, List, Optional, Protocol

from .clock import PrecisionClock
from .errors import CommandError, RecordingNotFoundError
from .recording import RecordingSession, search, sorted_by_date
from .status import DEFAULT_DISPLAY_SECONDS, StatusMessage

if TYPE_CHECKING:
    from .coordinator import SessionCoordinator

logger = logging.getLogger(__name__)


class RecordingSink(Protocol):
    """Persistence hook notified on every catalogue change."""

    def save(self, recording: RecordingSession) -> None:  # pragma: no cover - protocol
        ...

    def update(self, recording: RecordingSession) -> None:  # pragma: no cover - protocol
        ...

    def delete(self, recording_id: str) -> None:  # pragma: no cover - protocol
        ...


class RecordingsManager:
    """
    Keeps captured recordings newest first and mirrors changes to a sink.

    Failed operations set :attr:`error` and re-raise; successful ones set
    :attr:`success`.
    """

    def __init__(
        self,
        sink: Optional[RecordingSink] = None,
        *,
        clock: Optional[PrecisionClock] = None,
        message_display_s: float = DEFAULT_DISPLAY_SECONDS,
        recordings: Iterable[RecordingSession] = (),
    ) -> None:
        self._sink = sink
        self._clock = clock or PrecisionClock()
        self._recordings: List[RecordingSession] = sorted_by_date(recordings)
        self.error = StatusMessage(display_seconds=message_display_s)
        self.success = StatusMessage(display_seconds=message_display_s)

    @property
    def recordings(self) -> List[RecordingSession]:
        return list(self._recordings)

    def __len__(self) -> int:
        return len(self._recordings)

    def _fail(self, exc: Exception) -> None:
        logger.warning("Recording operation failed: %s", exc)
        self.error.set(str(exc), self._clock.now())

    def _succeed(self, text: str) -> None:
        logger.info(text)
        self.success.set(text, self._clock.now())

    def _index(self, recording_id: str) -> int:
        for index, recording in enumerate(self._recordings):
            if recording.id == recording_id:
                return index
        raise RecordingNotFoundError(recording_id)

    # --------------------------------------------------------------- commands
    def capture(self, coordinator: "SessionCoordinator", name: Optional[str] = None) -> RecordingSession:
        """Snapshot every sensor of ``coordinator`` and store the result."""
        try:
            recording = coordinator.capture_recording(name)
            if self._sink is not None:
                self._sink.save(recording)
        except CommandError as exc:
            self._fail(exc)
            raise
        self._recordings.insert(0, recording)
        self._succeed("Recording saved successfully!")
        logger.info(
            "Captured %r with %d sensors, %d data points",
            recording.name,
            recording.sensor_count,
            recording.total_data_points,
        )
        return recording

    def add(self, recording: RecordingSession) -> None:
        """Insert an already materialized recording (e.g. loaded from disk)."""
        self._recordings.append(recording)
        self._recordings = sorted_by_date(self._recordings)

    def rename(self, recording_id: str, new_name: str) -> RecordingSession:
        name = new_name.strip()
        try:
            if not name:
                raise CommandError("Recording name cannot be empty")
            recording = self._recordings[self._index(recording_id)]
        except CommandError as exc:
            self._fail(exc)
            raise
        previous = recording.name
        recording.name = name
        if self._sink is not None:
            try:
                self._sink.update(recording)
            except Exception as exc:
                # Catalogue and sink must keep agreeing on the name.
                recording.name = previous
                self._fail(exc)
                raise
        self._succeed("Recording renamed")
        return recording

    def delete(self, recording_id: str) -> None:
        try:
            index = self._index(recording_id)
        except RecordingNotFoundError as exc:
            self._fail(exc)
            raise
        if self._sink is not None:
            self._sink.delete(recording_id)
        del self._recordings[index]
        self._succeed("Recording deleted")

    def delete_many(self, recording_ids: Iterable[str]) -> int:
        """Delete every known id; unknown ids are skipped. Returns the count removed."""
        wanted = set(recording_ids)
        removed = 0
        for recording in list(self._recordings):
            if recording.id not in wanted:
                continue
            if self._sink is not None:
                self._sink.delete(recording.id)
            self._recordings.remove(recording)
            removed += 1
        if removed:
            self._succeed(f"Deleted {removed} recordings")
        return removed

    # ---------------------------------------------------------------- queries
    def get(self, recording_id: str) -> RecordingSession:
        return self._recordings[self._index(recording_id)]

    def filter_by_text(self, text: str) -> List[RecordingSession]:
        return search(self._recordings, text)

    def filter_by_date(self, start: datetime, end: datetime) -> List[RecordingSession]:
        return [r for r in self._recordings if start <= r.start_date <= end]

    def filter_by_sensor_count(self, count: int) -> List[RecordingSession]:
        return [r for r in self._recordings if r.sensor_count == count]

    def filter_by_min_duration(self, seconds: float) -> List[RecordingSession]:
        return [r for r in self._recordings if r.duration >= seconds]

    @property
    def error_message(self) -> Optional[str]:
        return self.error.current(self._clock.now())

    @property
    def success_message(self) -> Optional[str]:
        return self.success.current(self._clock.now())


__all__ = ["RecordingSink", "RecordingsManager"]
