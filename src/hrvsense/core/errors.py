"""Exception types raised by the session engine."""

from __future__ import annotations


class HrvSenseError(Exception):
    """Base class for all hrvsense errors."""


class CommandError(HrvSenseError):
    """A caller command was issued while its precondition does not hold."""


class UnknownDeviceError(CommandError):
    """No sensor session exists for the requested device id."""

    def __init__(self, device_id: str) -> None:
        super().__init__(f"Unknown device: {device_id}")
        self.device_id = device_id


class RecordingNotFoundError(CommandError):
    """No captured recording exists with the requested id."""

    def __init__(self, recording_id: str) -> None:
        super().__init__("Recording not found")
        self.recording_id = recording_id


class TransportError(HrvSenseError):
    """Raised by transport adapters when a radio-level operation fails."""
