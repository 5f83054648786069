"""Factory helpers that wire a running engine from configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..config.runtime import HrvSenseConfig
from ..transport.base import TransportAdapter
from .clock import PrecisionClock
from .coordinator import SessionCoordinator
from .event_loop import CoordinatorLoop
from .recordings import RecordingSink, RecordingsManager


@dataclass(slots=True)
class EngineHandles:
    """Return value from :func:`build_engine` containing ready-to-use pieces."""

    coordinator: SessionCoordinator
    loop: CoordinatorLoop
    recordings: RecordingsManager


def build_engine(
    cfg: Optional[HrvSenseConfig] = None,
    *,
    transport: Optional[TransportAdapter] = None,
    clock: Optional[PrecisionClock] = None,
    recording_sink: Optional[RecordingSink] = None,
) -> EngineHandles:
    """
    Build a coordinator behind a :class:`CoordinatorLoop`.

    Parameters
    ----------
    cfg:
        Runtime configuration (usually loaded from YAML).
    transport:
        Adapter for the radio layer. When given, its event sink is bound to
        :meth:`CoordinatorLoop.post` so callbacks never touch sessions directly.
    clock:
        Shared clock; a fresh :class:`PrecisionClock` with an established
        epoch is created when omitted.
    recording_sink:
        Optional persistence hook for captured recordings.

    The loop is returned stopped; call ``handles.loop.start()``.
    """
    normalized = (cfg or HrvSenseConfig()).sanitized()
    if clock is None:
        clock = PrecisionClock()
        clock.establish_epoch()

    loop = CoordinatorLoop()
    coordinator = SessionCoordinator(
        transport,
        config=normalized,
        clock=clock,
        scheduler=loop.scheduler,
    )
    loop.attach(coordinator)
    if transport is not None:
        transport.bind(loop.post)

    recordings = RecordingsManager(
        recording_sink,
        clock=clock,
        message_display_s=normalized.message_display_s,
    )
    return EngineHandles(coordinator=coordinator, loop=loop, recordings=recordings)


__all__ = ["EngineHandles", "build_engine"]
