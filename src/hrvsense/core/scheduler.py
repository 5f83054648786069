"""Delayed-callback scheduling used for reconnection backoff and health checks."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class ScheduledCall(Protocol):
    """Handle returned by :meth:`Scheduler.call_later`."""

    def cancel(self) -> None:  # pragma: no cover - protocol
        ...

    @property
    def cancelled(self) -> bool:  # pragma: no cover - protocol
        ...


class Scheduler(Protocol):
    """Runs ``callback`` once after ``delay`` seconds without blocking the caller."""

    def call_later(self, delay: float, callback: Callback) -> ScheduledCall:  # pragma: no cover - protocol
        ...


class TimerHandle:
    """Cancellable wrapper around a :class:`threading.Timer`."""

    def __init__(self, delay: float, callback: Callback, *, name: Optional[str] = None) -> None:
        self.delay = float(delay)
        self._callback = callback
        self._cancelled = threading.Event()
        self._timer = threading.Timer(self.delay, self._fire)
        self._timer.daemon = True
        if name:
            self._timer.name = name

    def start(self) -> "TimerHandle":
        self._timer.start()
        return self

    def _fire(self) -> None:
        if self._cancelled.is_set():
            return
        try:
            self._callback()
        except Exception:
            logger.exception("Scheduled callback failed")

    def cancel(self) -> None:
        self._cancelled.set()
        self._timer.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()


__all__ = ["Callback", "ScheduledCall", "Scheduler", "TimerHandle"]
