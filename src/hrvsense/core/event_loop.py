"""
Single-threaded serialization point for the session engine.

Transport callbacks arrive on arbitrary threads; they only :meth:`post`
events into a FIFO queue. One worker thread drains the queue and is the only
thread that ever touches the :class:`SessionCoordinator` or its sessions.
Commands from other threads go through :meth:`CoordinatorLoop.submit`, and
delayed callbacks (reconnect backoff, stream restarts) are funnelled back
into the same queue by :class:`LoopScheduler`.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple

from ..tools.debug import debug_enabled
from .events import TransportEvent
from .scheduler import Callback, TimerHandle

if TYPE_CHECKING:
    from .coordinator import SessionCoordinator

logger = logging.getLogger(__name__)

_POLL_INTERVAL_S = 0.1


@dataclass
class _Call:
    fn: Callable[..., Any]
    args: Tuple[Any, ...] = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    future: Optional[Future] = None


_STOP = object()


class LoopScheduler:
    """Scheduler whose callbacks run on the loop thread, not the timer thread."""

    def __init__(self, loop: "CoordinatorLoop", thread_name: str = "HrvSenseLoopTimer") -> None:
        self._loop = loop
        self._thread_name = thread_name

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        handle: TimerHandle

        def _on_loop() -> None:
            # Cancellation may land between the timer firing and this running.
            if not handle.cancelled:
                callback()

        handle = TimerHandle(
            max(0.0, delay),
            lambda: self._loop.post_callback(_on_loop),
            name=self._thread_name,
        )
        return handle.start()


class CoordinatorLoop:
    """Worker thread plus FIFO queue in front of a :class:`SessionCoordinator`."""

    def __init__(
        self,
        coordinator: Optional["SessionCoordinator"] = None,
        *,
        thread_name: str = "HrvSenseCoordinator",
    ) -> None:
        self._coordinator = coordinator
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()
        self._stopped = False
        self._thread: Optional[threading.Thread] = None
        self._thread_name = thread_name
        self.scheduler = LoopScheduler(self)

    @property
    def coordinator(self) -> "SessionCoordinator":
        if self._coordinator is None:
            raise RuntimeError("CoordinatorLoop has no coordinator attached")
        return self._coordinator

    def attach(self, coordinator: "SessionCoordinator") -> None:
        self._coordinator = coordinator

    # ------------------------------------------------------------- producers
    def _enqueue(self, item: object) -> bool:
        with self._state_lock:
            if self._stopped:
                return False
            self._queue.put_nowait(item)
            return True

    def post(self, event: TransportEvent) -> None:
        """Enqueue a transport event; never blocks. Dropped once stopped."""
        if not self._enqueue(event):
            logger.debug("Loop stopped, dropping event %r", event)

    def post_callback(self, fn: Callback) -> None:
        if not self._enqueue(_Call(fn)):
            logger.debug("Loop stopped, dropping callback %r", fn)

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """
        Run ``fn(*args, **kwargs)`` on the loop thread and return its future.

        Raises :class:`RuntimeError` once the loop has been stopped.
        """
        future: Future = Future()
        if not self._enqueue(_Call(fn, args, kwargs, future)):
            raise RuntimeError("CoordinatorLoop is stopped")
        return future

    def call(self, fn: Callable[..., Any], *args: Any, timeout: Optional[float] = None, **kwargs: Any) -> Any:
        """Blocking variant of :meth:`submit`; must not be called from the loop thread."""
        return self.submit(fn, *args, **kwargs).result(timeout)

    # -------------------------------------------------------------- consumer
    def _process(self, item: object) -> None:
        if isinstance(item, _Call):
            future = item.future
            if future is None:
                try:
                    item.fn(*item.args, **item.kwargs)
                except Exception:
                    logger.exception("Loop callback failed")
                return
            if not future.set_running_or_notify_cancel():
                return
            try:
                result = item.fn(*item.args, **item.kwargs)
            except Exception as exc:
                future.set_exception(exc)
            else:
                future.set_result(result)
            return

        try:
            self.coordinator.handle_event(item)  # type: ignore[arg-type]
        except Exception:
            logger.exception("Failed to handle event: %r", item)

    def run_pending(self) -> int:
        """Drain the queue on the calling thread; returns the number processed."""
        processed = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return processed
            if item is _STOP:
                continue
            self._process(item)
            processed += 1

    def _run(self) -> None:
        debug_on = debug_enabled()
        debug_total = 0
        debug_start = time.perf_counter()
        debug_last_log = debug_start

        while not self._stop_event.is_set():
            try:
                item = self._queue.get(timeout=_POLL_INTERVAL_S)
            except queue.Empty:
                continue
            if item is _STOP:
                break
            self._process(item)

            if debug_on:
                debug_total += 1
                perf_now = time.perf_counter()
                if perf_now - debug_last_log >= 5.0:
                    rate = debug_total / max(1e-9, perf_now - debug_start)
                    logger.debug(
                        "loop items=%d avg=%.1f/s backlog=%d",
                        debug_total,
                        rate,
                        self._queue.qsize(),
                    )
                    debug_last_log = perf_now

        self._cancel_pending()

    def _cancel_pending(self) -> int:
        """Drop everything still queued; futures of pending calls are cancelled."""
        dropped = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if isinstance(item, _Call) and item.future is not None:
                item.future.cancel()
            if item is not _STOP:
                dropped += 1
        if dropped:
            logger.debug("Dropped %d queued items on stop", dropped)
        return dropped

    # ------------------------------------------------------------- lifecycle
    def start(self) -> "CoordinatorLoop":
        if self._thread is not None and self._thread.is_alive():
            return self
        if self._coordinator is None:
            raise RuntimeError("CoordinatorLoop has no coordinator attached")
        self._stop_event.clear()
        with self._state_lock:
            self._stopped = False
        self._thread = threading.Thread(target=self._run, name=self._thread_name, daemon=True)
        self._thread.start()
        logger.debug("Coordinator loop started")
        return self

    def stop(self, *, join: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop the worker. Calls still queued are cancelled and later
        :meth:`submit` calls raise :class:`RuntimeError`.
        """
        with self._state_lock:
            self._stopped = True
            self._stop_event.set()
            self._queue.put_nowait(_STOP)
        if join and self._thread is not None:
            self._thread.join(timeout)
        if not self.is_alive():
            self._cancel_pending()
        logger.debug("Coordinator loop stopped")

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()


__all__ = ["CoordinatorLoop", "LoopScheduler"]
