"""Boundary between the session engine and a wireless sensor SDK.

Adapters implement :class:`TransportAdapter` and push
:data:`~hrvsense.core.events.TransportEvent` objects into an
:data:`EventSink`. The coordinator never calls an adapter directly; it goes
through :class:`TransportLink`, which turns a missing adapter or a raised
exception into a :class:`LinkResult` value.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol

from ..core.events import TransportEvent

logger = logging.getLogger(__name__)

EventSink = Callable[[TransportEvent], None]


class TransportAdapter(Protocol):
    """Operations the engine requests from the radio layer."""

    def bind(self, sink: EventSink) -> None:  # pragma: no cover - protocol
        ...

    def connect(self, device_id: str) -> None:  # pragma: no cover - protocol
        ...

    def disconnect(self, device_id: str) -> None:  # pragma: no cover - protocol
        ...

    def start_heart_rate_stream(self, device_id: str) -> None:  # pragma: no cover - protocol
        ...

    def start_rr_stream(self, device_id: str) -> None:  # pragma: no cover - protocol
        ...

    def stop_streams(self, device_id: str) -> None:  # pragma: no cover - protocol
        ...

    def start_scan(self) -> None:  # pragma: no cover - protocol
        ...

    def stop_scan(self) -> None:  # pragma: no cover - protocol
        ...


class LinkStatus(Enum):
    OK = "ok"
    NOT_READY = "not_ready"
    FAILED = "failed"


@dataclass(frozen=True)
class LinkResult:
    status: LinkStatus
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is LinkStatus.OK


LINK_OK = LinkResult(LinkStatus.OK)
LINK_NOT_READY = LinkResult(LinkStatus.NOT_READY, "Transport not ready")


class TransportLink:
    """Present-or-absent handle to a :class:`TransportAdapter`."""

    def __init__(self, adapter: Optional[TransportAdapter] = None) -> None:
        self._adapter = adapter

    @property
    def is_ready(self) -> bool:
        return self._adapter is not None

    def attach(self, adapter: TransportAdapter) -> None:
        self._adapter = adapter

    def request(self, operation: str, *args: str) -> LinkResult:
        """Invoke ``adapter.<operation>(*args)`` and report the outcome."""
        adapter = self._adapter
        if adapter is None:
            logger.warning("Transport not ready for %s%r", operation, args)
            return LINK_NOT_READY
        try:
            getattr(adapter, operation)(*args)
        except Exception as exc:
            logger.warning("Transport %s%r failed: %s", operation, args, exc)
            return LinkResult(LinkStatus.FAILED, str(exc) or type(exc).__name__)
        return LINK_OK

    def connect(self, device_id: str) -> LinkResult:
        return self.request("connect", device_id)

    def disconnect(self, device_id: str) -> LinkResult:
        return self.request("disconnect", device_id)

    def start_heart_rate_stream(self, device_id: str) -> LinkResult:
        return self.request("start_heart_rate_stream", device_id)

    def start_rr_stream(self, device_id: str) -> LinkResult:
        return self.request("start_rr_stream", device_id)

    def stop_streams(self, device_id: str) -> LinkResult:
        return self.request("stop_streams", device_id)

    def start_scan(self) -> LinkResult:
        return self.request("start_scan")

    def stop_scan(self) -> LinkResult:
        return self.request("stop_scan")


__all__ = [
    "EventSink",
    "TransportAdapter",
    "LinkStatus",
    "LinkResult",
    "LINK_OK",
    "LINK_NOT_READY",
    "TransportLink",
]
