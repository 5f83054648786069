"""Transport layer: the adapter protocol and a simulated radio.

Real sensor SDK bindings implement :class:`~.base.TransportAdapter`;
:class:`~.simulated.SimulatedTransport` produces synthetic heart-rate frames
for the CLI and for tests.
"""

from .base import LINK_NOT_READY, LINK_OK, EventSink, LinkResult, LinkStatus, TransportAdapter, TransportLink

__all__ = [
    "EventSink",
    "TransportAdapter",
    "LinkStatus",
    "LinkResult",
    "LINK_OK",
    "LINK_NOT_READY",
    "TransportLink",
]
