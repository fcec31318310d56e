"""Session events: the sink protocol, the Wire bus and emulator commands."""

from emuhost.session.bridge import WireSink
from emuhost.session.wire import EventSink, EventType, Wire, WireEvent

__all__ = [
    "EventSink",
    "EventType",
    "Wire",
    "WireEvent",
    "WireSink",
]
