"""Wire protocol: decouples the process layer from whatever renders it.

The process layer talks to an ``EventSink``. ``Wire`` is the broadcast bus
front ends subscribe to; ``emuhost.session.bridge.WireSink`` connects the
two. This lets the CLI, tests and any future GUI consume the same events.
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from emuhost.stream.messages import Message


@runtime_checkable
class EventSink(Protocol):
    """Receiver for session events.

    ``generation`` identifies the spawned process the event belongs to.
    """

    def on_message(self, message: Message, generation: int) -> None: ...

    def on_output(self, html: str, generation: int) -> None: ...

    def on_error(self, error: str, generation: int) -> None: ...

    def on_exit(
        self, code: int, generation: int, abnormal: bool = False, last_output: str = ""
    ) -> None: ...


class EventType(enum.Enum):
    MESSAGE = "message"
    OUTPUT = "output"
    ERROR = "error"
    EXIT = "exit"
    STATUS = "status"


@dataclass
class WireEvent:
    """An event on the wire."""

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)


class Wire:
    """Async message bus: session -> UI subscribers.

    Single-producer, multi-consumer broadcast.
    """

    def __init__(self) -> None:
        self._subscribers: list[asyncio.Queue[WireEvent | None]] = []
        self._closed: bool = False

    def send(self, event: WireEvent) -> None:
        """Send an event to all subscribers.

        Silently drops events after ``close()`` has been called.
        """
        if self._closed:
            return
        for q in self._subscribers:
            q.put_nowait(event)

    def send_message(self, message: Message, generation: int = 0) -> None:
        self.send(
            WireEvent(
                type=EventType.MESSAGE,
                data={
                    "message": message,
                    "kind": message.type,
                    "generation": generation,
                },
            )
        )

    def send_output(self, html: str, generation: int = 0) -> None:
        self.send(
            WireEvent(
                type=EventType.OUTPUT,
                data={"html": html, "generation": generation},
            )
        )

    def send_error(self, error: str, generation: int = 0) -> None:
        self.send(
            WireEvent(
                type=EventType.ERROR,
                data={"error": error, "generation": generation},
            )
        )

    def send_exit(
        self,
        code: int,
        generation: int = 0,
        abnormal: bool = False,
        last_output: str = "",
    ) -> None:
        """Notify subscribers that an emulator process ended."""
        self.send(
            WireEvent(
                type=EventType.EXIT,
                data={
                    "code": code,
                    "generation": generation,
                    "abnormal": abnormal,
                    "last_output": last_output[:500],
                },
            )
        )

    def send_status(self, message: str) -> None:
        self.send(WireEvent(type=EventType.STATUS, data={"message": message}))

    def subscribe(self) -> asyncio.Queue[WireEvent | None]:
        """Subscribe to events. Returns a queue to read from."""
        q: asyncio.Queue[WireEvent | None] = asyncio.Queue()
        self._subscribers.append(q)
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        """Unsubscribe from events."""
        if q in self._subscribers:
            self._subscribers.remove(q)

    def close(self) -> None:
        """Signal all subscribers that the wire is closing."""
        self._closed = True
        for q in self._subscribers:
            q.put_nowait(None)
