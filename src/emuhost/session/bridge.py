"""Bridge between ProcessSession callbacks and the Wire event bus.

Events are emitted as they happen:
- MESSAGE fires for each structured line (step, dump, or opaque)
- OUTPUT fires for each rendered text line and for "Error parsing" stderr
- ERROR fires for stderr chunks, spawn failures, overflow and kill failures
- EXIT fires once per spawned process, including replaced ones

Every event carries the ``generation`` of the process that produced it so
a front end can ignore exits of processes it has already replaced.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from emuhost.session.wire import Wire

if TYPE_CHECKING:
    from emuhost.stream.messages import Message


class WireSink:
    """``EventSink`` that forwards every callback onto a Wire."""

    def __init__(self, wire: Wire) -> None:
        self.wire = wire

    def on_message(self, message: Message, generation: int) -> None:
        self.wire.send_message(message, generation)

    def on_output(self, html: str, generation: int) -> None:
        self.wire.send_output(html, generation)

    def on_error(self, error: str, generation: int) -> None:
        self.wire.send_error(error, generation)

    def on_exit(
        self, code: int, generation: int, abnormal: bool = False, last_output: str = ""
    ) -> None:
        self.wire.send_exit(
            code, generation, abnormal=abnormal, last_output=last_output
        )
