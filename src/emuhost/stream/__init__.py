"""Streaming protocol: framing, classification, rendering and the output ceiling.

Everything here is pure and synchronous; the process layer feeds it chunks
as they arrive.
"""

from emuhost.stream.ansi import AnsiRenderer, StyleState, render_html
from emuhost.stream.classifier import Classified, LineKind, MessageClassifier
from emuhost.stream.framing import StreamFramer
from emuhost.stream.guard import MAX_TOTAL_OUTPUT, OutputGuard
from emuhost.stream.messages import (
    DumpMessage,
    MemoryCell,
    MemoryRange,
    Message,
    OpaqueMessage,
    RegisterValue,
    StepMessage,
    parse_message,
)
from emuhost.stream.transcript import Transcript

__all__ = [
    "AnsiRenderer",
    "StyleState",
    "render_html",
    "Classified",
    "LineKind",
    "MessageClassifier",
    "StreamFramer",
    "MAX_TOTAL_OUTPUT",
    "OutputGuard",
    "DumpMessage",
    "MemoryCell",
    "MemoryRange",
    "Message",
    "OpaqueMessage",
    "RegisterValue",
    "StepMessage",
    "parse_message",
    "Transcript",
]
