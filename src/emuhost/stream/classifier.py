"""Line classification: structured message vs. free-form output."""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from emuhost.stream.ansi import AnsiRenderer
from emuhost.stream.messages import Message, parse_message

if TYPE_CHECKING:
    from emuhost.session.wire import EventSink

logger = logging.getLogger(__name__)


class LineKind(enum.Enum):
    MESSAGE = "message"
    OUTPUT = "output"  # rendered through AnsiRenderer
    RAW_OUTPUT = "raw_output"  # JSON-looking line that failed to parse


@dataclass(frozen=True)
class Classified:
    """Outcome of classifying one line."""

    kind: LineKind
    message: Message | None = None
    text: str = ""


class MessageClassifier:
    """Route complete lines to message or output events.

    A line beginning with ``{`` that fails to parse is passed through raw,
    without rendering or escaping, while ordinary text is rendered. Front
    ends have always received both paths this way, so the asymmetry is kept.
    """

    def __init__(self, renderer: AnsiRenderer | None = None) -> None:
        self._renderer = renderer or AnsiRenderer()

    def classify(self, line: str) -> Classified | None:
        """Classify one line. Returns None for blank lines."""
        if line.startswith("{"):
            try:
                obj = json.loads(line)
            except (json.JSONDecodeError, RecursionError):
                return Classified(kind=LineKind.RAW_OUTPUT, text=line)
            return Classified(kind=LineKind.MESSAGE, message=parse_message(obj))

        if line.strip():
            return Classified(kind=LineKind.OUTPUT, text=self._renderer.render(line))

        return None

    def dispatch(self, line: str, sink: EventSink, generation: int = 0) -> None:
        """Classify ``line`` and forward the result to ``sink``."""
        result = self.classify(line)
        if result is None:
            return
        if result.kind is LineKind.MESSAGE:
            assert result.message is not None
            logger.debug("Message: %s", result.message.type)
            sink.on_message(result.message, generation)
        else:
            sink.on_output(result.text, generation)
