"""Line framing for chunked process output."""

from __future__ import annotations

import re

_LINE_BREAK = re.compile(r"\r?\n")


class StreamFramer:
    """Accumulate text fragments into complete lines.

    ``\\n`` and ``\\r\\n`` both terminate a line. The unterminated tail of the
    last fragment is kept in ``pending`` and prefixed onto the next one, so
    the lines produced never depend on where the stream was cut into chunks.
    The tail is not flushed at end of stream.
    """

    def __init__(self) -> None:
        self._pending = ""

    def feed(self, chunk: str) -> list[str]:
        """Add a fragment and return the lines it completes, in order."""
        if not chunk:
            return []
        parts = _LINE_BREAK.split(self._pending + chunk)
        self._pending = parts.pop()
        return parts

    @property
    def pending(self) -> str:
        """Unterminated remainder waiting for its line break."""
        return self._pending

    def reset(self) -> None:
        self._pending = ""
