"""Rolling transcript of what an emulator session printed."""

from __future__ import annotations

import re
from collections import deque

from emuhost.stream.ansi import strip_ansi


class Transcript:
    """Bounded record of one session's output lines.

    Stores up to ``max_lines`` ANSI-stripped lines, used for search and the
    exit summary. Stderr lines are recorded with an ``[ERROR] `` prefix. Only the session's
    own reader tasks write here, all on the event loop thread.
    """

    def __init__(self, max_lines: int = 5_000) -> None:
        self._lines: deque[str] = deque(maxlen=max_lines)
        self._total_lines: int = 0  # Total lines ever added

    def append(self, raw_line: str) -> None:
        """Append one raw line."""
        self._lines.append(strip_ansi(raw_line))
        self._total_lines += 1

    def append_text(self, raw_text: str, prefix: str = "") -> None:
        """Append text, splitting into lines. A trailing newline adds nothing."""
        lines = raw_text.splitlines()
        for line in lines:
            self.append(prefix + line)

    def read(self, offset: int = 0, limit: int = 500) -> list[str]:
        """Read cleaned lines starting at a 0-based offset."""
        lines = list(self._lines)
        start = min(offset, len(lines))
        end = min(start + limit, len(lines))
        return lines[start:end]

    def read_all(self) -> str:
        return "\n".join(self._lines)

    def read_tail(self, n: int = 100) -> list[str]:
        """Read the last N cleaned lines."""
        lines = list(self._lines)
        return lines[-n:] if len(lines) > n else lines

    def search(self, pattern: str, limit: int = 50) -> list[tuple[int, str]]:
        """Search cleaned lines for a regex.

        Returns (line_number, line_text) tuples; an invalid pattern matches
        nothing.
        """
        try:
            compiled = re.compile(pattern)
        except re.error:
            return []

        results = []
        for i, line in enumerate(self._lines):
            if compiled.search(line):
                results.append((i, line))
                if len(results) >= limit:
                    break
        return results

    @property
    def line_count(self) -> int:
        """Current number of lines held."""
        return len(self._lines)

    @property
    def total_lines(self) -> int:
        """Total number of lines ever added."""
        return self._total_lines

    def clear(self) -> None:
        self._lines.clear()
        self._total_lines = 0
