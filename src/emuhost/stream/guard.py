"""Cumulative output ceiling for a single emulator session."""

from __future__ import annotations

MAX_TOTAL_OUTPUT = 64 * 1024  # 64 KiB


class OutputGuard:
    """Count stdout bytes for one session and trip once past the limit.

    This is a lifetime total, not a rate: once tripped the guard stays
    tripped until ``reset()``.
    """

    def __init__(self, limit: int = MAX_TOTAL_OUTPUT) -> None:
        self.limit = limit
        self._total_bytes = 0
        self._tripped = False

    def observe(self, size: int) -> bool:
        """Account a raw chunk of ``size`` bytes.

        Returns True while the session is within the ceiling. The chunk that
        pushes the total over the limit returns False, as does every chunk
        after it.
        """
        self._total_bytes += size
        if self._total_bytes > self.limit:
            self._tripped = True
        return not self._tripped

    @property
    def total_bytes(self) -> int:
        return self._total_bytes

    @property
    def tripped(self) -> bool:
        return self._tripped

    def reset(self) -> None:
        self._total_bytes = 0
        self._tripped = False
