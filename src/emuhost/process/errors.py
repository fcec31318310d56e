"""Emulator process errors.

These exception types let the session layer turn failures into ``error``
events with consistent text, and let callers tell the kinds apart without
scraping strings.
"""

from __future__ import annotations


class EmuhostError(RuntimeError):
    """Base class for process-layer errors."""

    kind = "error"


class ExecutableNotFound(EmuhostError):
    """No emulator binary at the expected platform location."""

    kind = "executable_not_found"

    def __init__(self, detail: str, searched: list[str] | None = None):
        self.searched = list(searched or [])
        super().__init__(detail)


class SpawnFailed(EmuhostError):
    """The OS refused to start the emulator."""

    kind = "spawn_failed"

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Failed to start emulator: {cause}")


class NotRunning(EmuhostError):
    """A command was sent with no live session."""

    kind = "not_running"

    def __init__(self) -> None:
        super().__init__("Emulator not running")


class OutputOverflow(EmuhostError):
    """Cumulative stdout passed the session ceiling."""

    kind = "output_overflow"

    def __init__(self, total_bytes: int, limit: int):
        self.total_bytes = total_bytes
        self.limit = limit
        super().__init__(
            f"Emulator output exceeded limit ({total_bytes} > {limit} bytes). "
            "Process killed."
        )


class AbnormalExit(EmuhostError):
    """The emulator exited with a non-zero code."""

    kind = "abnormal_exit"

    def __init__(self, code: int):
        self.code = code
        super().__init__(f"Emulator exited with code {code}")
