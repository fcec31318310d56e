"""Emulator process management.

The emulator runs as a child process with piped stdio. ProcessSession keeps
at most one of them alive, tags each with a generation, and turns its output
into sink events.
"""

from emuhost.process.errors import (
    AbnormalExit,
    EmuhostError,
    ExecutableNotFound,
    NotRunning,
    OutputOverflow,
    SpawnFailed,
)
from emuhost.process.manager import CommandResult, ProcessSession
from emuhost.process.session import Session, SessionState

__all__ = [
    "AbnormalExit",
    "EmuhostError",
    "ExecutableNotFound",
    "NotRunning",
    "OutputOverflow",
    "SpawnFailed",
    "CommandResult",
    "ProcessSession",
    "Session",
    "SessionState",
]
