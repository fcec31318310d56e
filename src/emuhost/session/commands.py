"""Command strings understood by the emulator on stdin.

The emulator defines what these do; this module only spells them.
"""

from __future__ import annotations

STEP = "step"
DUMP = "dump"
EXIT = "exit"


def step() -> str:
    return STEP


def dump(start: int, count: int) -> str:
    """Request ``count`` memory words starting at ``start``."""
    if start < 0 or count < 0:
        raise ValueError(f"dump range must be non-negative: {start} {count}")
    return f"{DUMP} {start} {count}"


def exit_command() -> str:
    return EXIT
