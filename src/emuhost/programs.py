"""Program files: load, create and save emulator source before a run.

The session layer never reads files itself; a front end saves the program
text here and then starts the emulator with the saved path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import aiofiles

logger = logging.getLogger(__name__)

PROGRAM_EXTENSION = ".ias"


class ProgramFileError(RuntimeError):
    """A program file could not be read or written."""


@dataclass
class ProgramFile:
    """A program on disk and the text last read from or written to it."""

    path: Path
    content: str = ""


def _check_extension(path: Path) -> None:
    if path.suffix.lower() != PROGRAM_EXTENSION:
        raise ProgramFileError(
            f"Not an IAS program ({PROGRAM_EXTENSION} expected): {path}"
        )


async def load_program(path: str | Path) -> ProgramFile:
    """Read a program file."""
    path = Path(path)
    _check_extension(path)
    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            content = await f.read()
    except OSError as e:
        raise ProgramFileError(f"Failed to read file: {e}") from e
    return ProgramFile(path=path, content=content)


async def create_program(path: str | Path) -> ProgramFile:
    """Create (or truncate) an empty program file."""
    return await save_program(path, "")


async def save_program(path: str | Path, content: str) -> ProgramFile:
    """Write ``content`` to ``path``, creating parent directories as needed."""
    path = Path(path)
    _check_extension(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(content)
    except OSError as e:
        raise ProgramFileError(f"Failed to save file: {e}") from e
    logger.debug("Saved program %s (%d chars)", path, len(content))
    return ProgramFile(path=path, content=content)
