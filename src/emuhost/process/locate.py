"""Emulator executable lookup."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from emuhost.config import EmulatorConfig
from emuhost.process.errors import ExecutableNotFound

logger = logging.getLogger(__name__)

# sys.platform prefix -> directory under bin/
_PLATFORM_DIRS = {
    "win32": "win64",
    "linux": "linux",
    "darwin": "macos",
}


def platform_dir(platform: str | None = None) -> str | None:
    """Directory name holding the binary for ``platform``, or None if unsupported."""
    platform = platform or sys.platform
    for prefix, name in _PLATFORM_DIRS.items():
        if platform.startswith(prefix):
            return name
    return None


def executable_name(platform: str | None = None) -> str:
    platform = platform or sys.platform
    return "emulator.exe" if platform.startswith("win32") else "emulator.out"


def candidate_paths(roots: list[Path], platform: str | None = None) -> list[Path]:
    """Every location checked for the binary, in order."""
    subdir = platform_dir(platform)
    if subdir is None:
        return []
    name = executable_name(platform)
    return [root / "bin" / subdir / name for root in roots]


def resolve_emulator(config: EmulatorConfig, platform: str | None = None) -> str:
    """Return the path of the emulator executable.

    Raises:
        ExecutableNotFound: unsupported platform, or nothing at any of the
            expected locations.
    """
    if config.path:
        path = Path(config.path).expanduser()
        if path.is_file():
            return str(path)
        raise ExecutableNotFound(f"Emulator not found at {path}", [str(path)])

    if platform_dir(platform) is None:
        raise ExecutableNotFound("Your platform is not supported.")

    roots = config.resource_roots()
    candidates = candidate_paths(roots, platform)
    for candidate in candidates:
        logger.debug("Looking for emulator at: %s", candidate)
        if candidate.is_file():
            return str(candidate)

    searched = [str(c) for c in candidates]
    raise ExecutableNotFound(
        f"Emulator not found (searched: {os.pathsep.join(searched)})", searched
    )
