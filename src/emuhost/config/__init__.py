"""Configuration: Pydantic models for emuhost settings."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from emuhost.stream.guard import MAX_TOTAL_OUTPUT


class EmulatorConfig(BaseModel):
    """Where to find the emulator binary.

    The binary lives at ``<resources>/bin/<platform>/<file>`` under one of
    ``resources_dirs``; ``path`` overrides the lookup entirely.
    """

    path: str | None = Field(
        default=None, description="Explicit emulator executable (skips lookup)"
    )
    resources_dirs: list[str] = Field(
        default_factory=lambda: ["."],
        description="Roots searched for bin/<platform>/<file>",
    )

    def resource_roots(self) -> list[Path]:
        return [Path(p).expanduser() for p in self.resources_dirs]


class SessionConfig(BaseModel):
    """Per-session limits and timings."""

    max_output_bytes: int = Field(
        default=MAX_TOTAL_OUTPUT,
        gt=0,
        description="Cumulative stdout ceiling before the process is killed",
    )
    stop_grace_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Wait between SIGTERM and SIGKILL on stop",
    )
    read_chunk_size: int = Field(default=4096, gt=0)
    transcript_lines: int = Field(default=5_000, gt=0)


class EmuhostConfig(BaseModel):
    """Top-level emuhost configuration."""

    emulator: EmulatorConfig = Field(default_factory=EmulatorConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)

    @classmethod
    def load(cls, config_path: str | None = None) -> EmuhostConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            EMUHOST_EMULATOR          - Explicit emulator executable path
            EMUHOST_RESOURCES         - Resource roots, separated by os.pathsep
            EMUHOST_MAX_OUTPUT        - Stdout ceiling in bytes
            EMUHOST_STOP_GRACE        - Seconds between SIGTERM and SIGKILL
            EMUHOST_TRANSCRIPT_LINES  - Lines kept per session transcript
        """
        # override=True so an edited .env wins over stale exported values
        load_dotenv(override=True)

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)

        emulator = config_data.get("emulator") or {}
        session = config_data.get("session") or {}

        env_emulator = os.environ.get("EMUHOST_EMULATOR")
        if env_emulator:
            emulator["path"] = env_emulator

        env_resources = os.environ.get("EMUHOST_RESOURCES")
        if env_resources:
            emulator["resources_dirs"] = [
                p for p in env_resources.split(os.pathsep) if p
            ]

        env_max_output = os.environ.get("EMUHOST_MAX_OUTPUT")
        if env_max_output:
            session["max_output_bytes"] = int(env_max_output)

        env_stop_grace = os.environ.get("EMUHOST_STOP_GRACE")
        if env_stop_grace:
            session["stop_grace_seconds"] = float(env_stop_grace)

        env_transcript = os.environ.get("EMUHOST_TRANSCRIPT_LINES")
        if env_transcript:
            session["transcript_lines"] = int(env_transcript)

        config_data["emulator"] = emulator
        config_data["session"] = session

        return cls.model_validate(config_data)
