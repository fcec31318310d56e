"""ProcessSession: owns the (at most one) live emulator session."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from emuhost.config import EmulatorConfig, SessionConfig
from emuhost.process.errors import (
    EmuhostError,
    ExecutableNotFound,
    NotRunning,
    SpawnFailed,
)
from emuhost.process.locate import resolve_emulator
from emuhost.process.session import (
    Session,
    SessionState,
    Spawner,
    spawn_process,
)
from emuhost.session.wire import EventSink
from emuhost.stream.guard import OutputGuard
from emuhost.stream.transcript import Transcript

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of handing a command to the emulator.

    ``ok`` only means the line was written; the emulator never acknowledges
    commands, so any answer arrives later as an ordinary event.
    """

    ok: bool = True
    error: str = ""
    kind: str = ""

    @classmethod
    def failed(cls, err: EmuhostError) -> CommandResult:
        return cls(ok=False, error=str(err), kind=err.kind)


class ProcessSession:
    """Lifecycle manager for the emulator process.

    Guarantees:
    - At most one session is live; ``start`` kills the previous one first
    - Each spawned process gets a new generation; a replaced or stopped
      process's output is dropped, its exit still reported once
    - Runtime failures become ``error`` events, never exceptions
    - ``shutdown`` leaves no orphan processes
    """

    def __init__(
        self,
        sink: EventSink,
        config: SessionConfig | None = None,
        emulator: EmulatorConfig | None = None,
        resolver: Callable[[], str] | None = None,
        spawner: Spawner | None = None,
    ) -> None:
        self._sink = sink
        self._config = config or SessionConfig()
        emulator_config = emulator or EmulatorConfig()
        self._resolver = resolver or (lambda: resolve_emulator(emulator_config))
        self._spawner = spawner or spawn_process
        self._active: Session | None = None
        self._generation = 0
        # Every session whose exit has not been reported yet
        self._live: dict[int, Session] = {}
        self._kill_timers: dict[int, asyncio.TimerHandle] = {}

    @property
    def active(self) -> Session | None:
        return self._active

    @property
    def state(self) -> SessionState:
        if self._active is None:
            return SessionState.IDLE
        return self._active.state

    @property
    def generation(self) -> int:
        """Generation of the most recent start attempt (0 before any)."""
        return self._generation

    async def start(self, program_path: str, debug_mode: bool = False) -> None:
        """Spawn the emulator for ``program_path``.

        Results (output, errors, exit) arrive through the sink.
        """
        if not program_path:
            raise ValueError("program_path must not be empty")

        self._replace_active()

        self._generation += 1
        session = Session(
            program_path=program_path,
            debug_mode=debug_mode,
            generation=self._generation,
            chunk_size=self._config.read_chunk_size,
            guard=OutputGuard(self._config.max_output_bytes),
            transcript=Transcript(self._config.transcript_lines),
        )
        self._active = session

        try:
            executable = self._resolver()
        except ExecutableNotFound as e:
            logger.error("Cannot start emulator: %s", e)
            self._abandon(session, str(e))
            return

        logger.debug(
            "Spawning emulator with program: %s, debug_mode: %s",
            program_path,
            debug_mode,
        )
        try:
            process = await self._spawner(executable, session.args)
        except OSError as e:
            err = SpawnFailed(e)
            logger.error("%s", err)
            self._abandon(session, str(err))
            return

        self._live[session.generation] = session
        session.attach(process, self._sink, on_exit=self._session_exited)

        # start() was called again while we awaited the spawn
        if self._active is not session:
            session.retire()
            self._kill(session)

    def stop(self) -> None:
        """Stop the live session: SIGTERM now, SIGKILL after the grace window.

        The session is released immediately; its exit event follows later.
        """
        session = self._active
        if session is None:
            return
        self._active = None
        session.retire()
        try:
            session.terminate()
        except OSError as e:
            logger.error("Error stopping emulator: %s", e)

        loop = asyncio.get_running_loop()
        self._kill_timers[session.generation] = loop.call_later(
            self._config.stop_grace_seconds, self._force_kill, session
        )

    def send_command(self, text: str) -> CommandResult:
        """Write ``text`` plus a newline to the emulator's stdin."""
        session = self._active
        if session is None:
            return CommandResult.failed(NotRunning())
        try:
            session.write(text)
        except NotRunning as e:
            return CommandResult.failed(e)
        logger.debug("Sent command to session %s: %s", session.id, text)
        return CommandResult()

    async def shutdown(self, timeout: float = 2.0) -> None:
        """Terminate the live session and wait for every process to exit."""
        self.stop()
        pending = list(self._live.values())
        if not pending:
            return
        done, still_running = await asyncio.wait(
            [asyncio.ensure_future(s.wait_closed()) for s in pending],
            timeout=timeout,
        )
        if still_running:
            for session in list(self._live.values()):
                self._kill(session)
            await asyncio.wait(still_running, timeout=timeout)
        for timer in self._kill_timers.values():
            timer.cancel()
        self._kill_timers.clear()
        logger.info("All emulator sessions shut down")

    async def wait_closed(self) -> None:
        """Wait until every spawned process has reported its exit."""
        while self._live:
            await asyncio.gather(*(s.wait_closed() for s in list(self._live.values())))

    # -- internals -------------------------------------------------------------

    def _replace_active(self) -> None:
        old = self._active
        if old is None:
            return
        logger.info("Replacing emulator session %s", old.id)
        self._active = None
        old.retire()
        self._kill(old)

    def _abandon(self, session: Session, error: str) -> None:
        session.state = SessionState.EXITED
        if self._active is session:
            self._active = None
        self._sink.on_error(error, session.generation)

    def _kill(self, session: Session) -> None:
        try:
            session.kill()
        except OSError as e:
            logger.error("Could not kill session %s: %s", session.id, e)
            self._sink.on_error(f"Unable to kill emulator: {e}", session.generation)

    def _force_kill(self, session: Session) -> None:
        self._kill_timers.pop(session.generation, None)
        if session.exited:
            return
        logger.warning(
            "Session %s did not exit after SIGTERM, sending SIGKILL", session.id
        )
        self._kill(session)

    def _session_exited(self, session: Session) -> None:
        timer = self._kill_timers.pop(session.generation, None)
        if timer is not None:
            timer.cancel()
        self._live.pop(session.generation, None)
        if self._active is session:
            self._active = None
