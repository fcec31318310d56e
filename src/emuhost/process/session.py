"""Emulator session: one spawned process and the pipeline reading it."""

from __future__ import annotations

import asyncio
import codecs
import enum
import logging
import os
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Protocol

from emuhost.process.errors import AbnormalExit, NotRunning, OutputOverflow
from emuhost.session.wire import EventSink
from emuhost.stream.ansi import render_html
from emuhost.stream.classifier import MessageClassifier
from emuhost.stream.framing import StreamFramer
from emuhost.stream.guard import OutputGuard
from emuhost.stream.transcript import Transcript

logger = logging.getLogger(__name__)

DEBUG_ARGS = ("--debug", "IPC")
PARSE_ERROR_MARKER = "Error parsing"
READER_DRAIN_TIMEOUT = 2.0


class SessionState(enum.Enum):
    """Lifecycle states for an emulator session."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"  # SIGTERM sent, waiting for the process to go
    EXITED = "exited"


class ProcessHandle(Protocol):
    """The parts of ``asyncio.subprocess.Process`` a session uses."""

    pid: int
    returncode: int | None
    stdin: asyncio.StreamWriter | None
    stdout: asyncio.StreamReader | None
    stderr: asyncio.StreamReader | None

    async def wait(self) -> int: ...

    def terminate(self) -> None: ...

    def kill(self) -> None: ...


Spawner = Callable[[str, list[str]], Awaitable[ProcessHandle]]


async def spawn_process(executable: str, args: list[str]) -> ProcessHandle:
    """Start the emulator with all three standard streams piped."""
    return await asyncio.create_subprocess_exec(
        executable,
        *args,
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env={**os.environ},
    )


def build_args(program_path: str, debug_mode: bool = False) -> list[str]:
    args = [program_path]
    if debug_mode:
        args.extend(DEBUG_ARGS)
    return args


def normalize_exit_code(returncode: int | None) -> int:
    """Exit code as reported to the UI: signal kills and unknown codes are 0."""
    if returncode is None or returncode < 0:
        return 0
    return returncode


@dataclass
class Session:
    """One emulator process and the per-session stream state.

    Wires the process's stdout through OutputGuard -> StreamFramer ->
    MessageClassifier, and its stderr straight to ``error`` events. Once
    ``retired`` (replaced or stopped), its output is dropped but its exit is
    still reported exactly once.
    """

    program_path: str
    debug_mode: bool = False
    generation: int = 0
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    chunk_size: int = 4096

    framer: StreamFramer = field(default_factory=StreamFramer)
    guard: OutputGuard = field(default_factory=OutputGuard)
    transcript: Transcript = field(default_factory=Transcript)
    state: SessionState = SessionState.STARTING
    retired: bool = False

    # Internal state
    process: ProcessHandle | None = field(default=None, init=False)
    _sink: EventSink | None = field(default=None, init=False)
    _classifier: MessageClassifier = field(
        default_factory=MessageClassifier, init=False
    )
    _readers: list[asyncio.Task] = field(default_factory=list, init=False)
    _exit_task: asyncio.Task | None = field(default=None, init=False)
    _on_exit: Callable[[Session], None] | None = field(default=None, init=False)

    @property
    def args(self) -> list[str]:
        return build_args(self.program_path, self.debug_mode)

    @property
    def pid(self) -> int | None:
        return self.process.pid if self.process is not None else None

    @property
    def exited(self) -> bool:
        return self._exit_task is not None and self._exit_task.done()

    def attach(
        self,
        process: ProcessHandle,
        sink: EventSink,
        on_exit: Callable[[Session], None] | None = None,
    ) -> None:
        """Take ownership of a live process and start reading it."""
        self.process = process
        self._sink = sink
        self._on_exit = on_exit
        self.framer.reset()
        self.guard.reset()
        if self.state is SessionState.STARTING:
            self.state = SessionState.RUNNING

        self._readers = [
            asyncio.create_task(self._pump_stdout()),
            asyncio.create_task(self._pump_stderr()),
        ]
        self._exit_task = asyncio.create_task(self._watch_exit())

        logger.info(
            "Emulator session %s started: pid=%s generation=%d args=%s",
            self.id,
            process.pid,
            self.generation,
            " ".join(self.args),
        )

    def retire(self) -> None:
        """Detach from the UI: later output is dropped, the exit still reported."""
        self.retired = True

    # -- output pipeline ---------------------------------------------------

    async def _pump_stdout(self) -> None:
        assert self.process is not None and self._sink is not None
        stream = self.process.stdout
        if stream is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while True:
                data = await stream.read(self.chunk_size)
                if not data:
                    break
                # Keep draining so the pipe never blocks, but emit nothing
                if self.retired or self.guard.tripped:
                    continue
                if not self.guard.observe(len(data)):
                    self._overflow()
                    continue
                text = decoder.decode(data)
                for line in self.framer.feed(text):
                    if self.retired:
                        break
                    self.transcript.append(line)
                    self._classifier.dispatch(line, self._sink, self.generation)
        except Exception:
            logger.exception("stdout reader for session %s failed", self.id)

    async def _pump_stderr(self) -> None:
        assert self.process is not None and self._sink is not None
        stream = self.process.stderr
        if stream is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while True:
                data = await stream.read(self.chunk_size)
                text = decoder.decode(data, final=not data)
                if text and not (self.retired or self.guard.tripped):
                    self._emit_stderr(text)
                if not data:
                    break
        except Exception:
            logger.exception("stderr reader for session %s failed", self.id)

    def _emit_stderr(self, text: str) -> None:
        assert self._sink is not None
        self.transcript.append_text(text, prefix="[ERROR] ")
        if PARSE_ERROR_MARKER in text:
            self._sink.on_output(render_html(text), self.generation)
        self._sink.on_error(text, self.generation)

    def _overflow(self) -> None:
        assert self._sink is not None
        err = OutputOverflow(self.guard.total_bytes, self.guard.limit)
        logger.warning("Session %s: %s", self.id, err)
        self.state = SessionState.EXITED
        self._sink.on_error(str(err), self.generation)
        try:
            self.kill()
        except OSError as e:
            logger.error("Could not kill session %s after overflow: %s", self.id, e)
            self._sink.on_error(f"Unable to kill emulator: {e}", self.generation)

    async def _watch_exit(self) -> None:
        assert self.process is not None and self._sink is not None
        returncode = await self.process.wait()

        # Readers normally hit EOF right after exit; don't hang on a stray pipe
        done, pending = await asyncio.wait(
            self._readers, timeout=READER_DRAIN_TIMEOUT
        )
        for task in pending:
            task.cancel()

        self.state = SessionState.EXITED
        code = normalize_exit_code(returncode)
        abnormal = code != 0
        if abnormal:
            logger.warning("Session %s: %s", self.id, AbnormalExit(code))
        else:
            logger.info(
                "Emulator session %s exited (returncode=%s)", self.id, returncode
            )

        last_output = "\n".join(self.transcript.read_tail(3))
        try:
            self._sink.on_exit(code, self.generation, abnormal, last_output)
        except Exception:
            logger.exception("Error in exit handler for session %s", self.id)
        if self._on_exit:
            self._on_exit(self)

    # -- control -------------------------------------------------------------

    def write(self, text: str) -> None:
        """Write one command line to the emulator's stdin."""
        if self.state is not SessionState.RUNNING or self.process is None:
            raise NotRunning()
        stdin = self.process.stdin
        if stdin is None or stdin.is_closing():
            raise NotRunning()
        stdin.write((text + "\n").encode("utf-8"))

    def terminate(self) -> None:
        """Ask the process to exit (SIGTERM)."""
        if self.process is None or self.process.returncode is not None:
            return
        if self.state is SessionState.RUNNING:
            self.state = SessionState.STOPPING
        try:
            self.process.terminate()
            logger.info("Sent SIGTERM to session %s (pid=%s)", self.id, self.pid)
        except ProcessLookupError:
            logger.debug("Process already gone: %s", self.pid)

    def kill(self) -> None:
        """Kill the process immediately (SIGKILL). OSError propagates."""
        if self.process is None or self.process.returncode is not None:
            return
        try:
            self.process.kill()
            logger.info("Killed session %s (pid=%s)", self.id, self.pid)
        except ProcessLookupError:
            logger.debug("Process already gone: %s", self.pid)

    async def wait_closed(self) -> None:
        """Wait until the exit has been reported."""
        if self._exit_task is not None:
            await asyncio.shield(self._exit_task)
