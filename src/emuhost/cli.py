"""CLI entry point for emuhost."""

from __future__ import annotations

import asyncio
import html
import logging
import os
import re
import sys
import threading
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from emuhost import __version__
from emuhost.config import EmuhostConfig
from emuhost.programs import ProgramFileError, create_program, load_program
from emuhost.session import commands

if TYPE_CHECKING:
    from emuhost.process.manager import ProcessSession
    from emuhost.session.wire import WireEvent
    from emuhost.stream.messages import DumpMessage, StepMessage

app = typer.Typer(
    name="emuhost",
    help="Run an emulator program interactively and stream its output.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

_TAG = re.compile(r"<[^>]+>")


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def html_to_text(markup: str) -> str:
    """Flatten rendered output markup back to plain text for the terminal."""
    text = markup.replace("<br>", "\n")
    return html.unescape(_TAG.sub("", text))


def _load_config(config_file: str | None, emulator: str | None) -> EmuhostConfig:
    config = EmuhostConfig.load(config_file)
    if emulator:
        config.emulator.path = emulator
    return config


@app.command()
def run(
    program: str = typer.Argument(help="Path to the program (.ias) to run."),
    debug: bool = typer.Option(
        False, "--debug", "-d", help="Start the emulator in IPC debug mode."
    ),
    emulator: str | None = typer.Option(
        None, "--emulator", "-e", help="Emulator executable (default: from env/config)."
    ),
    raw_html: bool = typer.Option(
        False, "--html", help="Print output lines as rendered HTML."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Run a program and forward commands typed on stdin (step, dump A N, exit)."""
    setup_logging(verbose)

    program_path = os.path.abspath(program)
    if not os.path.isfile(program_path):
        typer.echo(f"Error: Program not found: {program_path}", err=True)
        raise typer.Exit(1)

    try:
        source = asyncio.run(load_program(program_path))
    except ProgramFileError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    config = _load_config(config_file, emulator)

    typer.echo(f"emuhost v{__version__}")
    typer.echo(f"Program: {program_path} ({len(source.content.splitlines())} lines)")
    typer.echo(f"Debug mode: {'on' if debug else 'off'}")
    typer.echo("---")

    code = asyncio.run(_run_session(program_path, debug, config, raw_html))
    raise typer.Exit(code)


async def _run_session(
    program_path: str, debug: bool, config: EmuhostConfig, raw_html: bool
) -> int:
    """Run one emulator session with plain terminal output. Returns the exit code."""
    from emuhost.process.manager import ProcessSession
    from emuhost.session.bridge import WireSink
    from emuhost.session.wire import EventType, Wire

    wire = Wire()
    session = ProcessSession(WireSink(wire), config.session, config.emulator)
    finished = asyncio.Event()
    result = {"code": 1}

    async def _consume_wire() -> None:
        queue = wire.subscribe()
        while True:
            event = await queue.get()
            if event is None:
                break
            _print_event(event, raw_html)
            if (
                event.type == EventType.EXIT
                and event.data.get("generation") == session.generation
            ):
                result["code"] = event.data.get("code", 0)
                finished.set()
        wire.unsubscribe(queue)

    consumer_task = asyncio.create_task(_consume_wire())

    await session.start(program_path, debug)
    if session.active is None:
        # Start failed; the error event is already queued
        finished.set()
    else:
        wire.send_status(
            f"Emulator started (pid {session.active.pid}, "
            f"generation {session.generation})"
        )
        await _forward_stdin(session, finished)
        wire.send_status("Stopping emulator")

    await session.shutdown(timeout=config.session.stop_grace_seconds + 1.0)
    wire.close()
    await consumer_task
    return result["code"]


def _start_stdin_reader(
    loop: asyncio.AbstractEventLoop, lines: asyncio.Queue[str | None]
) -> None:
    """Feed stdin lines into ``lines`` from a daemon thread (None on EOF).

    The thread is a daemon; a readline still blocked at exit is abandoned.
    """

    def _reader() -> None:
        try:
            for line in sys.stdin:
                loop.call_soon_threadsafe(lines.put_nowait, line)
            loop.call_soon_threadsafe(lines.put_nowait, None)
        except RuntimeError:
            # Loop already closed
            return

    threading.Thread(target=_reader, name="emuhost-stdin", daemon=True).start()


async def _forward_stdin(session: ProcessSession, finished: asyncio.Event) -> None:
    """Send each stdin line as a command until EOF or the emulator exits."""
    lines: asyncio.Queue[str | None] = asyncio.Queue()
    _start_stdin_reader(asyncio.get_running_loop(), lines)
    finished_task = asyncio.create_task(finished.wait())
    try:
        while not finished.is_set():
            read_task = asyncio.create_task(lines.get())
            done, _ = await asyncio.wait(
                {read_task, finished_task}, return_when=asyncio.FIRST_COMPLETED
            )
            if read_task not in done:
                read_task.cancel()
                break
            line = read_task.result()
            if line is None:
                break
            command = line.strip()
            if not command:
                continue
            result = session.send_command(command)
            if not result.ok:
                err_console.print(f"[red]{escape(result.error)}[/red]")
                break
            if command == commands.exit_command():
                await asyncio.wait({finished_task}, timeout=2.0)
                break
    finally:
        finished_task.cancel()


def _print_event(event: WireEvent, raw_html: bool) -> None:
    from emuhost.session.wire import EventType
    from emuhost.stream.messages import DumpMessage, StepMessage

    d = event.data
    if event.type == EventType.MESSAGE:
        message = d["message"]
        if isinstance(message, StepMessage):
            console.print(_registers_table(message))
        elif isinstance(message, DumpMessage):
            console.print(_memory_table(message))
        else:
            console.print(f"[dim]message ({escape(str(message.type))})[/dim]")
            console.print_json(data=message.payload)

    elif event.type == EventType.OUTPUT:
        markup = d.get("html", "")
        console.print(markup if raw_html else html_to_text(markup), markup=False)

    elif event.type == EventType.ERROR:
        error = d.get("error", "Unknown error")
        err_console.print(f"[red]ERROR:[/red] {escape(error.rstrip())}")

    elif event.type == EventType.EXIT:
        code = d.get("code", 0)
        style = "red" if d.get("abnormal") else "green"
        console.print(
            f"[{style}]\\[exit] code={code} (generation {d.get('generation')})[/{style}]"
        )
        if d.get("abnormal") and d.get("last_output"):
            console.print(escape(d["last_output"]), style="dim")

    elif event.type == EventType.STATUS:
        console.print(f"[dim]{escape(d.get('message', ''))}[/dim]")


def _registers_table(message: StepMessage) -> Table:
    table = Table(title="Registers")
    table.add_column("Register", style="bold")
    table.add_column("Int", justify="right")
    table.add_column("Bits")
    table.add_column("Instruction")
    for name, reg in message.registers.items():
        table.add_row(
            name, reg.integer_text, reg.bits_text, reg.instruction_text or ""
        )
    return table


def _memory_table(message: DumpMessage) -> Table:
    title = "Memory"
    if message.range is not None:
        title = f"Memory [{message.range.start}..{message.range.end}]"
    table = Table(title=title)
    table.add_column("Addr", justify="right", style="bold")
    table.add_column("Raw")
    table.add_column("Signed", justify="right")
    table.add_column("Instruction")
    for cell in message.cells:
        table.add_row(
            cell.address, cell.raw_bits, cell.signed_value, cell.instruction_text or ""
        )
    return table


@app.command()
def render(
    source: str | None = typer.Argument(
        None, help="File with ANSI-styled text (default: stdin)."
    ),
) -> None:
    """Render ANSI-styled text to HTML, one <pre> block per line."""
    from emuhost.stream.ansi import render_html

    if source:
        try:
            with open(source, encoding="utf-8", errors="replace") as f:
                text = f.read()
        except OSError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)
    else:
        text = sys.stdin.read()

    for line in text.splitlines():
        typer.echo(render_html(line))


@app.command()
def new(
    program: str = typer.Argument(help="Path of the program (.ias) to create."),
    force: bool = typer.Option(
        False, "--force", "-f", help="Truncate the file if it already exists."
    ),
) -> None:
    """Create an empty program file."""
    if os.path.exists(program) and not force:
        typer.echo(f"Error: {program} already exists (use --force)", err=True)
        raise typer.Exit(1)
    try:
        created = asyncio.run(create_program(program))
    except ProgramFileError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Created {created.path}")


@app.command()
def locate(
    emulator: str | None = typer.Option(
        None, "--emulator", "-e", help="Emulator executable (default: from env/config)."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Print the emulator executable that `run` would use."""
    from emuhost.process.errors import ExecutableNotFound
    from emuhost.process.locate import resolve_emulator

    config = _load_config(config_file, emulator)
    try:
        typer.echo(resolve_emulator(config.emulator))
    except ExecutableNotFound as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
