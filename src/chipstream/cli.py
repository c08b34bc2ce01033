"""CLI entry point for chipstream."""

from __future__ import annotations

import asyncio
import codecs
import json
import logging
import os
import re
import sys
import time
from dataclasses import asdict

import typer
from rich.console import Console
from rich.table import Table

from chipstream import __version__
from chipstream.config import ChipStreamConfig, LogConfig
from chipstream.session.log import ToolStreamLog, is_session_init
from chipstream.stream.listener import StreamCallbacks
from chipstream.stream.reducer import StreamReducer
from chipstream.stream.replay import parse_complete_log
from chipstream.stream.state import ParsedTable, StreamSnapshot

app = typer.Typer(
    name="chipstream",
    help="Parse and replay agent stream logs from the chip authenticity assistant.",
    no_args_is_help=True,
)

console = Console()
logger = logging.getLogger(__name__)

# The agent writes this entry once, after its last message
SESSION_COMPLETE_RE = re.compile(r"^(?:\[[^\]\n]*\] )?session_complete:", re.MULTILINE)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _require_file(path: str) -> str:
    log_path = os.path.abspath(path)
    if not os.path.isfile(log_path):
        typer.echo(f"Error: Log file not found: {log_path}", err=True)
        raise typer.Exit(1)
    return log_path


def _render_table(table: ParsedTable, title: str) -> Table:
    rendered = Table(title=title, show_lines=False)
    for header in table.headers:
        rendered.add_column(header)
    for row in table.rows:
        # Pad or clip ragged rows to the header width
        cells = (row + [""] * table.column_count)[: table.column_count]
        rendered.add_row(*cells)
    return rendered


def _stats_line(state: StreamSnapshot) -> str:
    s = state.stats
    return (
        f"text: {s.text_length} chars, {s.word_count} words | "
        f"tools: {s.tool_count} | events: {s.total_events} | "
        f"tokens: {state.usage.total_tokens:,}"
    )


def _print_verdict(state: StreamSnapshot) -> None:
    verdict = state.verdict_data
    if verdict is None:
        return
    typer.echo(f"\nVerdict: {verdict.is_authentic or 'Unknown'}")
    if verdict.reason:
        typer.echo(f"Reason: {verdict.reason}")
    for url in verdict.citations:
        typer.echo(f"  - {url}")


@app.command()
def parse(
    log_file: str = typer.Argument(help="Path to a tool stream log."),
    as_json: bool = typer.Option(
        False, "--json", "-j", help="Print the parsed state as JSON."
    ),
    tables: bool = typer.Option(
        False, "--tables", "-t", help="Render detected markdown tables."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Replay a complete log and print what the agent said and did."""
    setup_logging(verbose)
    log_path = _require_file(log_file)
    config = ChipStreamConfig.load(config_file)

    with open(log_path, encoding="utf-8", errors="replace") as f:
        log_text = f.read()

    result = parse_complete_log(log_text, config.parser)

    if as_json:
        typer.echo(json.dumps(asdict(result), indent=2, ensure_ascii=False))
        return

    typer.echo(result.formatted_output)
    if tables:
        for idx, table in enumerate(result.tables, start=1):
            console.print(_render_table(table, f"Table {idx}"))
    _print_verdict(result)
    typer.echo(f"\n---\n{_stats_line(result)}")


@app.command()
def watch(
    log_file: str = typer.Argument(help="Path to a tool stream log being written."),
    interval: float = typer.Option(
        0.5, "--interval", "-i", help="Seconds between polls."
    ),
    timeout: float = typer.Option(
        600.0, "--timeout", help="Give up after this many seconds."
    ),
    idle_polls: int = typer.Option(
        10,
        "--idle-polls",
        help="Stop after this many empty polls once a message has completed.",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Follow a log as it is written, printing text as it streams in.

    Stops once the session_complete entry has been read and the file stops
    growing. Logs without that entry stop after ``--idle-polls`` empty
    polls following a completed message, so a pause between turns of a
    multi-turn session is not mistaken for the end.
    """
    setup_logging(verbose)
    log_path = _require_file(log_file)
    config = ChipStreamConfig.load(config_file)

    reducer = StreamReducer(
        StreamCallbacks(
            on_text_update=lambda delta, _full: print(delta, end="", flush=True),
            on_tool_use=lambda tool: print(f"\n> {tool.name}", flush=True),
            on_error=lambda error: typer.echo(f"\nERROR: {error}", err=True),
        ),
        config.parser,
    )

    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    offset = 0
    tail = ""
    session_done = False
    empty_polls = 0
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        with open(log_path, "rb") as f:
            f.seek(offset)
            data = f.read()
        offset += len(data)
        chunk = decoder.decode(data)
        if chunk:
            empty_polls = 0
            reducer.process_chunk(chunk)
            # Keep the start of an unfinished line for a label split across polls
            window = tail + chunk
            session_done = session_done or bool(SESSION_COMPLETE_RE.search(window))
            partial = window[window.rfind("\n") + 1 :]
            tail = partial if len(partial) <= 64 else ""
        elif session_done:
            break
        elif reducer.state.is_complete:
            empty_polls += 1
            if empty_polls >= idle_polls:
                break
        time.sleep(interval)
    else:
        typer.echo("\n[watch timed out]", err=True)

    reducer.finish()
    state = reducer.get_state()
    if state.tool_activity:
        typer.echo("\n\n--- Tool activity ---")
        for line in state.tool_activity:
            typer.echo(line)
    _print_verdict(state)
    typer.echo(f"\n---\n{_stats_line(state)}")


@app.command()
def record(
    source: str = typer.Argument(
        "-", help="Agent SDK stream-json output, one message per line ('-' for stdin)."
    ),
    log_dir: str | None = typer.Option(
        None, "--log-dir", "-o", help="Write logs here (enables logging)."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Write a tool stream log from the agent SDK's stream-json messages."""
    setup_logging(verbose)
    config = ChipStreamConfig.load(config_file)
    if log_dir:
        config.log.log_dir = log_dir
        config.log.enabled = True
    if not config.log.enabled:
        typer.echo(
            "Error: Tool stream logging is disabled "
            "(set CHIPSTREAM_LOG_ENABLED=1 or pass --log-dir)",
            err=True,
        )
        raise typer.Exit(1)

    if source == "-":
        lines = sys.stdin.read().splitlines()
    else:
        with open(_require_file(source), encoding="utf-8", errors="replace") as f:
            lines = f.read().splitlines()

    log = asyncio.run(_record_messages(lines, config.log))
    if log is None:
        typer.echo("Error: No session init message in input", err=True)
        raise typer.Exit(1)
    if not log.opened:
        typer.echo(f"Error: Could not write {log.path}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Wrote {log.path}")


async def _record_messages(lines: list[str], config: LogConfig) -> ToolStreamLog | None:
    log: ToolStreamLog | None = None
    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            message = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("Skipping non-JSON line: %s", line[:200])
            continue
        if not isinstance(message, dict):
            continue

        if log is None:
            # Nothing is logged before the session id is known
            if not is_session_init(message) or not message.get("session_id"):
                continue
            log = ToolStreamLog.from_config(message["session_id"], config)
            if log is None:
                return None
            await log.open()
        await log.record(message)
    return log


@app.command()
def version() -> None:
    """Print the chipstream version."""
    typer.echo(f"chipstream v{__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
