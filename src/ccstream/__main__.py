"""CLI entry point for ccstream."""

import logging
import time
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler

from ccstream import __version__
from ccstream.config import Config, display_config_warnings, get_config_file_path, load_config, save_config
from ccstream.display import (
    build_parsed_log_panel,
    build_summary_table,
    format_message_header,
    render_chunk,
    render_event,
)
from ccstream.events import LogSummary, StreamEvent
from ccstream.logfile import get_log_summary, is_valid_log_file, parse_log_file
from ccstream.monitor import create_chunk_stream, monitor_multiple_logs
from ccstream.parser import is_system_event, is_tool_result_event

app = typer.Typer(
    name="ccstream",
    help="Parse and monitor Claude stream-json logs.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"ccstream {__version__}")
        raise typer.Exit()


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _load_config(config_path: Path | None) -> Config:
    config, warnings = load_config(config_path, project_dir=Path.cwd())
    display_config_warnings(warnings, err_console)
    return config


ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-C", help="Config file path."),
]


@app.callback()
def main(
    debug: Annotated[
        bool,
        typer.Option("--debug", "-D", help="Enable debug logging."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True, help="Show version and exit."),
    ] = False,
) -> None:
    """Parse and monitor Claude stream-json logs."""
    _configure_logging(debug)


@app.command()
def show(
    log_file: Annotated[Path, typer.Argument(help="Log file to parse.")],
    messages: Annotated[
        bool,
        typer.Option("--messages/--no-messages", help="Print reconstructed assistant messages."),
    ] = True,
) -> None:
    """Show the session summary and messages of a complete log."""
    try:
        parsed = parse_log_file(log_file)
    except OSError as e:
        err_console.print(f"[red]Error:[/] Cannot read {log_file}: {e}")
        raise typer.Exit(1) from e

    console.print(build_parsed_log_panel(parsed, log_file))
    if messages:
        for message in parsed.messages:
            console.print(format_message_header(message.role, message.timestamp))
            console.print(message.content, markup=False, highlight=False)
            console.print()


@app.command()
def summary(
    log_files: Annotated[list[Path], typer.Argument(help="Log files to summarize.")],
) -> None:
    """Summarize one or more logs without loading them into memory."""
    rows: list[tuple[Path, LogSummary]] = []
    failed = False
    for log_file in log_files:
        try:
            rows.append((log_file, get_log_summary(log_file)))
        except OSError as e:
            err_console.print(f"[red]Error:[/] Cannot read {log_file}: {e}")
            failed = True

    if rows:
        console.print(build_summary_table(rows))
    if failed:
        raise typer.Exit(1)


@app.command()
def validate(
    log_files: Annotated[list[Path], typer.Argument(help="Files to check.")],
) -> None:
    """Check whether files look like stream-json logs."""
    invalid = 0
    for log_file in log_files:
        if is_valid_log_file(log_file):
            console.print(f"[green]✓[/] {log_file}")
        else:
            console.print(f"[red]✗[/] {log_file}")
            invalid += 1
    if invalid:
        raise typer.Exit(1)


@app.command()
def watch(
    log_files: Annotated[list[Path], typer.Argument(help="Log files to follow.")],
    raw: Annotated[
        bool,
        typer.Option("--raw", "-r", help="Print every event instead of content chunks."),
    ] = False,
    poll_interval: Annotated[
        float | None,
        typer.Option("--poll-interval", "-i", help="Seconds between file checks."),
    ] = None,
    from_end: Annotated[
        bool,
        typer.Option("--from-end", "-e", help="Skip existing content and show only new events."),
    ] = False,
    config_path: ConfigOption = None,
) -> None:
    """Follow growing logs and print new events until interrupted."""
    config = _load_config(config_path)
    interval = poll_interval if poll_interval is not None else config.monitor.poll_interval
    if interval <= 0:
        err_console.print("[red]Error:[/] --poll-interval must be positive")
        raise typer.Exit(1)
    skip_backlog = from_end or not config.monitor.read_backlog
    display = config.display
    multiple = len(log_files) > 1

    chunks = create_chunk_stream(lambda chunk: console.print(render_chunk(chunk, display.max_content_chars)))

    def print_event(path: Path, event: StreamEvent) -> None:
        if is_system_event(event) and not display.show_system:
            return
        if is_tool_result_event(event) and not display.show_tool_results:
            return
        if raw:
            source = path.name if multiple else None
            console.print(render_event(event, display.max_content_chars, source=source))
        else:
            chunks.write(event)

    try:
        cleanup = monitor_multiple_logs(log_files, print_event, poll_interval=interval, from_end=skip_backlog)
    except OSError as e:
        err_console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1) from e

    try:
        while True:
            time.sleep(interval)
    except KeyboardInterrupt:
        console.print("\n[dim]Monitor stopped.[/]")
    finally:
        cleanup()


config_app = typer.Typer(
    name="config",
    help="Configuration management commands.",
)
app.add_typer(config_app, name="config")


@config_app.command("show")
def config_show(config_path: ConfigOption = None) -> None:
    """Show effective merged configuration."""
    config = _load_config(config_path)
    console.print(yaml.safe_dump(config.model_dump(), default_flow_style=False, sort_keys=False))


@config_app.command("init")
def config_init(
    config_path: ConfigOption = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Write a config file with default values."""
    path = config_path or get_config_file_path()
    if path.exists() and not force:
        err_console.print(f"[yellow]Config already exists:[/] {path} (use --force to overwrite)")
        raise typer.Exit(1)
    written = save_config(Config(), path)
    console.print(f"[green]✓[/] Config written to {written}")


if __name__ == "__main__":
    app()
