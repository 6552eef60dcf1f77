"""Rich rendering of stream events, chunks and log summaries."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ccstream.events import ChunkType, EventType, LogSummary, ParsedLog, ResultSubtype, StreamChunk, StreamEvent
from ccstream.parser import (
    extract_assistant_text,
    is_assistant_event,
    is_error_event,
    is_result_event,
    is_system_event,
    is_tool_result_event,
    is_tool_use_event,
)
from ccstream.utils import compress_paths_in_text, format_cost, format_duration_ms, format_tokens, truncate

_SYMBOLS: dict[str, str] = {
    EventType.SYSTEM: "⚙",
    EventType.ASSISTANT: "■",
    EventType.TOOL_USE: "▶",
    EventType.TOOL_RESULT: "◀",
    EventType.ERROR: "✖",
    EventType.RESULT: "●",
}

_COLORS: dict[str, str] = {
    EventType.SYSTEM: "dim",
    EventType.ASSISTANT: "white",
    EventType.TOOL_USE: "green",
    EventType.TOOL_RESULT: "dim green",
    EventType.ERROR: "bold red",
    EventType.RESULT: "cyan",
}

_CHUNK_COLORS: dict[str, str] = {
    ChunkType.CONTENT: "white",
    ChunkType.ERROR: "bold red",
    ChunkType.TOOL_USE: "green",
    ChunkType.TOOL_RESULT: "dim green",
}


def event_symbol(event: StreamEvent) -> str:
    """Get display symbol for an event."""
    return _SYMBOLS.get(event.type, "?")


def event_color(event: StreamEvent) -> str:
    """Get display color for an event."""
    if is_result_event(event) and event.subtype == ResultSubtype.ERROR:
        return "bold red"
    return _COLORS.get(event.type, "dim magenta")


def event_label(event: StreamEvent) -> str:
    """Get display label for an event."""
    if is_tool_use_event(event) or is_tool_result_event(event):
        kind = "TOOL" if is_tool_use_event(event) else "RESULT"
        return f"{kind} {event.tool}".rstrip()
    if is_result_event(event):
        return f"RESULT {event.subtype}"
    return str(event.type).upper()


def _stringify(value: object) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, default=str)


def event_content(event: StreamEvent) -> str:
    """Extract the text shown under an event's label."""
    if is_assistant_event(event):
        return extract_assistant_text(event)
    if is_system_event(event):
        return f"{len(event.tools)} tools available" if event.tools else event.subtype
    if is_tool_use_event(event):
        return compress_paths_in_text(_stringify(event.input))
    if is_tool_result_event(event):
        return compress_paths_in_text(_stringify(event.output))
    if is_error_event(event):
        return event.error
    if is_result_event(event):
        parts = [
            f"cost {format_cost(event.total_cost or event.cost_usd)}",
            f"duration {format_duration_ms(event.duration_ms)}",
            f"turns {event.num_turns}",
        ]
        if event.error:
            parts.append(event.error)
        return "  ".join(parts)
    return ""


def render_event(event: StreamEvent, max_content_length: int = 200, source: str | None = None) -> Text:
    """Render one event as a labelled, truncated block.

    Args:
        event: Event to render.
        max_content_length: Max chars of content; 0 shows everything.
        source: Optional origin name (e.g. file name) shown before the label.

    Returns:
        Rich Text for printing.
    """
    color = event_color(event)
    text = Text()
    if source:
        text.append(f"[{source}] ", style="dim blue")
    text.append(f"{event_symbol(event)} ", style=color)
    text.append(event_label(event), style=f"bold {color}")

    content = truncate(event_content(event), max_content_length)
    for line in content.split("\n")[:5]:
        if line:
            text.append(f"\n  {line}", style=color)
    return text


def render_chunk(chunk: StreamChunk, max_content_length: int = 0) -> Text:
    """Render a chunk; content chunks print as plain text."""
    color = _CHUNK_COLORS.get(chunk.type, "white")
    text = Text()
    if chunk.type != ChunkType.CONTENT:
        label = f"{chunk.type} {chunk.tool or ''}".rstrip()
        text.append(f"[{label}] ", style=f"bold {color}")
    text.append(truncate(chunk.content, max_content_length), style=color)
    return text


def build_parsed_log_panel(parsed: ParsedLog, log_path: Path) -> Panel:
    """Build a panel summarizing a fully parsed log.

    Args:
        parsed: Result of parse_log_file.
        log_path: The parsed file, used for the title.

    Returns:
        Rich Panel with session, cost and tool details.
    """
    metadata = parsed.metadata
    input_tokens = 0
    output_tokens = 0
    for event in parsed.events:
        if is_assistant_event(event) and event.message.usage is not None:
            input_tokens += event.message.usage.input_tokens
            output_tokens += event.message.usage.output_tokens

    text = Text()
    text.append("Session: ", style="dim")
    text.append(f"{parsed.session_id or 'unknown'}  ", style="bold cyan")
    text.append("Model: ", style="dim")
    text.append(metadata.model or "unknown", style="bold")

    text.append("\nEvents: ", style="dim")
    text.append(f"{len(parsed.events)}  ", style="bold")
    text.append("Messages: ", style="dim")
    text.append(f"{len(parsed.messages)}  ", style="bold")
    text.append("Turns: ", style="dim")
    text.append(f"{metadata.turns or '-'}", style="bold")

    text.append("\nCost: ", style="dim")
    text.append(f"{format_cost(metadata.total_cost)}  ", style="bold yellow")
    text.append("Duration: ", style="dim")
    text.append(f"{format_duration_ms(metadata.duration)}  ", style="bold")
    text.append("Tokens: ", style="dim")
    text.append(f"{format_tokens(input_tokens)} in / {format_tokens(output_tokens)} out", style="bold")

    text.append("\nTools: ", style="dim")
    if metadata.tools_used:
        text.append("  ".join(metadata.tools_used), style="cyan")
    else:
        text.append("none", style="dim")

    return Panel(text, title=f"Log: {log_path.name}", border_style="blue")


def build_summary_table(summaries: list[tuple[Path, LogSummary]]) -> Table:
    """Build a table with one row per summarized log file."""
    table = Table(title="Log Summaries", show_lines=False)
    table.add_column("File", style="cyan")
    table.add_column("Session", style="dim")
    table.add_column("Events", justify="right")
    table.add_column("Messages", justify="right")
    table.add_column("Cost", justify="right", style="yellow")
    table.add_column("Duration", justify="right")
    table.add_column("Status")

    for path, summary in summaries:
        status = Text("errors", style="bold red") if summary.has_errors else Text("ok", style="green")
        table.add_row(
            path.name,
            truncate(summary.session_id or "-", 12),
            str(summary.event_count),
            str(summary.message_count),
            format_cost(summary.total_cost),
            format_duration_ms(summary.duration),
            status,
        )
    return table


def format_message_header(role: str, timestamp: datetime) -> Text:
    """Header line printed above a reconstructed message."""
    text = Text()
    text.append(timestamp.strftime("%Y-%m-%d %H:%M:%S "), style="dim")
    text.append(role.upper(), style="bold white")
    return text
