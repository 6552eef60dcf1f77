"""Batch readers for complete stream-json log files."""

from __future__ import annotations

import logging
import stat
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

from ccstream.events import LogMetadata, LogSummary, Message, ParsedLog, ResultSubtype, StreamChunk, StreamEvent
from ccstream.parser import (
    event_to_chunk,
    extract_assistant_text,
    extract_session_id,
    is_assistant_event,
    is_error_event,
    is_result_event,
    is_system_event,
    is_tool_use_event,
    is_unknown_event,
    parse_stream_event,
)
from ccstream.stream import parse_event_stream

logger = logging.getLogger(__name__)

VALIDATION_SAMPLE_BYTES = 1024


def parse_log_file(log_path: Path | str) -> ParsedLog:
    """Parse a complete log file into a structured summary.

    Session id resolution prefers the first id seen on a system event, then
    on an assistant event, then on a result event, then on any event.
    Cost, duration and turn count keep the last non-zero value reported.

    Args:
        log_path: Path to the NDJSON log file.

    Returns:
        ParsedLog for the file. Lines that fail to parse are left out.

    Raises:
        OSError: If the file cannot be read.
    """
    path = Path(log_path)
    text = path.read_text(encoding="utf-8", errors="replace")
    # Messages take the file's mtime so an unchanged file always parses identically
    timestamp = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)

    events: list[StreamEvent] = []
    chunks: list[StreamChunk] = []
    messages: list[Message] = []
    tools_used: dict[str, None] = {}

    system_session: str | None = None
    assistant_session: str | None = None
    result_session: str | None = None
    any_session: str | None = None

    total_cost = 0.0
    duration = 0
    turns = 0
    model: str | None = None
    skipped = 0

    for line in text.split("\n"):
        if not line.strip():
            continue
        event = parse_stream_event(line)
        if event is None:
            skipped += 1
            continue
        events.append(event)

        session_id = extract_session_id(event)
        if session_id and any_session is None:
            any_session = session_id

        if is_system_event(event):
            if session_id and system_session is None:
                system_session = session_id

        elif is_assistant_event(event):
            if session_id and assistant_session is None:
                assistant_session = session_id
            if not model and event.message.model:
                model = event.message.model

            content = extract_assistant_text(event)
            if content:
                messages.append(
                    Message(role="assistant", content=content, timestamp=timestamp, session_id=event.session_id)
                )
                chunk = event_to_chunk(event, timestamp=timestamp)
                if chunk is not None:
                    chunks.append(chunk)

        elif is_tool_use_event(event):
            if event.tool:
                tools_used.setdefault(event.tool, None)

        elif is_result_event(event):
            if session_id and result_session is None:
                result_session = session_id
            cost = event.total_cost or event.cost_usd
            if cost:
                total_cost = cost
            if event.duration_ms:
                duration = event.duration_ms
            if event.num_turns:
                turns = event.num_turns

    if skipped:
        logger.debug("Skipped %d unparseable lines in %s", skipped, path)

    return ParsedLog(
        events=tuple(events),
        chunks=tuple(chunks),
        session_id=system_session or assistant_session or result_session or any_session,
        content="\n".join(message.content for message in messages),
        messages=tuple(messages),
        metadata=LogMetadata(
            total_cost=total_cost or None,
            duration=duration or None,
            turns=turns or None,
            model=model,
            tools_used=tuple(tools_used) or None,
        ),
    )


def read_log_lines(log_path: Path | str) -> Iterator[str]:
    """Yield the lines of a log file one at a time, without line terminators.

    The file is opened on first iteration and closed when the iterator is
    exhausted or closed.

    Raises:
        OSError: On first iteration, if the file cannot be opened.
    """
    with Path(log_path).open("r", encoding="utf-8", errors="replace", newline="") as f:
        for line in f:
            yield line.rstrip("\r\n")


def parse_log_stream(log_path: Path | str) -> Iterator[StreamEvent]:
    """Lazily parse a log file, dropping lines that fail to parse."""
    return parse_event_stream(read_log_lines(log_path))


def get_log_summary(log_path: Path | str) -> LogSummary:
    """Summarize a log file in a single pass without keeping events in memory.

    ``total_cost`` and ``duration`` come from the last result event only.

    Raises:
        OSError: If the file cannot be read.
    """
    session_id: str | None = None
    event_count = 0
    message_count = 0
    has_errors = False
    total_cost: float | None = None
    duration: int | None = None

    for event in parse_log_stream(log_path):
        event_count += 1

        if session_id is None:
            session_id = extract_session_id(event)

        if is_assistant_event(event):
            message_count += 1
        elif is_error_event(event):
            has_errors = True
        elif is_result_event(event):
            if event.subtype == ResultSubtype.ERROR:
                has_errors = True
            total_cost = event.total_cost or event.cost_usd or None
            duration = event.duration_ms or None

    return LogSummary(
        session_id=session_id,
        event_count=event_count,
        message_count=message_count,
        has_errors=has_errors,
        total_cost=total_cost,
        duration=duration,
    )


def is_valid_log_file(log_path: Path | str, sample_size: int = VALIDATION_SAMPLE_BYTES) -> bool:
    """Heuristically check whether a file holds stream-json events.

    Only the first ``sample_size`` bytes are read.

    Returns:
        True as soon as one sampled line parses to an event of a known type.
        False for directories, unreadable or empty files, and files with no
        such line in the sample.
    """
    path = Path(log_path)
    try:
        if not stat.S_ISREG(path.stat().st_mode):
            return False
        with path.open("rb") as f:
            sample = f.read(sample_size)
    except OSError as e:
        logger.debug("Cannot validate %s: %s", path, e)
        return False

    for line in sample.decode("utf-8", errors="replace").splitlines():
        event = parse_stream_event(line)
        if event is not None and not is_unknown_event(event):
            return True
    return False
