"""Lazy transforms over streams of stream-json lines and events.

Every transform is a generator: nothing is read from the source until the
result is iterated, and a transform is restartable only when its source is.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Iterator
from typing import Any, TypeVar

from ccstream.events import ParseFailure, StreamChunk, StreamEvent
from ccstream.parser import (
    event_to_chunk,
    extract_assistant_text,
    is_assistant_event,
    is_terminal_event,
    parse_stream_event,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Transform = Callable[[Iterable[Any]], Iterable[Any]]


def parse_event_stream(lines: Iterable[str]) -> Iterator[StreamEvent]:
    """Parse lines into events, silently dropping lines that fail to parse."""
    for line in lines:
        event = parse_stream_event(line)
        if event is not None:
            yield event


def _failure_reason(line: str) -> str:
    stripped = line.strip()
    if not stripped:
        return "empty line"
    try:
        data = json.loads(stripped)
    except (ValueError, RecursionError) as e:
        return f"invalid JSON: {e}"
    if not isinstance(data, dict):
        return "not a JSON object"
    return "missing or invalid 'type' field"


def parse_event_stream_safe(
    lines: Iterable[str],
    on_error: Callable[[ParseFailure], None] | None = None,
) -> Iterator[StreamEvent | ParseFailure]:
    """Parse lines into events, yielding a marker for every line that fails.

    Exactly one item is yielded per input line.

    Args:
        lines: Source lines.
        on_error: Optional callback invoked with each failure before it is yielded.

    Yields:
        The parsed event, or a ParseFailure carrying the offending line.
    """
    for line in lines:
        event = parse_stream_event(line)
        if event is not None:
            yield event
            continue
        failure = ParseFailure(line=line, reason=_failure_reason(line))
        if on_error is not None:
            on_error(failure)
        yield failure


def events_to_chunks(events: Iterable[StreamEvent]) -> Iterator[StreamChunk]:
    """Project events onto display chunks, skipping events without one."""
    for event in events:
        chunk = event_to_chunk(event)
        if chunk is not None:
            yield chunk


def extract_content(events: Iterable[StreamEvent]) -> Iterator[str]:
    """Yield the non-empty text of each assistant event."""
    for event in events:
        if is_assistant_event(event):
            text = extract_assistant_text(event)
            if text:
                yield text


def filter_event_type(events: Iterable[StreamEvent], event_type: str) -> Iterator[StreamEvent]:
    """Yield only events whose ``type`` equals ``event_type``."""
    for event in events:
        if event.type == event_type:
            yield event


def _is_complete_json(text: str) -> bool:
    try:
        json.loads(text)
    except (ValueError, RecursionError):
        return False
    return True


def buffer_until_complete(fragments: Iterable[str]) -> Iterator[str]:
    """Reassemble arbitrary text fragments into complete lines.

    Reads may split a line anywhere, so a fragment is held until its
    terminating newline arrives. At the end of input a leftover fragment is
    emitted only if it already forms a complete JSON value.

    Args:
        fragments: Text as it was read, in order.

    Yields:
        Complete lines without their line terminator. Blank lines are skipped.
    """
    pending = ""
    for fragment in fragments:
        if not fragment:
            continue
        pending += fragment
        *complete, pending = pending.split("\n")
        for line in complete:
            line = line.rstrip("\r")
            if line.strip():
                yield line

    leftover = pending.strip()
    if leftover:
        if _is_complete_json(leftover):
            yield leftover
        else:
            logger.debug("Discarding incomplete trailing fragment (%d chars)", len(leftover))


def group_by_turn(events: Iterable[StreamEvent]) -> Iterator[list[StreamEvent]]:
    """Group events into turns, each closed by a terminal ``result`` event.

    Events after the last terminal event are yielded as a final group.
    """
    group: list[StreamEvent] = []
    for event in events:
        group.append(event)
        if is_terminal_event(event):
            yield group
            group = []
    if group:
        yield group


def compose(*transforms: Transform) -> Transform:
    """Compose unary stream transforms, applied left to right.

    ``compose(f, g)(source)`` is ``g(f(source))``.
    """

    def pipeline(source: Iterable[Any]) -> Iterable[Any]:
        result: Iterable[Any] = source
        for transform in transforms:
            result = transform(result)
        return result

    return pipeline


def collect(iterable: Iterable[T]) -> list[T]:
    """Materialize an iterable into a list."""
    return list(iterable)


def take(iterable: Iterable[T], count: int) -> Iterator[T]:
    """Yield at most ``count`` items.

    The source is never advanced past the last item taken, so an unbounded
    source (such as a live monitor) can be abandoned after ``count`` items.

    Raises:
        ValueError: If count is negative.
    """
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")
    if count == 0:
        return
    taken = 0
    for item in iterable:
        yield item
        taken += 1
        if taken >= count:
            return


def from_list(items: Iterable[T]) -> Iterator[T]:
    """Wrap an in-memory collection as a lazy sequence."""
    yield from items
