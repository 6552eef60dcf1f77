"""Parsing of single stream-json lines into typed events."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any, TypeGuard, cast

from ccstream.events import (
    AssistantEvent,
    AssistantMessage,
    ChunkType,
    ContentBlock,
    ErrorEvent,
    EventType,
    McpServer,
    ResultEvent,
    ResultSubtype,
    StreamChunk,
    StreamEvent,
    SystemEvent,
    TokenUsage,
    ToolResultEvent,
    ToolUseEvent,
    UnknownEvent,
)

logger = logging.getLogger(__name__)


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _opt_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _int(value: Any) -> int:
    # bool is an int subclass but never a meaningful count here
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return 0


def _opt_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return int(value)


def _float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0.0
    return float(value)


def _dict(value: Any) -> dict[str, Any]:
    return cast(dict[str, Any], value) if isinstance(value, dict) else {}


def _list(value: Any) -> list[Any]:
    return cast(list[Any], value) if isinstance(value, list) else []


def _parse_system(data: dict[str, Any], session_id: str | None) -> SystemEvent:
    servers = [
        McpServer(name=_str(item.get("name")), status=_str(item.get("status")))
        for item in _list(data.get("mcp_servers"))
        if isinstance(item, dict)
    ]
    return SystemEvent(
        session_id=session_id,
        subtype=_str(data.get("subtype")),
        tools=[t for t in _list(data.get("tools")) if isinstance(t, str)],
        mcp_servers=servers,
        raw=data,
    )


def _parse_usage(value: Any) -> TokenUsage | None:
    if not isinstance(value, dict):
        return None
    usage = cast(dict[str, Any], value)
    return TokenUsage(
        input_tokens=_int(usage.get("input_tokens")),
        output_tokens=_int(usage.get("output_tokens")),
        cache_creation_input_tokens=_int(usage.get("cache_creation_input_tokens")),
        cache_read_input_tokens=_int(usage.get("cache_read_input_tokens")),
        service_tier=_str(usage.get("service_tier")),
    )


def _parse_assistant(data: dict[str, Any], session_id: str | None) -> AssistantEvent:
    message = _dict(data.get("message"))
    blocks: list[ContentBlock] = []
    for item in _list(message.get("content")):
        if not isinstance(item, dict):
            continue
        block = cast(dict[str, Any], item)
        blocks.append(ContentBlock(type=_str(block.get("type")), text=_opt_str(block.get("text")), raw=block))

    return AssistantEvent(
        message=AssistantMessage(
            id=_str(message.get("id")),
            model=_str(message.get("model")),
            role=_str(message.get("role"), "assistant"),
            content=blocks,
            stop_reason=_opt_str(message.get("stop_reason")),
            usage=_parse_usage(message.get("usage")),
        ),
        session_id=session_id,
        raw=data,
    )


def _tool_name(data: dict[str, Any]) -> str:
    # Older producers used "name" instead of "tool"
    return _str(data.get("tool")) or _str(data.get("name"))


def _parse_tool_use(data: dict[str, Any], session_id: str | None) -> ToolUseEvent:
    return ToolUseEvent(
        tool=_tool_name(data),
        input=data.get("input"),
        session_id=session_id,
        timestamp=_opt_int(data.get("timestamp")),
        raw=data,
    )


def _parse_tool_result(data: dict[str, Any], session_id: str | None) -> ToolResultEvent:
    return ToolResultEvent(
        tool=_tool_name(data),
        output=data.get("output"),
        session_id=session_id,
        timestamp=_opt_int(data.get("timestamp")),
        raw=data,
    )


def _parse_error(data: dict[str, Any], session_id: str | None) -> ErrorEvent:
    error = data.get("error")
    if isinstance(error, dict):
        # {"error": {"message": ...}} shape
        error = cast(dict[str, Any], error).get("message")
    code = data.get("code")
    return ErrorEvent(
        error=_str(error) or _str(data.get("message")),
        code=str(code) if code is not None else None,
        session_id=session_id,
        raw=data,
    )


def _parse_result(data: dict[str, Any], session_id: str | None) -> ResultEvent:
    subtype = _str(data.get("subtype"), ResultSubtype.SUCCESS)
    is_error = data.get("is_error")
    return ResultEvent(
        subtype=subtype,
        cost_usd=_float(data.get("cost_usd")),
        total_cost=_float(data.get("total_cost")),
        duration_ms=_int(data.get("duration_ms")),
        duration_api_ms=_opt_int(data.get("duration_api_ms")),
        num_turns=_int(data.get("num_turns")),
        result=_opt_str(data.get("result")),
        error=_opt_str(data.get("error")),
        is_error=is_error if isinstance(is_error, bool) else subtype == ResultSubtype.ERROR,
        session_id=session_id,
        raw=data,
    )


_BUILDERS: dict[EventType, Callable[[dict[str, Any], str | None], StreamEvent]] = {
    EventType.SYSTEM: _parse_system,
    EventType.ASSISTANT: _parse_assistant,
    EventType.TOOL_USE: _parse_tool_use,
    EventType.TOOL_RESULT: _parse_tool_result,
    EventType.ERROR: _parse_error,
    EventType.RESULT: _parse_result,
}

_KNOWN_TYPES: frozenset[str] = frozenset(t.value for t in EventType)


def parse_stream_event(line: str) -> StreamEvent | None:
    """Parse a single stream-json line.

    Args:
        line: Raw line, with or without surrounding whitespace.

    Returns:
        The typed event, or None if the line is empty, not valid JSON, not a
        JSON object, or lacks a string ``type``. Never raises.
    """
    line = line.strip()
    if not line:
        return None

    try:
        data = json.loads(line)
    except (ValueError, RecursionError):
        logger.debug("Skipping malformed line: %.80s", line)
        return None

    if not isinstance(data, dict):
        return None
    obj = cast(dict[str, Any], data)

    msg_type = obj.get("type")
    if not isinstance(msg_type, str) or not msg_type:
        return None

    session_id = _opt_str(obj.get("session_id")) or None

    try:
        builder = _BUILDERS[EventType(msg_type)]
    except ValueError:
        return UnknownEvent(type=msg_type, session_id=session_id, raw=obj)
    return builder(obj, session_id)


def parse_stream_events(lines: Iterable[str]) -> list[StreamEvent]:
    """Parse many lines at once, dropping the ones that fail."""
    return [event for event in map(parse_stream_event, lines) if event is not None]


def is_system_event(event: StreamEvent) -> TypeGuard[SystemEvent]:
    """True for session init events."""
    return event.type == EventType.SYSTEM


def is_assistant_event(event: StreamEvent) -> TypeGuard[AssistantEvent]:
    """True for model output events."""
    return event.type == EventType.ASSISTANT


def is_tool_use_event(event: StreamEvent) -> TypeGuard[ToolUseEvent]:
    """True for tool invocations."""
    return event.type == EventType.TOOL_USE


def is_tool_result_event(event: StreamEvent) -> TypeGuard[ToolResultEvent]:
    """True for tool outputs."""
    return event.type == EventType.TOOL_RESULT


def is_error_event(event: StreamEvent) -> TypeGuard[ErrorEvent]:
    """True for error events."""
    return event.type == EventType.ERROR


def is_result_event(event: StreamEvent) -> TypeGuard[ResultEvent]:
    """True for the final result of a run."""
    return event.type == EventType.RESULT


def is_unknown_event(event: StreamEvent) -> TypeGuard[UnknownEvent]:
    """True when the discriminator is outside the known set."""
    return event.type not in _KNOWN_TYPES


def is_terminal_event(event: StreamEvent) -> bool:
    """Whether the event concludes a conversation turn (``result`` only)."""
    return is_result_event(event)


def extract_assistant_text(event: StreamEvent) -> str:
    """Concatenate the text blocks of an assistant event.

    Args:
        event: Any event.

    Returns:
        Text of all ``text`` blocks in order, or an empty string for
        non-assistant events and messages without text.
    """
    if not is_assistant_event(event):
        return ""
    return "".join(
        block.text for block in event.message.content if block.type == "text" and block.text is not None
    )


def extract_session_id(event: StreamEvent) -> str | None:
    """Return the event's session id, if it carries one."""
    return event.session_id or None


def _to_json_text(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def _event_time(timestamp_ms: int | None) -> datetime:
    if timestamp_ms:
        return datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC)
    return datetime.now(UTC)


def event_to_chunk(event: StreamEvent, timestamp: datetime | None = None) -> StreamChunk | None:
    """Project an event onto a display chunk.

    System events, successful results and unknown events produce no chunk.

    Args:
        event: The parsed event.
        timestamp: Chunk timestamp. Defaults to the event's own timestamp
            when it has one, else the current time.

    Returns:
        The chunk, or None when the event has nothing to display.
    """
    if is_assistant_event(event):
        text = extract_assistant_text(event)
        if not text:
            return None
        return StreamChunk(
            type=ChunkType.CONTENT,
            content=text,
            timestamp=timestamp or _event_time(None),
            metadata={
                "session_id": event.session_id,
                "message_id": event.message.id,
                "model": event.message.model,
            },
        )

    if is_tool_use_event(event):
        return StreamChunk(
            type=ChunkType.TOOL_USE,
            content=_to_json_text(event.input),
            timestamp=timestamp or _event_time(event.timestamp),
            tool=event.tool,
            metadata={"session_id": event.session_id},
        )

    if is_tool_result_event(event):
        output = event.output
        return StreamChunk(
            type=ChunkType.TOOL_RESULT,
            content=output if isinstance(output, str) else _to_json_text(output),
            timestamp=timestamp or _event_time(event.timestamp),
            tool=event.tool,
            metadata={"session_id": event.session_id},
        )

    if is_error_event(event):
        return StreamChunk(
            type=ChunkType.ERROR,
            content=event.error,
            timestamp=timestamp or _event_time(None),
            metadata={"code": event.code, "session_id": event.session_id},
        )

    if is_result_event(event) and event.subtype == ResultSubtype.ERROR and event.error:
        return StreamChunk(
            type=ChunkType.ERROR,
            content=event.error,
            timestamp=timestamp or _event_time(None),
            metadata={
                "session_id": event.session_id,
                "cost_usd": event.cost_usd,
                "duration_ms": event.duration_ms,
            },
        )

    return None
