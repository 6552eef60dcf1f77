"""Event model for Claude's stream-json (NDJSON) output."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class EventType(StrEnum):
    """Known values of the ``type`` discriminator."""

    SYSTEM = "system"
    ASSISTANT = "assistant"
    TOOL_USE = "tool_use"
    TOOL_RESULT = "tool_result"
    ERROR = "error"
    RESULT = "result"


class ResultSubtype(StrEnum):
    """Outcome reported by a ``result`` event."""

    SUCCESS = "success"
    ERROR = "error"


class ChunkType(StrEnum):
    """Kinds of display chunks derived from events."""

    CONTENT = "content"
    ERROR = "error"
    TOOL_USE = "tool_use"
    TOOL_RESULT = "tool_result"


def _empty_dict() -> dict[str, Any]:
    return {}


def _empty_str_list() -> list[str]:
    return []


@dataclass
class McpServer:
    """MCP server status announced at session start."""

    name: str
    status: str = ""


def _empty_server_list() -> list[McpServer]:
    return []


@dataclass
class SystemEvent:
    """Session initialization event."""

    session_id: str | None = None
    subtype: str = ""
    tools: list[str] = field(default_factory=_empty_str_list)
    mcp_servers: list[McpServer] = field(default_factory=_empty_server_list)
    raw: dict[str, Any] = field(default_factory=_empty_dict, repr=False)
    type: EventType = field(default=EventType.SYSTEM, init=False)


@dataclass
class ContentBlock:
    """One block of an assistant message (``text``, ``tool_use``, ...)."""

    type: str
    text: str | None = None
    raw: dict[str, Any] = field(default_factory=_empty_dict, repr=False)


@dataclass
class TokenUsage:
    """Token accounting attached to an assistant message."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0
    service_tier: str = ""


def _empty_block_list() -> list[ContentBlock]:
    return []


@dataclass
class AssistantMessage:
    """The model-generated message carried by an assistant event."""

    id: str = ""
    model: str = ""
    role: str = "assistant"
    content: list[ContentBlock] = field(default_factory=_empty_block_list)
    stop_reason: str | None = None
    usage: TokenUsage | None = None


@dataclass
class AssistantEvent:
    """Assistant message event."""

    message: AssistantMessage = field(default_factory=AssistantMessage)
    session_id: str | None = None
    raw: dict[str, Any] = field(default_factory=_empty_dict, repr=False)
    type: EventType = field(default=EventType.ASSISTANT, init=False)


@dataclass
class ToolUseEvent:
    """Tool invocation event."""

    tool: str = ""
    input: Any = None
    session_id: str | None = None
    timestamp: int | None = None  # epoch milliseconds
    raw: dict[str, Any] = field(default_factory=_empty_dict, repr=False)
    type: EventType = field(default=EventType.TOOL_USE, init=False)


@dataclass
class ToolResultEvent:
    """Tool output event. ``output`` is a string or any decoded JSON value."""

    tool: str = ""
    output: Any = None
    session_id: str | None = None
    timestamp: int | None = None  # epoch milliseconds
    raw: dict[str, Any] = field(default_factory=_empty_dict, repr=False)
    type: EventType = field(default=EventType.TOOL_RESULT, init=False)


@dataclass
class ErrorEvent:
    """Error reported by the external process."""

    error: str = ""
    code: str | None = None
    session_id: str | None = None
    raw: dict[str, Any] = field(default_factory=_empty_dict, repr=False)
    type: EventType = field(default=EventType.ERROR, init=False)


@dataclass
class ResultEvent:
    """Terminal summary of a conversation turn."""

    subtype: str = ResultSubtype.SUCCESS
    cost_usd: float = 0.0
    total_cost: float = 0.0
    duration_ms: int = 0
    duration_api_ms: int | None = None
    num_turns: int = 0
    result: str | None = None
    error: str | None = None
    is_error: bool = False
    session_id: str | None = None
    raw: dict[str, Any] = field(default_factory=_empty_dict, repr=False)
    type: EventType = field(default=EventType.RESULT, init=False)


@dataclass
class UnknownEvent:
    """Well-formed event whose ``type`` is not one of :class:`EventType`.

    Kept rather than dropped so newer producers degrade gracefully.
    """

    type: str
    session_id: str | None = None
    raw: dict[str, Any] = field(default_factory=_empty_dict, repr=False)


StreamEvent = (
    SystemEvent | AssistantEvent | ToolUseEvent | ToolResultEvent | ErrorEvent | ResultEvent | UnknownEvent
)


@dataclass(frozen=True)
class ParseFailure:
    """Marker yielded in place of a line that could not be parsed."""

    line: str
    reason: str


@dataclass
class StreamChunk:
    """Display-oriented projection of an event."""

    type: ChunkType
    content: str
    timestamp: datetime
    tool: str | None = None
    metadata: dict[str, Any] = field(default_factory=_empty_dict)


@dataclass
class Message:
    """A reconstructed conversation message."""

    role: str
    content: str
    timestamp: datetime
    session_id: str | None = None


@dataclass(frozen=True)
class LogMetadata:
    """Metadata gathered while folding a log. Zero/empty values are ``None``."""

    total_cost: float | None = None
    duration: int | None = None
    turns: int | None = None
    model: str | None = None
    tools_used: tuple[str, ...] | None = None


@dataclass(frozen=True)
class ParsedLog:
    """Aggregated result of parsing one complete log file.

    Sequences are tuples so the result cannot change after construction.
    """

    events: tuple[StreamEvent, ...]
    chunks: tuple[StreamChunk, ...]
    session_id: str | None
    content: str
    messages: tuple[Message, ...]
    metadata: LogMetadata


@dataclass(frozen=True)
class LogSummary:
    """Constant-memory summary of a log file."""

    session_id: str | None = None
    event_count: int = 0
    message_count: int = 0
    has_errors: bool = False
    total_cost: float | None = None
    duration: int | None = None
