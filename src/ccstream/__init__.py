"""Parse and monitor Claude stream-json (NDJSON) logs."""

from ccstream.events import (
    AssistantEvent,
    AssistantMessage,
    ChunkType,
    ContentBlock,
    ErrorEvent,
    EventType,
    LogMetadata,
    LogSummary,
    McpServer,
    Message,
    ParsedLog,
    ParseFailure,
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
from ccstream.logfile import get_log_summary, is_valid_log_file, parse_log_file, parse_log_stream, read_log_lines
from ccstream.monitor import (
    ChunkStream,
    LogMonitor,
    MonitorState,
    MonitorStream,
    ParserStream,
    create_async_monitor,
    create_chunk_stream,
    create_parser_stream,
    monitor_log,
    monitor_multiple_logs,
)
from ccstream.parser import (
    event_to_chunk,
    extract_assistant_text,
    extract_session_id,
    is_assistant_event,
    is_error_event,
    is_result_event,
    is_system_event,
    is_terminal_event,
    is_tool_result_event,
    is_tool_use_event,
    is_unknown_event,
    parse_stream_event,
    parse_stream_events,
)
from ccstream.stream import (
    buffer_until_complete,
    collect,
    compose,
    events_to_chunks,
    extract_content,
    filter_event_type,
    from_list,
    group_by_turn,
    parse_event_stream,
    parse_event_stream_safe,
    take,
)

__version__ = "0.1.0"

parse = parse_log_file
monitor = monitor_log

__all__ = [
    "AssistantEvent",
    "AssistantMessage",
    "ChunkStream",
    "ChunkType",
    "ContentBlock",
    "ErrorEvent",
    "EventType",
    "LogMetadata",
    "LogMonitor",
    "LogSummary",
    "McpServer",
    "Message",
    "MonitorState",
    "MonitorStream",
    "ParseFailure",
    "ParsedLog",
    "ParserStream",
    "ResultEvent",
    "ResultSubtype",
    "StreamChunk",
    "StreamEvent",
    "SystemEvent",
    "TokenUsage",
    "ToolResultEvent",
    "ToolUseEvent",
    "UnknownEvent",
    "__version__",
    "buffer_until_complete",
    "collect",
    "compose",
    "create_async_monitor",
    "create_chunk_stream",
    "create_parser_stream",
    "event_to_chunk",
    "events_to_chunks",
    "extract_assistant_text",
    "extract_content",
    "extract_session_id",
    "filter_event_type",
    "from_list",
    "get_log_summary",
    "group_by_turn",
    "is_assistant_event",
    "is_error_event",
    "is_result_event",
    "is_system_event",
    "is_terminal_event",
    "is_tool_result_event",
    "is_tool_use_event",
    "is_unknown_event",
    "is_valid_log_file",
    "monitor",
    "monitor_log",
    "monitor_multiple_logs",
    "parse",
    "parse_event_stream",
    "parse_event_stream_safe",
    "parse_log_file",
    "parse_log_stream",
    "parse_stream_event",
    "parse_stream_events",
    "read_log_lines",
    "take",
]
