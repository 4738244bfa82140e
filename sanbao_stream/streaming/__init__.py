"""Streaming module — NDJSON chat stream consumption.

Provides the line framer, the event decoder, the stream consumer that
chains them, and the stateful stream session that accumulates events
into snapshots of the in-progress assistant message.
"""

from sanbao_stream.streaming.consumer import decode_lines, iter_events, parse_chat_text
from sanbao_stream.streaming.decoder import DecodeError, decode_line, encode_event
from sanbao_stream.streaming.events import (
    ChatEvent,
    ContentEvent,
    ContextEvent,
    ContextUsage,
    ErrorEvent,
    PlanEvent,
    ReasoningEvent,
    StatusEvent,
    StreamingPhase,
    ToolCategory,
    UnknownEvent,
    phase_from_event,
)
from sanbao_stream.streaming.framer import LineFramer, aiter_lines, aiter_text, iter_lines
from sanbao_stream.streaming.session import StreamSession, StreamSnapshot, StreamState

__all__ = [
    "ChatEvent",
    "ContentEvent",
    "ContextEvent",
    "ContextUsage",
    "DecodeError",
    "ErrorEvent",
    "LineFramer",
    "PlanEvent",
    "ReasoningEvent",
    "StatusEvent",
    "StreamSession",
    "StreamSnapshot",
    "StreamState",
    "StreamingPhase",
    "ToolCategory",
    "UnknownEvent",
    "aiter_lines",
    "aiter_text",
    "decode_line",
    "decode_lines",
    "encode_event",
    "iter_events",
    "iter_lines",
    "parse_chat_text",
    "phase_from_event",
]
