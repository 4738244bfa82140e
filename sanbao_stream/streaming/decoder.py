"""Event decoder — one NDJSON line in, one typed ChatEvent out.

Pure and stateless. A line that can not be decoded yields a DecodeError
value instead of raising, so one bad line never aborts the stream. Lines
with an unknown kind code yield UnknownEvent (forward compatibility).

Example input::

    {"t":"c","v":"Hello"}
    {"t":"r","v":"thinking..."}
    {"t":"s","v":"searching"}
    {"t":"x","v":{"usagePercent":42,"totalTokens":1200,"contextWindowSize":128000}}
    {"t":"e","v":"Something went wrong"}
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from sanbao_stream.streaming.events import (
    EVENT_TYPES,
    ChatEvent,
    ContextEvent,
    ErrorEvent,
    UnknownEvent,
)


@dataclass(frozen=True)
class DecodeError:
    """A stream line that could not be decoded.

    Attributes:
        line: The offending line as received.
        reason: Short human-readable cause.
    """

    line: str
    reason: str


def decode_line(line: str) -> ChatEvent | DecodeError:
    """Decode a single NDJSON line into a ChatEvent.

    Args:
        line: One framed line, terminator already stripped.

    Returns:
        The decoded event, UnknownEvent for an unrecognised kind code,
        or DecodeError when the line is malformed.
    """
    text = line.strip()
    if not text:
        return DecodeError(line=line, reason="empty line")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        return DecodeError(line=line, reason=f"invalid JSON: {e.msg}")

    if not isinstance(data, dict):
        return DecodeError(line=line, reason="line is not a JSON object")

    code = data.get("t")
    if not isinstance(code, str):
        return DecodeError(line=line, reason="missing kind tag 't'")

    value = data.get("v")
    event_cls = EVENT_TYPES.get(code)
    if event_cls is None:
        return UnknownEvent(code=code, payload=value)

    if event_cls is ContextEvent:
        if value is None:
            return ContextEvent()
        if not isinstance(value, dict):
            return DecodeError(line=line, reason="context payload is not an object")
        return ContextEvent(payload=value)

    if value is None:
        value = ""
    if not isinstance(value, str):
        return DecodeError(line=line, reason=f"payload of '{code}' is not a string")
    if event_cls is ErrorEvent:
        return ErrorEvent(message=value)
    return event_cls(text=value)


def encode_event(event: ChatEvent) -> str:
    """Encode an event back into its NDJSON line (without terminator).

    Inverse of decode_line: ``decode_line(encode_event(e)) == e``.
    """
    value: Any
    if isinstance(event, UnknownEvent):
        code, value = event.code, event.payload
    elif isinstance(event, ContextEvent):
        code, value = event.kind, event.payload
    elif isinstance(event, ErrorEvent):
        code, value = event.kind, event.message
    else:
        code, value = event.kind, event.text
    return json.dumps({"t": code, "v": value}, ensure_ascii=False, separators=(",", ":"))
