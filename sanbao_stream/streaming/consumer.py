"""Stream consumer — turn raw transport chunks into chat events.

Chains the framer and the decoder inline as chunks arrive. Blank lines
are skipped; undecodable lines are logged and dropped so the stream
continues. UnknownEvent is passed through for the session to ignore.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sanbao_stream.settings import get_settings
from sanbao_stream.streaming.decoder import DecodeError, decode_line
from sanbao_stream.streaming.framer import aiter_lines, aiter_text, iter_lines

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterable, Generator, Iterable

    from sanbao_stream.streaming.events import ChatEvent

logger = logging.getLogger(__name__)


def _decode(line: str) -> ChatEvent | None:
    if not line.strip():
        return None

    result = decode_line(line)
    if isinstance(result, DecodeError):
        max_chars = get_settings().log_line_max_chars
        logger.warning(
            "Skipping undecodable stream line (%s): %s",
            result.reason,
            result.line[:max_chars],
        )
        return None
    return result


def decode_lines(lines: Iterable[str]) -> Generator[ChatEvent, None, None]:
    """Decode already-framed lines, skipping blank and malformed ones."""
    for line in lines:
        event = _decode(line)
        if event is not None:
            yield event


def parse_chat_text(fragments: Iterable[str]) -> Generator[ChatEvent, None, None]:
    """Frame and decode a synchronous sequence of text fragments."""
    yield from decode_lines(iter_lines(fragments))


async def iter_events(
    chunks: AsyncIterable[bytes | str],
) -> AsyncGenerator[ChatEvent, None]:
    """Consume a transport body and yield decoded chat events.

    Args:
        chunks: Async iterator of raw body chunks (e.g. ``response.aiter_bytes()``).

    Yields:
        ChatEvent instances in arrival order.
    """
    async for line in aiter_lines(aiter_text(chunks)):
        event = _decode(line)
        if event is not None:
            yield event
