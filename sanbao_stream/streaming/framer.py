"""Line framer — split an arbitrarily chunked text stream into lines.

The transport delivers the NDJSON body in fragments of any size: one
fragment may end in the middle of a line, or carry several lines at
once. The framer buffers the trailing partial line between fragments
and emits complete lines with the terminator stripped.

Empty lines are passed through as ``""``; skipping them is the decoder
stage's decision, not the framer's.

The partial-line buffer is unbounded. A hostile or broken server that
never sends a newline grows it until the transport gives up; read
limits and timeouts belong to the transport collaborator.
"""

from __future__ import annotations

import codecs
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterable, Generator, Iterable


class LineFramer:
    """Incremental ``\\n`` / ``\\r\\n`` line splitter.

    Usage::

        framer = LineFramer()
        for fragment in fragments:
            for line in framer.feed(fragment):
                handle(line)
        tail = framer.flush()
        if tail is not None:
            handle(tail)
    """

    def __init__(self) -> None:
        self._buffer = ""

    @property
    def pending(self) -> str:
        """The buffered partial line (not yet terminated)."""
        return self._buffer

    def feed(self, fragment: str) -> list[str]:
        """Add a fragment and return every line it completes.

        Args:
            fragment: Next piece of text from the transport.

        Returns:
            Completed lines in order, terminators stripped.
        """
        if not fragment:
            return []

        data = self._buffer + fragment
        parts = data.split("\n")
        # Last element is the unterminated remainder (possibly "")
        self._buffer = parts.pop()
        return [_strip_cr(part) for part in parts]

    def flush(self) -> str | None:
        """Return the trailing partial line once the source ends.

        Returns:
            The remaining text if non-empty, otherwise None.
        """
        tail = _strip_cr(self._buffer)
        self._buffer = ""
        return tail or None


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line


def iter_lines(fragments: Iterable[str]) -> Generator[str, None, None]:
    """Lazily frame a synchronous sequence of text fragments into lines."""
    framer = LineFramer()
    for fragment in fragments:
        yield from framer.feed(fragment)
    tail = framer.flush()
    if tail is not None:
        yield tail


async def aiter_lines(fragments: AsyncIterable[str]) -> AsyncGenerator[str, None]:
    """Lazily frame an async sequence of text fragments into lines."""
    framer = LineFramer()
    async for fragment in fragments:
        for line in framer.feed(fragment):
            yield line
    tail = framer.flush()
    if tail is not None:
        yield tail


async def aiter_text(
    chunks: AsyncIterable[bytes | str],
    encoding: str = "utf-8",
) -> AsyncGenerator[str, None]:
    """Decode raw transport chunks to text.

    Uses an incremental decoder so a multi-byte character split across
    two chunks is decoded once both halves have arrived. Undecodable
    bytes are replaced rather than aborting the stream. ``str`` chunks
    pass through unchanged.
    """
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    async for chunk in chunks:
        if isinstance(chunk, str):
            text = chunk
        else:
            text = decoder.decode(chunk)
        if text:
            yield text
    tail = decoder.decode(b"", final=True)
    if tail:
        yield tail
