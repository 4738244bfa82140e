"""Sanbao chat streaming core.

Consumes the NDJSON chat stream of the Sanbao backend, accumulates it
into snapshots of the in-progress assistant message, and extracts
artifacts, clarify questions and legal references from the final
content.
"""

from sanbao_stream.client import ChatClient, ChatClientConfig, ChatMessage, ChatRequest
from sanbao_stream.exceptions import ChatTransportError, SanbaoError, StreamSessionError
from sanbao_stream.extraction import FinalizedMessage, finalize
from sanbao_stream.streaming import StreamSession, StreamSnapshot, StreamState, iter_events

__all__ = [
    "ChatClient",
    "ChatClientConfig",
    "ChatMessage",
    "ChatRequest",
    "ChatTransportError",
    "FinalizedMessage",
    "SanbaoError",
    "StreamSession",
    "StreamSnapshot",
    "StreamState",
    "finalize",
    "iter_events",
]
