"""Sanbao stream exception hierarchy.

Base exceptions for the streaming core with correlation ID support.

Usage:
    from sanbao_stream.exceptions import ChatTransportError, StreamSessionError

    try:
        async for event in client.stream_events(request):
            ...
    except ChatTransportError as e:
        logger.error("Chat stream failed (%s): %s", e.correlation_id, e)
"""

import uuid


class SanbaoError(Exception):
    """Base exception for all sanbao_stream errors.

    Carries a correlation_id for tracing errors across layers.
    """

    def __init__(self, message: str, *, correlation_id: str | None = None):
        self.correlation_id = correlation_id or str(uuid.uuid4())
        super().__init__(message)


class ChatTransportError(SanbaoError):
    """Errors from the HTTP transport delivering the chat stream.

    Raised for connection failures, timeouts and non-2xx responses.
    The message is user-facing; the stream session records it as the
    terminal error of the conversation turn.
    """

    def __init__(self, message: str, *, status_code: int | None = None, **kwargs):
        self.status_code = status_code
        super().__init__(message, **kwargs)


class StreamSessionError(SanbaoError):
    """Errors from misuse of a stream session.

    Raised when a session is driven twice or when a snapshot that has not
    reached a terminal state is finalized.
    """

    def __init__(self, message: str, *, state: str | None = None, **kwargs):
        self.state = state
        super().__init__(message, **kwargs)
