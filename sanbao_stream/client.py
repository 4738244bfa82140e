"""Chat transport client for the Sanbao ``POST /api/chat`` endpoint.

Sends the conversation to the backend and consumes the NDJSON response
body through the streaming core. The client is the transport
collaborator of the stream session: it owns timeouts and HTTP errors,
and performs no retries.

Usage::

    client = ChatClient()
    session = StreamSession()
    session.subscribe(render)
    snapshot = await client.send_message(request, session=session)
    message = finalize(snapshot)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sanbao_stream.exceptions import ChatTransportError
from sanbao_stream.settings import get_settings
from sanbao_stream.streaming.consumer import iter_events
from sanbao_stream.streaming.session import StreamSession

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sanbao_stream.streaming.events import ChatEvent
    from sanbao_stream.streaming.session import StreamSnapshot

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Превышено время ожидания ответа"
CONNECTION_MESSAGE = "Нет подключения к серверу"


class ChatClientConfig(BaseModel):
    """Configuration for the chat client."""

    base_url: str = Field(..., description="Sanbao backend base URL")
    chat_endpoint: str = Field(default="/api/chat", description="Chat streaming path")
    token: str = Field(default="", description="Bearer token (empty = no Authorization header)")
    connect_timeout: float = Field(default=10.0, gt=0)
    request_timeout: float = Field(default=30.0, gt=0, description="Write and connection-pool timeout")
    stream_timeout: float = Field(default=300.0, gt=0, description="Read timeout between chunks")

    @classmethod
    def from_settings(cls) -> ChatClientConfig:
        settings = get_settings()
        return cls(
            base_url=settings.api_base_url,
            chat_endpoint=settings.chat_endpoint,
            token=settings.api_token.get_secret_value(),
            connect_timeout=settings.connect_timeout,
            request_timeout=settings.request_timeout,
            stream_timeout=settings.stream_timeout,
        )


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatMessage(_CamelModel):
    """One message of the conversation history sent to the backend."""

    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(_CamelModel):
    """Body of a ``POST /api/chat`` request."""

    messages: list[ChatMessage]
    conversation_id: str | None = None
    agent_id: str | None = None
    skill_id: str | None = None
    thinking_enabled: bool = True
    web_search_enabled: bool = False
    planning_enabled: bool = False
    attachments: list[dict[str, Any]] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        """Serialize with camelCase keys, dropping unset ids and empty attachments."""
        payload = self.model_dump(by_alias=True, exclude_none=True)
        if not self.attachments:
            payload.pop("attachments", None)
        return payload


class ChatClient:
    """Streams assistant replies from the Sanbao backend.

    Args:
        config: Client configuration (resolved from settings when omitted).
        transport: Optional httpx transport, e.g. ``httpx.MockTransport`` in tests.
    """

    _ALLOWED_SCHEMES = {"http", "https"}

    def __init__(
        self,
        config: ChatClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or ChatClientConfig.from_settings()

        scheme = httpx.URL(self.config.base_url).scheme
        if scheme not in self._ALLOWED_SCHEMES:
            msg = f"Invalid URL scheme '{scheme}'. Only {self._ALLOWED_SCHEMES} allowed."
            raise ValueError(msg)

        self._transport = transport

    @property
    def url(self) -> str:
        return self.config.base_url.rstrip("/") + self.config.chat_endpoint

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/x-ndjson"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    async def stream_events(self, request: ChatRequest) -> AsyncGenerator[ChatEvent, None]:
        """Send a chat request and yield decoded events as they arrive.

        Raises:
            ChatTransportError: On HTTP status errors, timeouts and
                connection failures.
        """
        timeout = httpx.Timeout(
            self.config.request_timeout,
            connect=self.config.connect_timeout,
            read=self.config.stream_timeout,
        )
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                async with client.stream(
                    "POST",
                    self.url,
                    json=request.to_payload(),
                    headers=self._headers(),
                ) as response:
                    response.raise_for_status()
                    async for event in iter_events(response.aiter_bytes()):
                        yield event

        except httpx.HTTPStatusError as e:
            raise ChatTransportError(
                f"Ошибка сервера: HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.TimeoutException as e:
            raise ChatTransportError(TIMEOUT_MESSAGE) from e
        except httpx.ConnectError as e:
            raise ChatTransportError(CONNECTION_MESSAGE) from e
        except httpx.HTTPError as e:
            raise ChatTransportError(f"Ошибка соединения: {str(e) or type(e).__name__}") from e

    async def send_message(
        self,
        request: ChatRequest,
        session: StreamSession | None = None,
    ) -> StreamSnapshot:
        """Stream one assistant reply into a session.

        Transport failures end the session as ERRORED rather than raising.

        Args:
            request: Conversation to send.
            session: Session to drive; pass your own to subscribe to
                snapshots or to cancel from the UI.

        Returns:
            The session's terminal snapshot.
        """
        session = session or StreamSession(session_id=request.conversation_id)
        logger.debug("Session %s: streaming from %s", session.session_id, self.url)
        return await session.run(self.stream_events(request))
