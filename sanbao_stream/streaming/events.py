"""Chat event types for the streaming pipeline.

Each NDJSON line of the chat stream decodes to exactly one of these
events. The one-letter ``kind`` code is the ``t`` field on the wire:

- ``c`` content text chunk
- ``r`` reasoning/thinking text chunk
- ``p`` plan text chunk
- ``s`` status (searching, using_tool, ...)
- ``x`` context info (usage percent, token counts)
- ``e`` error message

Unknown codes decode to UnknownEvent, which every consumer treats as a
no-op. New server-side event kinds therefore never break older clients.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ContextUsage(BaseModel):
    """Typed view of a context event payload.

    Attributes:
        usage_percent: Percentage of the context window used (0-100).
        total_tokens: Total tokens in the conversation.
        context_window_size: Maximum context window size for the model.
        compacting: Whether the server is compacting the conversation.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    usage_percent: int = Field(default=0, alias="usagePercent")
    total_tokens: int = Field(default=0, alias="totalTokens")
    context_window_size: int = Field(default=0, alias="contextWindowSize")
    compacting: bool = False

    @field_validator("usage_percent", "total_tokens", "context_window_size", mode="before")
    @classmethod
    def _coerce_number(cls, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int | float):
            return 0
        return int(value)

    @field_validator("compacting", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool:
        return value if isinstance(value, bool) else False


@dataclass(frozen=True)
class ContentEvent:
    """A chunk of assistant response content."""

    kind: ClassVar[str] = "c"
    text: str = ""


@dataclass(frozen=True)
class ReasoningEvent:
    """A chunk of reasoning/thinking content, kept apart from the reply."""

    kind: ClassVar[str] = "r"
    text: str = ""


@dataclass(frozen=True)
class PlanEvent:
    """A chunk of plan content."""

    kind: ClassVar[str] = "p"
    text: str = ""


@dataclass(frozen=True)
class StatusEvent:
    """A transient status update (e.g. ``searching``, ``using_tool:calculate``).

    Only the latest status matters; statuses are never accumulated.
    """

    kind: ClassVar[str] = "s"
    text: str = ""

    @property
    def is_searching(self) -> bool:
        return self.text == "searching"

    @property
    def is_using_tool(self) -> bool:
        return self.text == "using_tool" or self.text.startswith("using_tool:")

    @property
    def tool_name(self) -> str | None:
        """Tool name carried as ``using_tool:<name>``, if any."""
        if not self.text.startswith("using_tool:"):
            return None
        return self.text.split(":", 1)[1] or None


@dataclass(frozen=True)
class ContextEvent:
    """Side-channel metadata about the conversation context (last write wins)."""

    kind: ClassVar[str] = "x"
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def usage(self) -> ContextUsage:
        return ContextUsage.model_validate(self.payload)


@dataclass(frozen=True)
class ErrorEvent:
    """An error reported by the server. Terminal for the stream."""

    kind: ClassVar[str] = "e"
    message: str = ""


@dataclass(frozen=True)
class UnknownEvent:
    """An event with a kind code this client does not know.

    Attributes:
        code: The raw ``t`` value from the wire.
        payload: The raw ``v`` value, kept for debugging.
    """

    code: str
    payload: Any = None


ChatEvent = ContentEvent | ReasoningEvent | PlanEvent | StatusEvent | ContextEvent | ErrorEvent | UnknownEvent

# Wire code -> event class for the known kinds
EVENT_TYPES: dict[str, type] = {
    cls.kind: cls
    for cls in (ContentEvent, ReasoningEvent, PlanEvent, StatusEvent, ContextEvent, ErrorEvent)
}


class StreamingPhase(enum.Enum):
    """What the assistant is currently doing, derived from stream events."""

    THINKING = "thinking"
    SEARCHING = "searching"
    USING_TOOL = "using_tool"
    PLANNING = "planning"
    ANSWERING = "answering"

    @property
    def label(self) -> str:
        return _PHASE_LABELS[self]


_PHASE_LABELS = {
    StreamingPhase.THINKING: "Думает",
    StreamingPhase.SEARCHING: "Ищет",
    StreamingPhase.USING_TOOL: "Использует инструменты",
    StreamingPhase.PLANNING: "Составляет план",
    StreamingPhase.ANSWERING: "Отвечает",
}


def phase_from_event(event: ChatEvent) -> StreamingPhase | None:
    """Map an event to the streaming phase it signals.

    Returns None for events that do not change the phase (context,
    error, unknown, and statuses other than searching / using a tool).
    """
    if isinstance(event, ReasoningEvent):
        return StreamingPhase.THINKING
    if isinstance(event, PlanEvent):
        return StreamingPhase.PLANNING
    if isinstance(event, ContentEvent):
        return StreamingPhase.ANSWERING
    if isinstance(event, StatusEvent):
        if event.is_searching:
            return StreamingPhase.SEARCHING
        if event.is_using_tool:
            return StreamingPhase.USING_TOOL
    return None


class ToolCategory(enum.Enum):
    """Tool category for granular status display while a tool runs."""

    WEB_SEARCH = "web_search"
    KNOWLEDGE = "knowledge"
    CALCULATION = "calculation"
    MEMORY = "memory"
    TASK = "task"
    NOTIFICATION = "notification"
    SCRATCHPAD = "scratchpad"
    CHART = "chart"
    HTTP = "http"
    MCP = "mcp"
    GENERIC = "generic"

    @property
    def label(self) -> str:
        return _TOOL_LABELS[self]

    @classmethod
    def from_tool_name(cls, tool_name: str | None) -> ToolCategory:
        """Resolve a tool name to its category.

        Built-in tools map to fixed categories; any other non-empty name
        is a plugin (MCP) tool.
        """
        if not tool_name:
            return cls.GENERIC
        return _TOOL_CATEGORIES.get(tool_name, cls.MCP)


_TOOL_LABELS = {
    ToolCategory.WEB_SEARCH: "Ищет в интернете",
    ToolCategory.KNOWLEDGE: "Ищет в базе знаний",
    ToolCategory.CALCULATION: "Вычисляет",
    ToolCategory.MEMORY: "Сохраняет в память",
    ToolCategory.TASK: "Создает задачу",
    ToolCategory.NOTIFICATION: "Отправляет уведомление",
    ToolCategory.SCRATCHPAD: "Работает с заметками",
    ToolCategory.CHART: "Строит график",
    ToolCategory.HTTP: "Выполняет запрос",
    ToolCategory.MCP: "Использует плагин",
    ToolCategory.GENERIC: "Использует инструменты",
}

_TOOL_CATEGORIES = {
    "read_knowledge": ToolCategory.KNOWLEDGE,
    "search_knowledge": ToolCategory.KNOWLEDGE,
    "calculate": ToolCategory.CALCULATION,
    "analyze_csv": ToolCategory.CALCULATION,
    "generate_chart_data": ToolCategory.CHART,
    "save_memory": ToolCategory.MEMORY,
    "create_task": ToolCategory.TASK,
    "send_notification": ToolCategory.NOTIFICATION,
    "write_scratchpad": ToolCategory.SCRATCHPAD,
    "read_scratchpad": ToolCategory.SCRATCHPAD,
    "http_request": ToolCategory.HTTP,
    "get_current_time": ToolCategory.GENERIC,
    "get_user_info": ToolCategory.GENERIC,
    "get_conversation_context": ToolCategory.GENERIC,
}
