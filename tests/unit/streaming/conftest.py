"""Shared fixtures for streaming module tests."""

import pytest

from sanbao_stream.streaming.decoder import encode_event
from sanbao_stream.streaming.events import (
    ContentEvent,
    ContextEvent,
    ErrorEvent,
    PlanEvent,
    ReasoningEvent,
    StatusEvent,
)


async def async_iter(items):
    """Convert a list to an async iterator."""
    for item in items:
        yield item


def ndjson(*events) -> str:
    """Encode events as an NDJSON body."""
    return "".join(encode_event(e) + "\n" for e in events)


@pytest.fixture()
def make_async_iter():
    return async_iter


@pytest.fixture()
def sample_events():
    """One event of every known kind, in a realistic order."""
    return [
        StatusEvent("searching"),
        ReasoningEvent("Проверяю нормы..."),
        PlanEvent("1. Найти статью"),
        ContextEvent({"usagePercent": 42, "totalTokens": 1200, "contextWindowSize": 128000}),
        ContentEvent("Согласно "),
        ContentEvent("[ст. 15 ГК РК](article://gk_rk/15)"),
    ]


@pytest.fixture()
def sample_body(sample_events) -> str:
    return ndjson(*sample_events)


@pytest.fixture()
def error_event():
    return ErrorEvent("Сервер перегружен")
