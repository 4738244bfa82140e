"""Unit tests for StreamSession — accumulation, terminal states, cancellation."""

import asyncio
import dataclasses

import pytest

from sanbao_stream.exceptions import ChatTransportError, StreamSessionError
from sanbao_stream.streaming.decoder import DecodeError
from sanbao_stream.streaming.events import (
    ContentEvent,
    ContextEvent,
    ErrorEvent,
    PlanEvent,
    ReasoningEvent,
    StatusEvent,
    StreamingPhase,
    UnknownEvent,
)
from sanbao_stream.streaming.session import StreamSession, StreamSnapshot, StreamState


class TestApply:
    def test_initial_snapshot_is_empty(self):
        session = StreamSession()
        assert session.snapshot == StreamSnapshot()
        assert session.state is StreamState.ACTIVE
        assert session.is_done is False

    def test_text_kinds_accumulate_separately(self):
        session = StreamSession()
        for event in [
            ReasoningEvent("think "),
            ContentEvent("Hello"),
            PlanEvent("step 1"),
            ReasoningEvent("more"),
            ContentEvent(", world"),
        ]:
            assert session.apply(event) is True

        snap = session.snapshot
        assert snap.content == "Hello, world"
        assert snap.reasoning == "think more"
        assert snap.plan == "step 1"
        assert snap.events_applied == 5
        assert snap.phase is StreamingPhase.ANSWERING

    def test_status_keeps_latest_only(self):
        session = StreamSession()
        session.apply(StatusEvent("searching"))
        session.apply(StatusEvent("using_tool:calculate"))

        snap = session.snapshot
        assert snap.last_status == "using_tool:calculate"
        assert snap.phase is StreamingPhase.USING_TOOL
        assert snap.tool_name == "calculate"

    def test_context_last_write_wins(self):
        session = StreamSession()
        session.apply(ContextEvent({"usagePercent": 10, "totalTokens": 5}))
        session.apply(ContextEvent({"usagePercent": 55}))

        snap = session.snapshot
        assert snap.context == {"usagePercent": 55}
        assert snap.context_usage.usage_percent == 55
        assert snap.context_usage.total_tokens == 0

    def test_context_is_copied(self):
        payload = {"usagePercent": 1}
        session = StreamSession()
        session.apply(ContextEvent(payload))
        payload["usagePercent"] = 99
        assert session.snapshot.context == {"usagePercent": 1}

    def test_observer_can_not_mutate_context(self):
        session = StreamSession()

        def tamper(snap):
            with pytest.raises(TypeError):
                snap.context["usagePercent"] = 999

        session.apply(ContextEvent({"usagePercent": 5}))
        session.subscribe(tamper)
        session.apply(ContentEvent("x"))

        assert session.snapshot.context == {"usagePercent": 5}
        assert session.snapshot.context_usage.usage_percent == 5

    def test_unknown_and_decode_errors_are_noops(self):
        session = StreamSession()
        seen = []
        session.subscribe(seen.append)

        assert session.apply(UnknownEvent(code="z")) is False
        assert session.apply(DecodeError(line="{", reason="invalid JSON")) is False

        assert seen == []
        assert session.snapshot.events_applied == 0

    def test_snapshots_are_immutable(self):
        session = StreamSession()
        session.apply(ContentEvent("x"))
        with pytest.raises(dataclasses.FrozenInstanceError):
            session.snapshot.content = "y"


class TestTerminalStates:
    def test_error_event_terminates(self):
        session = StreamSession()
        session.apply(ContentEvent("partial "))
        session.apply(ContentEvent("answer"))
        session.apply(ErrorEvent("Сервер перегружен"))

        snap = session.snapshot
        assert snap.state is StreamState.ERRORED
        assert snap.is_done is True
        assert snap.error == "Сервер перегружен"
        assert snap.content == "partial answer"

    def test_events_after_error_are_ignored(self):
        session = StreamSession()
        session.apply(ContentEvent("before"))
        session.apply(ErrorEvent("boom"))

        assert session.apply(ContentEvent(" after")) is False
        assert session.snapshot.content == "before"

    def test_empty_error_message_gets_default(self):
        session = StreamSession()
        session.apply(ErrorEvent(""))
        assert session.snapshot.error == "Unknown error"

    def test_complete(self):
        session = StreamSession()
        session.apply(ContentEvent("done"))
        snap = session.complete()
        assert snap.state is StreamState.COMPLETED
        assert snap.is_done is True
        assert snap.error is None

    def test_fail_is_treated_like_error_event(self):
        session = StreamSession()
        session.apply(ContentEvent("partial"))
        snap = session.fail("Нет подключения к серверу")
        assert snap.state is StreamState.ERRORED
        assert snap.error == "Нет подключения к серверу"
        assert snap.content == "partial"

    def test_terminal_state_is_sticky(self):
        session = StreamSession()
        session.complete()
        session.fail("late failure")
        session.cancel()
        assert session.state is StreamState.COMPLETED
        assert session.snapshot.error is None

    def test_cancel_keeps_content(self):
        session = StreamSession()
        session.apply(ContentEvent("so far"))
        snap = session.cancel()
        assert snap.state is StreamState.CANCELLED
        assert snap.is_done is True
        assert snap.content == "so far"
        assert session.cancel_requested is True


class TestObservers:
    def test_observer_receives_each_snapshot(self):
        session = StreamSession()
        seen = []
        session.subscribe(seen.append)

        session.apply(ContentEvent("a"))
        session.apply(ContentEvent("b"))
        session.complete()

        assert [s.content for s in seen] == ["a", "ab", "ab"]
        assert seen[-1].is_done is True

    def test_unsubscribe(self):
        session = StreamSession()
        seen = []
        unsubscribe = session.subscribe(seen.append)
        session.apply(ContentEvent("a"))
        unsubscribe()
        unsubscribe()
        session.apply(ContentEvent("b"))
        assert len(seen) == 1

    def test_failing_observer_does_not_break_stream(self):
        session = StreamSession()
        seen = []

        def broken(_snapshot):
            raise RuntimeError("render failed")

        session.subscribe(broken)
        session.subscribe(seen.append)
        session.apply(ContentEvent("a"))

        assert session.snapshot.content == "a"
        assert len(seen) == 1

    def test_cancel_during_broadcast_ends_on_terminal_snapshot(self):
        session = StreamSession()
        seen = []
        session.subscribe(lambda snap: session.cancel() if snap.content == "a" else None)
        session.subscribe(seen.append)

        session.apply(ContentEvent("a"))

        assert seen[-1].is_done is True
        assert [s.state for s in seen] == [StreamState.CANCELLED]
        assert seen[-1].content == "a"
        assert session.state is StreamState.CANCELLED


class TestRun:
    @pytest.mark.asyncio
    async def test_run_completes_on_exhaustion(self, make_async_iter):
        session = StreamSession()
        snap = await session.run(make_async_iter([ContentEvent("Hi"), ContentEvent("!")]))
        assert snap.state is StreamState.COMPLETED
        assert snap.content == "Hi!"

    @pytest.mark.asyncio
    async def test_run_stops_consuming_after_error(self):
        consumed = []

        async def source():
            for event in [ContentEvent("a"), ErrorEvent("bad"), ContentEvent("never")]:
                consumed.append(event)
                yield event

        session = StreamSession()
        snap = await session.run(source())

        assert snap.state is StreamState.ERRORED
        assert snap.content == "a"
        assert len(consumed) == 2

    @pytest.mark.asyncio
    async def test_run_maps_transport_error(self):
        async def source():
            yield ContentEvent("partial")
            raise ChatTransportError("Превышено время ожидания ответа")

        session = StreamSession()
        snap = await session.run(source())

        assert snap.state is StreamState.ERRORED
        assert snap.error == "Превышено время ожидания ответа"
        assert snap.content == "partial"

    @pytest.mark.asyncio
    async def test_unexpected_error_marks_errored_and_propagates(self):
        async def source():
            yield ContentEvent("x")
            raise RuntimeError("bug")

        session = StreamSession()
        with pytest.raises(RuntimeError):
            await session.run(source())
        assert session.state is StreamState.ERRORED

    @pytest.mark.asyncio
    async def test_cancel_from_observer_stops_consumption(self):
        consumed = []

        async def source():
            for i in range(10):
                consumed.append(i)
                yield ContentEvent(str(i))

        session = StreamSession()
        session.subscribe(lambda snap: session.cancel() if snap.content == "012" else None)
        snap = await session.run(source())

        assert snap.state is StreamState.CANCELLED
        assert snap.content == "012"
        assert len(consumed) == 3

    @pytest.mark.asyncio
    async def test_cancel_from_other_task(self):
        gate = asyncio.Event()

        async def source():
            yield ContentEvent("first")
            await gate.wait()
            yield ContentEvent("buffered")

        session = StreamSession()
        task = asyncio.create_task(session.run(source()))
        await asyncio.sleep(0)
        while session.snapshot.content != "first":
            await asyncio.sleep(0)

        session.cancel()
        gate.set()
        snap = await task

        assert snap.state is StreamState.CANCELLED
        assert snap.content == "first"

    @pytest.mark.asyncio
    async def test_task_cancellation_marks_cancelled(self):
        async def source():
            yield ContentEvent("x")
            await asyncio.sleep(3600)
            yield ContentEvent("never")

        session = StreamSession()
        task = asyncio.create_task(session.run(source()))
        while session.snapshot.content != "x":
            await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert session.state is StreamState.CANCELLED

    @pytest.mark.asyncio
    async def test_source_is_closed_on_exit(self):
        closed = []

        async def source():
            try:
                yield ErrorEvent("stop")
                yield ContentEvent("never")
            finally:
                closed.append(True)

        await StreamSession().run(source())
        assert closed == [True]

    @pytest.mark.asyncio
    async def test_run_twice_raises(self, make_async_iter):
        session = StreamSession()
        await session.run(make_async_iter([]))
        with pytest.raises(StreamSessionError):
            await session.run(make_async_iter([]))

    @pytest.mark.asyncio
    async def test_sessions_are_independent(self, make_async_iter):
        first, second = StreamSession(), StreamSession()
        await asyncio.gather(
            first.run(make_async_iter([ContentEvent("one")])),
            second.run(make_async_iter([ContentEvent("two")])),
        )
        assert first.snapshot.content == "one"
        assert second.snapshot.content == "two"

    @pytest.mark.asyncio
    async def test_content_before_error_is_concatenation(self, make_async_iter):
        chunks = ["Это ", "частичный ", "ответ"]
        events = [ContentEvent(c) for c in chunks] + [ErrorEvent("x"), ContentEvent("lost")]
        snap = await StreamSession().run(make_async_iter(events))
        assert snap.is_done is True
        assert snap.content == "".join(chunks)
