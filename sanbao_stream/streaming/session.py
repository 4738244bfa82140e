"""Stream session — accumulate chat events into an in-progress message.

A StreamSession is the only stateful object of the streaming core. It is
owned by the call that created it and driven by a single producer (the
transport, through ``run()`` or direct ``apply()`` calls). Observers
subscribe to receive an immutable StreamSnapshot after every state
change; they never mutate the session.

State machine::

    ACTIVE --Error event / fail()--> ERRORED
    ACTIVE --stream exhausted / complete()--> COMPLETED
    ACTIVE --cancel()--> CANCELLED

All three target states are terminal. Once terminal, the snapshot is
frozen and further events are ignored.

Cancellation is cooperative and best-effort. ``cancel()`` flips the
state at once, but it does not abort transport I/O in flight: the
driving loop notices the flag at the next event boundary. Two races are
accepted rather than locked away:

- When an observer cancels during a broadcast, observers later in the
  list receive the terminal snapshot and never the one that was being
  broadcast, so the last snapshot every observer sees is terminal.
- Events decoded from a chunk that was already received are dropped,
  so the final snapshot after a cancel may lag the server by a few
  events.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import uuid
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from sanbao_stream.exceptions import ChatTransportError, StreamSessionError
from sanbao_stream.streaming.events import (
    ContentEvent,
    ContextEvent,
    ContextUsage,
    ErrorEvent,
    PlanEvent,
    ReasoningEvent,
    StatusEvent,
    StreamingPhase,
    phase_from_event,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, Callable, Mapping

    from sanbao_stream.streaming.decoder import DecodeError
    from sanbao_stream.streaming.events import ChatEvent

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "Unknown error"


class StreamState(enum.Enum):
    """Lifecycle state of a stream session."""

    ACTIVE = "active"
    COMPLETED = "completed"
    ERRORED = "errored"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not StreamState.ACTIVE


@dataclass(frozen=True)
class StreamSnapshot:
    """Immutable point-in-time view of the accumulated stream.

    Attributes:
        content: All content chunks concatenated in arrival order.
        reasoning: All reasoning chunks concatenated.
        plan: All plan chunks concatenated.
        last_status: Latest status string, if any status arrived.
        context: Latest context payload as a read-only copy, if any.
        error: Terminal error message, if the stream errored.
        is_done: True once the session reached a terminal state.
        state: Session state when the snapshot was taken.
        phase: Current streaming phase, if known.
        tool_name: Tool announced by the latest ``using_tool:<name>`` status.
        events_applied: Number of events that changed the state.
    """

    content: str = ""
    reasoning: str = ""
    plan: str = ""
    last_status: str | None = None
    context: Mapping[str, Any] | None = None
    error: str | None = None
    is_done: bool = False
    state: StreamState = StreamState.ACTIVE
    phase: StreamingPhase | None = None
    tool_name: str | None = None
    events_applied: int = 0

    @property
    def context_usage(self) -> ContextUsage | None:
        if self.context is None:
            return None
        return ContextUsage.model_validate(dict(self.context))


class StreamSession:
    """Accumulates one assistant reply from a stream of chat events.

    Usage::

        session = StreamSession()
        unsubscribe = session.subscribe(render)
        final = await session.run(iter_events(response.aiter_bytes()))

    Args:
        session_id: Identifier used in log messages (random when omitted).
    """

    def __init__(self, session_id: str | None = None) -> None:
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self._snapshot = StreamSnapshot()
        self._observers: list[Callable[[StreamSnapshot], None]] = []
        self._cancel_requested = False
        self._running = False

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> StreamSnapshot:
        return self._snapshot

    @property
    def state(self) -> StreamState:
        return self._snapshot.state

    @property
    def is_done(self) -> bool:
        return self._snapshot.is_done

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    def subscribe(self, observer: Callable[[StreamSnapshot], None]) -> Callable[[], None]:
        """Register an observer for snapshot updates.

        Returns:
            A callable that removes the observer again.
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    # ------------------------------------------------------------------
    # Write side (single producer)
    # ------------------------------------------------------------------

    def apply(self, event: ChatEvent | DecodeError) -> bool:
        """Apply one decoded event.

        Returns:
            True if the event changed the snapshot, False if it was
            ignored (unknown kind, decode error, or terminal session).
        """
        if self.state.is_terminal:
            logger.debug("Session %s: ignoring %s after %s", self.session_id, type(event).__name__, self.state.value)
            return False

        current = self._snapshot
        phase = phase_from_event(event) or current.phase

        if isinstance(event, ContentEvent):
            updated = replace(current, content=current.content + event.text, phase=phase)
        elif isinstance(event, ReasoningEvent):
            updated = replace(current, reasoning=current.reasoning + event.text, phase=phase)
        elif isinstance(event, PlanEvent):
            updated = replace(current, plan=current.plan + event.text, phase=phase)
        elif isinstance(event, StatusEvent):
            updated = replace(
                current,
                last_status=event.text,
                phase=phase,
                tool_name=event.tool_name if event.is_using_tool else current.tool_name,
            )
        elif isinstance(event, ContextEvent):
            updated = replace(current, context=MappingProxyType(dict(event.payload)))
        elif isinstance(event, ErrorEvent):
            counted = replace(current, events_applied=current.events_applied + 1)
            self._terminate(StreamState.ERRORED, error=event.message or UNKNOWN_ERROR_MESSAGE, base=counted)
            return True
        else:
            # UnknownEvent / DecodeError: forward-compatible no-op
            return False

        self._publish(replace(updated, events_applied=current.events_applied + 1))
        return True

    def complete(self) -> StreamSnapshot:
        """Mark the transport as finished without error."""
        if not self.state.is_terminal:
            self._terminate(StreamState.COMPLETED)
        return self._snapshot

    def fail(self, message: str) -> StreamSnapshot:
        """Record a transport failure; treated like an Error event."""
        if not self.state.is_terminal:
            self._terminate(StreamState.ERRORED, error=message or UNKNOWN_ERROR_MESSAGE)
        return self._snapshot

    def cancel(self) -> StreamSnapshot:
        """Request cancellation (user pressed "stop generating").

        Content streamed so far is kept. Safe to call more than once and
        after the session already finished.
        """
        self._cancel_requested = True
        if not self.state.is_terminal:
            self._terminate(StreamState.CANCELLED)
        return self._snapshot

    async def run(self, events: AsyncIterable[ChatEvent]) -> StreamSnapshot:
        """Drive the session from an async event source until terminal.

        Checks the cancel flag between deliveries, stops consuming after
        an Error event, and closes the source on exit. A
        ChatTransportError raised by the source ends the session as
        ERRORED with the error's message.

        Args:
            events: Decoded events, e.g. ``iter_events(response.aiter_bytes())``.

        Returns:
            The final (terminal) snapshot.

        Raises:
            StreamSessionError: If the session is already running or finished.
        """
        if self._running or self.state.is_terminal:
            raise StreamSessionError(
                f"Session {self.session_id} can only be run once",
                state=self.state.value,
            )
        self._running = True

        iterator = events.__aiter__()
        try:
            while not self._cancel_requested and not self.state.is_terminal:
                try:
                    event = await iterator.__anext__()
                except StopAsyncIteration:
                    self.complete()
                    break
                if self._cancel_requested:
                    break
                self.apply(event)
        except ChatTransportError as e:
            logger.warning("Session %s: transport failed: %s", self.session_id, e)
            self.fail(str(e))
        except asyncio.CancelledError:
            self.cancel()
            raise
        except Exception as e:
            self.fail(f"Ошибка: {e}")
            raise
        finally:
            self._running = False
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

        return self._snapshot

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _terminate(
        self,
        state: StreamState,
        *,
        error: str | None = None,
        base: StreamSnapshot | None = None,
    ) -> None:
        current = base or self._snapshot
        final = replace(
            current,
            state=state,
            is_done=True,
            error=error if error is not None else current.error,
        )
        logger.debug("Session %s: %s -> %s", self.session_id, current.state.value, state.value)
        self._publish(final)

    def _publish(self, snapshot: StreamSnapshot) -> None:
        self._snapshot = snapshot
        for observer in list(self._observers):
            if self._snapshot is not snapshot:
                # superseded by a snapshot published from an observer
                break
            try:
                observer(snapshot)
            except Exception:
                logger.exception("Session %s: snapshot observer failed", self.session_id)
