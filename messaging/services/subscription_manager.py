"""Event-stream subscription with fixed-delay reconnect."""

import asyncio
import enum
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from typing import Protocol

import httpx
import structlog

from messaging.core.exceptions import AppException
from messaging.schemas.event_schema import (
    CONNECTED_EVENT,
    NEW_MESSAGE_EVENT,
    PING_EVENT,
    NewMessageEvent,
    StreamEvent,
)
from messaging.services.conversation_store import ConversationStore

logger = structlog.get_logger()

DEFAULT_RECONNECT_DELAY = 5.0


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class EventSource(Protocol):
    def stream_events(
        self, partner_id: str | None = None
    ) -> AbstractAsyncContextManager[AsyncIterator[StreamEvent]]: ...


class Cancellable(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], Cancellable]


def loop_scheduler(delay: float, callback: Callable[[], None]) -> Cancellable:
    """Schedule ``callback`` on the running event loop."""
    return asyncio.get_running_loop().call_later(delay, callback)


class SubscriptionManager:
    """Keeps one event stream open for the active conversation.

    States move ``disconnected -> connecting -> connected``; any stream
    failure or a stream closed by the server goes through ``error`` back to
    ``disconnected`` and schedules exactly one reconnect after a fixed
    delay. The reconnect subscribes to whatever conversation is active
    when it fires. There is no backoff and no retry limit; ``dispose``
    is the only way to stop.
    """

    def __init__(
        self,
        source: EventSource,
        store: ConversationStore,
        refresh_conversations: Callable[[], Awaitable[None]],
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        scheduler: Scheduler = loop_scheduler,
    ) -> None:
        self._source = source
        self._store = store
        self._refresh_conversations = refresh_conversations
        self._reconnect_delay = reconnect_delay
        self._scheduler = scheduler
        self._state = ConnectionState.DISCONNECTED
        self._partner_id: str | None = None
        self._generation = 0
        self._task: asyncio.Task[None] | None = None
        self._reconnect: Cancellable | None = None
        self._disposed = False
        self._state_listeners: list[Callable[[ConnectionState], None]] = []

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def partner_id(self) -> str | None:
        """Partner the current (or last) stream is scoped to."""
        return self._partner_id

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect is not None

    def on_state_change(self, listener: Callable[[ConnectionState], None]) -> None:
        self._state_listeners.append(listener)

    def subscribe(self, partner_id: str | None = None) -> None:
        """Close the current stream and open one scoped to ``partner_id``."""
        if self._disposed:
            logger.debug("Subscribe ignored after dispose", partner_id=partner_id)
            return
        self._close()
        self._generation += 1
        self._partner_id = partner_id
        self._set_state(ConnectionState.CONNECTING)
        self._task = asyncio.create_task(
            self._run(self._generation, partner_id),
            name=f"event-stream-{self._generation}",
        )

    async def dispose(self) -> None:
        """Close the stream for good and cancel any pending reconnect."""
        self._disposed = True
        task = self._task
        self._close()
        self._set_state(ConnectionState.DISCONNECTED)
        if task is not None and not task.done():
            try:
                await task
            except asyncio.CancelledError:
                pass

    # --- Internals ---

    def _close(self) -> None:
        self._generation += 1
        if self._reconnect is not None:
            self._reconnect.cancel()
            self._reconnect = None
        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
            self._task = None

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        logger.debug(
            "Event stream state",
            previous=self._state.value,
            state=state.value,
            partner_id=self._partner_id,
        )
        self._state = state
        for listener in list(self._state_listeners):
            listener(state)

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and not self._disposed

    async def _run(self, generation: int, partner_id: str | None) -> None:
        try:
            async with self._source.stream_events(partner_id) as events:
                async for event in events:
                    if not self._is_current(generation):
                        return
                    await self._dispatch(event)
        except (AppException, httpx.HTTPError) as exc:
            if self._is_current(generation):
                logger.warning(
                    "Event stream error",
                    partner_id=partner_id,
                    error=str(exc),
                )
        except Exception:
            if self._is_current(generation):
                logger.exception("Unexpected event stream failure", partner_id=partner_id)
        else:
            if self._is_current(generation):
                logger.info("Event stream closed by server", partner_id=partner_id)
        if self._is_current(generation):
            self._fail()

    async def _dispatch(self, event: StreamEvent) -> None:
        if event.event == CONNECTED_EVENT:
            self._set_state(ConnectionState.CONNECTED)
            logger.info("Event stream connected", partner_id=self._partner_id)
        elif event.event == NEW_MESSAGE_EVENT:
            try:
                payload = NewMessageEvent.from_stream_event(event)
            except AppException as exc:
                logger.warning("Dropping malformed event", error=exc.message)
            else:
                self._store.apply_incoming(payload)
            try:
                await self._refresh_conversations()
            except AppException as exc:
                logger.warning("Conversation refresh failed", code=exc.code)
        elif event.event == PING_EVENT:
            logger.debug("Event stream ping")
        else:
            logger.debug("Ignoring event", event=event.event)

    def _fail(self) -> None:
        self._set_state(ConnectionState.ERROR)
        self._task = None
        self._set_state(ConnectionState.DISCONNECTED)
        if self._reconnect is None:
            self._reconnect = self._scheduler(self._reconnect_delay, self._on_reconnect)

    def _on_reconnect(self) -> None:
        self._reconnect = None
        if self._disposed:
            return
        partner_id = self._store.active_conversation_id
        logger.info("Reconnecting event stream", partner_id=partner_id)
        self.subscribe(partner_id)
