"""Unit tests for SendCoordinator."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from messaging.core.exceptions import NetworkError, RequestFailedError
from messaging.schemas.event_schema import NewMessageEvent
from messaging.schemas.message_schema import Sender, SendMessageResponse
from messaging.services.conversation_store import ConversationStore
from messaging.services.send_coordinator import SEND_FAILED_MESSAGE, SendCoordinator
from tests.fakes import make_message, settle

ME = Sender(id="me", name="Me", is_current_user=True)


@pytest.fixture
def on_sent() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def coordinator(
    mock_client: AsyncMock, store: ConversationStore, on_sent: AsyncMock
) -> SendCoordinator:
    store.select("u1")
    return SendCoordinator(client=mock_client, store=store, sender=ME, on_sent=on_sent)


def _confirmed(message_id: str = "srv-1", content: str = "hello") -> SendMessageResponse:
    return SendMessageResponse(
        message=make_message(message_id, content, sender_id="me", is_current_user=True)
    )


class TestRejections:
    """Sends that never reach the network."""

    @pytest.mark.asyncio
    async def test_no_active_conversation(self, mock_client: AsyncMock) -> None:
        store = ConversationStore()
        coordinator = SendCoordinator(client=mock_client, store=store, sender=ME)

        assert await coordinator.send("hello") is None
        mock_client.send_message.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_blank_content(
        self, coordinator: SendCoordinator, mock_client: AsyncMock, text: str
    ) -> None:
        assert await coordinator.send(text) is None
        mock_client.send_message.assert_not_called()


class TestSuccessfulSend:
    """Optimistic insert and reconciliation."""

    @pytest.mark.asyncio
    async def test_pending_visible_while_in_flight(
        self,
        coordinator: SendCoordinator,
        mock_client: AsyncMock,
        store: ConversationStore,
    ) -> None:
        gate = asyncio.Event()

        async def slow_send(receiver_id: str, content: str) -> SendMessageResponse:
            await gate.wait()
            return _confirmed()

        mock_client.send_message.side_effect = slow_send
        store.set_draft("hello")

        task = asyncio.create_task(coordinator.send())
        await settle()

        assert coordinator.in_flight is True
        assert len(store.messages) == 1
        assert store.messages[0].is_pending
        assert store.messages[0].content == "hello"
        assert store.draft == ""

        gate.set()
        result = await task

        assert result is not None
        assert [m.key for m in store.messages] == ["srv-1"]
        assert coordinator.in_flight is False

    @pytest.mark.asyncio
    async def test_sends_trimmed_content_to_active_partner(
        self, coordinator: SendCoordinator, mock_client: AsyncMock
    ) -> None:
        mock_client.send_message.return_value = _confirmed()

        await coordinator.send("  hello  ")

        mock_client.send_message.assert_awaited_once_with("u1", "hello")

    @pytest.mark.asyncio
    async def test_pending_shows_trimmed_content(
        self,
        coordinator: SendCoordinator,
        mock_client: AsyncMock,
        store: ConversationStore,
    ) -> None:
        gate = asyncio.Event()

        async def slow_send(receiver_id: str, content: str) -> SendMessageResponse:
            await gate.wait()
            return _confirmed()

        mock_client.send_message.side_effect = slow_send

        task = asyncio.create_task(coordinator.send("  hello \n"))
        await settle()

        assert [m.content for m in store.messages] == ["hello"]
        gate.set()
        await task

    @pytest.mark.asyncio
    async def test_failed_send_restores_raw_text(
        self,
        coordinator: SendCoordinator,
        mock_client: AsyncMock,
        store: ConversationStore,
    ) -> None:
        mock_client.send_message.side_effect = NetworkError()

        await coordinator.send("  hello ")

        assert store.draft == "  hello "

    @pytest.mark.asyncio
    async def test_refreshes_conversations_after_send(
        self,
        coordinator: SendCoordinator,
        mock_client: AsyncMock,
        on_sent: AsyncMock,
    ) -> None:
        mock_client.send_message.return_value = _confirmed()

        await coordinator.send("hello")

        on_sent.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stream_delivered_first_no_duplicate(
        self,
        coordinator: SendCoordinator,
        mock_client: AsyncMock,
        store: ConversationStore,
    ) -> None:
        confirmed = _confirmed()

        async def send_and_echo(receiver_id: str, content: str) -> SendMessageResponse:
            store.apply_incoming(
                NewMessageEvent(message=confirmed.message, conversation_id="u1")
            )
            return confirmed

        mock_client.send_message.side_effect = send_and_echo

        await coordinator.send("hello")

        keys = [m.key for m in store.messages]
        assert keys == ["srv-1"]
        assert len(keys) == len(set(keys))

    @pytest.mark.asyncio
    async def test_switch_before_confirmation_keeps_other_thread_clean(
        self,
        coordinator: SendCoordinator,
        mock_client: AsyncMock,
        store: ConversationStore,
    ) -> None:
        async def send_then_switch(receiver_id: str, content: str) -> SendMessageResponse:
            store.select("u2")
            return _confirmed()

        mock_client.send_message.side_effect = send_then_switch

        await coordinator.send("hello")

        assert store.active_conversation_id == "u2"
        assert store.messages == []


class TestSingleFlight:
    """Only one send runs at a time."""

    @pytest.mark.asyncio
    async def test_second_send_ignored_while_pending(
        self,
        coordinator: SendCoordinator,
        mock_client: AsyncMock,
        store: ConversationStore,
    ) -> None:
        gate = asyncio.Event()

        async def slow_send(receiver_id: str, content: str) -> SendMessageResponse:
            await gate.wait()
            return _confirmed()

        mock_client.send_message.side_effect = slow_send

        first = asyncio.create_task(coordinator.send("hello"))
        await settle()
        second = await coordinator.send("again")
        gate.set()
        await first

        assert second is None
        assert mock_client.send_message.await_count == 1
        assert [m.content for m in store.messages] == ["hello"]

    @pytest.mark.asyncio
    async def test_next_send_allowed_after_completion(
        self, coordinator: SendCoordinator, mock_client: AsyncMock
    ) -> None:
        mock_client.send_message.side_effect = [_confirmed("srv-1"), _confirmed("srv-2")]

        await coordinator.send("one")
        await coordinator.send("two")

        assert mock_client.send_message.await_count == 2


class TestRollback:
    """Failed sends."""

    @pytest.mark.asyncio
    async def test_pending_removed_and_text_restored(
        self,
        coordinator: SendCoordinator,
        mock_client: AsyncMock,
        store: ConversationStore,
        on_sent: AsyncMock,
    ) -> None:
        store.set_thread("u1", [make_message("m1")], None, None)
        mock_client.send_message.side_effect = RequestFailedError(500, "boom")
        store.set_draft("hello")

        result = await coordinator.send()

        assert result is None
        assert [m.key for m in store.messages] == ["m1"]
        assert store.draft == "hello"
        assert store.error == SEND_FAILED_MESSAGE
        assert coordinator.in_flight is False
        on_sent.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_network_error_rolls_back(
        self,
        coordinator: SendCoordinator,
        mock_client: AsyncMock,
        store: ConversationStore,
    ) -> None:
        mock_client.send_message.side_effect = NetworkError()

        await coordinator.send("hello")

        assert store.messages == []
        assert store.draft == "hello"

    @pytest.mark.asyncio
    async def test_newer_draft_not_overwritten(
        self,
        coordinator: SendCoordinator,
        mock_client: AsyncMock,
        store: ConversationStore,
    ) -> None:
        async def fail_after_typing(receiver_id: str, content: str) -> None:
            store.set_draft("typed meanwhile")
            raise RequestFailedError(503)

        mock_client.send_message.side_effect = fail_after_typing

        await coordinator.send("hello")

        assert store.draft == "typed meanwhile"
        assert store.error == SEND_FAILED_MESSAGE
