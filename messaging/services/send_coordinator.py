"""Optimistic message sending."""

from collections.abc import Awaitable, Callable

import structlog

from messaging.client.api_client import MessagingClient
from messaging.core.exceptions import AppException
from messaging.schemas.message_schema import ConfirmedMessage, PendingMessage, Sender
from messaging.services.conversation_store import ConversationStore

logger = structlog.get_logger()

SEND_FAILED_MESSAGE = "Message could not be sent. Your text was kept in the compose box."


class SendCoordinator:
    """Shows a sent message immediately and reconciles it with the backend.

    At most one send runs at a time; extra calls while one is in flight
    are ignored.
    """

    def __init__(
        self,
        client: MessagingClient,
        store: ConversationStore,
        sender: Sender,
        on_sent: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._client = client
        self._store = store
        self._sender = sender
        self._on_sent = on_sent
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def send(self, content: str | None = None) -> ConfirmedMessage | None:
        """Send ``content`` (or the current draft) to the active conversation.

        Returns the confirmed message, or None when the send was rejected
        or failed. Failures remove the pending entry, set the store error
        and put the text back into an empty compose box.
        """
        store = self._store
        text = store.draft if content is None else content
        receiver_id = store.active_conversation_id
        if receiver_id is None or not text.strip() or self._in_flight:
            return None

        self._in_flight = True
        trimmed = text.strip()
        pending = PendingMessage(content=trimmed, sender=self._sender)
        try:
            store.append_pending(pending)
            store.set_draft("")
            store.request_scroll()
            try:
                response = await self._client.send_message(receiver_id, trimmed)
            except AppException as exc:
                logger.warning(
                    "Message send failed",
                    receiver_id=receiver_id,
                    code=exc.code,
                    status=exc.status_code,
                )
                store.discard(pending.key)
                if not store.draft and store.active_conversation_id == receiver_id:
                    store.set_draft(text)
                store.set_error(SEND_FAILED_MESSAGE)
                return None

            if not store.reconcile(pending.key, response.message):
                logger.debug(
                    "Pending message gone before confirmation",
                    client_id=pending.key,
                    message_id=response.message.id,
                )
            logger.info("Message sent", receiver_id=receiver_id, message_id=response.message.id)
        finally:
            self._in_flight = False

        if self._on_sent is not None:
            await self._on_sent()
        return response.message
