"""Controller for one mounted conversation view."""

import structlog

from messaging.client.api_client import MessagingClient
from messaging.core.exceptions import AppException
from messaging.core.settings import SessionConfig
from messaging.schemas.conversation_schema import ConversationFilters
from messaging.schemas.message_schema import ConfirmedMessage, Sender
from messaging.services.conversation_store import ConversationStore
from messaging.services.send_coordinator import SendCoordinator
from messaging.services.subscription_manager import (
    DEFAULT_RECONNECT_DELAY,
    Scheduler,
    SubscriptionManager,
    loop_scheduler,
)
from messaging.utils.urls import conversation_from_query, conversation_query

logger = structlog.get_logger()

CONVERSATIONS_FAILED_MESSAGE = "Conversations could not be loaded."
MESSAGES_FAILED_MESSAGE = "Messages could not be loaded."
DELETE_FAILED_MESSAGE = "Message could not be deleted."


class ConversationController:
    """Owns the store, send coordinator and event subscription of a view.

    ``mount`` loads the conversation list and opens the event stream;
    ``unmount`` closes it. Between the two, the controller translates user
    actions into fetches and store updates.
    """

    def __init__(
        self,
        client: MessagingClient,
        session: SessionConfig,
        page_limit: int = 20,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        scheduler: Scheduler = loop_scheduler,
    ) -> None:
        self._client = client
        self._page_limit = page_limit
        self.store = ConversationStore(current_user_id=session.user_id)
        self.sender = Sender(
            id=session.user_id or "currentUser",
            name=session.user_name,
            is_current_user=True,
        )
        self.coordinator = SendCoordinator(
            client=client,
            store=self.store,
            sender=self.sender,
            on_sent=self.refresh_conversations,
        )
        self.subscriptions = SubscriptionManager(
            source=client,
            store=self.store,
            refresh_conversations=self.refresh_conversations,
            reconnect_delay=reconnect_delay,
            scheduler=scheduler,
        )
        self._conversation_page = 1
        self.location = ""

    # --- Lifecycle ---

    async def mount(self, query: str | None = None) -> None:
        """Load conversations and select the initial one.

        The initial conversation comes from ``?conversation=`` in ``query``,
        otherwise the first conversation of the list. Without any, a
        stream not scoped to a partner is opened.
        """
        initial = conversation_from_query(query)
        await self.refresh_conversations()
        if initial is None and self.store.conversations:
            initial = self.store.conversations[0].partner_id
        if initial is not None:
            await self.select_conversation(initial)
        else:
            self.subscriptions.subscribe(None)

    async def unmount(self) -> None:
        await self.subscriptions.dispose()

    # --- Conversation list ---

    async def refresh_conversations(self) -> None:
        """Re-fetch the current conversation page."""
        store = self.store
        store.set_loading(conversations=True)
        try:
            result = await self._client.list_conversations(
                ConversationFilters(page=self._conversation_page, limit=self._page_limit)
            )
        except AppException as exc:
            logger.warning("Conversation list fetch failed", code=exc.code)
            store.set_error(CONVERSATIONS_FAILED_MESSAGE)
            return
        finally:
            store.set_loading(conversations=False)
        store.set_conversations(result.conversations, result.pagination)
        if store.error == CONVERSATIONS_FAILED_MESSAGE:
            store.set_error(None)

    async def go_to_conversation_page(self, page: int) -> bool:
        """Show another conversation page; out-of-range pages are ignored."""
        pagination = self.store.conversation_pagination
        if pagination is None or not pagination.contains(page):
            return False
        if page == pagination.page:
            return False
        self._conversation_page = page
        await self.refresh_conversations()
        return True

    def search(self, query: str) -> None:
        self.store.set_search(query)

    # --- Active conversation ---

    async def select_conversation(self, partner_id: str) -> None:
        """Open ``partner_id``: fetch page 1 and re-scope the event stream."""
        if partner_id == self.store.active_conversation_id:
            return
        self.store.select(partner_id)
        self.location = conversation_query(partner_id)
        self.subscriptions.subscribe(partner_id)
        await self.load_messages(1)

    async def load_messages(self, page: int = 1) -> None:
        """Fetch one page of the active thread, replacing what is shown."""
        store = self.store
        partner_id = store.active_conversation_id
        if partner_id is None:
            return
        store.set_loading(messages=True)
        try:
            result = await self._client.get_conversation(partner_id, page)
        except AppException as exc:
            logger.warning(
                "Message fetch failed", partner_id=partner_id, code=exc.code
            )
            if store.active_conversation_id == partner_id:
                store.set_error(MESSAGES_FAILED_MESSAGE)
            return
        finally:
            store.set_loading(messages=False)
        applied = store.set_thread(
            partner_id, result.messages, result.partner, result.pagination
        )
        if applied and store.error == MESSAGES_FAILED_MESSAGE:
            store.set_error(None)

    async def go_to_message_page(self, page: int) -> bool:
        """Show another thread page; out-of-range pages are ignored."""
        pagination = self.store.message_pagination
        if pagination is None or not pagination.contains(page):
            return False
        if page == pagination.page:
            return False
        await self.load_messages(page)
        return True

    # --- Compose ---

    def set_draft(self, text: str) -> None:
        self.store.set_draft(text)

    async def send(self, content: str | None = None) -> ConfirmedMessage | None:
        return await self.coordinator.send(content)

    async def delete_message(self, key: str) -> bool:
        """Remove a message, optimistically.

        Pending entries are only dropped locally. A failed delete puts the
        message back where it was.
        """
        removed = self.store.discard(key)
        if removed is None:
            return False
        index, message = removed
        if message.is_pending:
            return True
        try:
            await self._client.delete_message(message.key)
        except AppException as exc:
            logger.warning("Message delete failed", message_id=key, code=exc.code)
            self.store.restore(index, message)
            self.store.set_error(DELETE_FAILED_MESSAGE)
            return False
        return True
