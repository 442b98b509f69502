"""In-memory state for one conversation view."""

from collections.abc import Callable

import structlog

from messaging.schemas.conversation_schema import Conversation, PaginationInfo
from messaging.schemas.event_schema import NewMessageEvent
from messaging.schemas.message_schema import (
    ConfirmedMessage,
    Message,
    Partner,
    PendingMessage,
)

logger = structlog.get_logger()

Listener = Callable[[str], None]

# Change topics passed to listeners.
CONVERSATIONS = "conversations"
MESSAGES = "messages"
DRAFT = "draft"
ERROR = "error"
LOADING = "loading"
SCROLL = "scroll"


class ConversationStore:
    """Conversation list, active thread and compose state.

    The store is only mutated from the event loop thread. Every thread
    mutation keeps message keys unique, which is the only consistency
    guard between REST results and event-stream deliveries.
    """

    def __init__(self, current_user_id: str | None = None) -> None:
        self.current_user_id = current_user_id
        self.conversations: list[Conversation] = []
        self.conversation_pagination: PaginationInfo | None = None
        self.active_conversation_id: str | None = None
        self.partner: Partner | None = None
        self.messages: list[Message] = []
        self.message_pagination: PaginationInfo | None = None
        self.search_query = ""
        self.draft = ""
        self.error: str | None = None
        self.conversations_loading = False
        self.messages_loading = False
        self._listeners: list[Listener] = []

    # --- Listeners ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, topic: str) -> None:
        for listener in list(self._listeners):
            listener(topic)

    # --- Conversations ---

    def set_conversations(
        self,
        conversations: list[Conversation],
        pagination: PaginationInfo | None,
    ) -> None:
        self.conversations = list(conversations)
        self.conversation_pagination = pagination
        self.notify(CONVERSATIONS)

    def filtered_conversations(self) -> list[Conversation]:
        """Conversations whose participant name matches the search query."""
        query = self.search_query.strip().lower()
        if not query:
            return list(self.conversations)
        return [c for c in self.conversations if query in c.participant.lower()]

    def set_search(self, query: str) -> None:
        self.search_query = query
        self.notify(CONVERSATIONS)

    def reset_unread(self, partner_id: str) -> None:
        self.conversations = [
            conv.model_copy(update={"unread_count": 0})
            if conv.partner_id == partner_id and conv.unread_count
            else conv
            for conv in self.conversations
        ]
        self.notify(CONVERSATIONS)

    # --- Active thread ---

    def select(self, partner_id: str) -> None:
        """Make ``partner_id`` the active conversation and clear the old thread."""
        self.active_conversation_id = partner_id
        self.partner = None
        self.messages = []
        self.message_pagination = None
        self.error = None
        self.notify(MESSAGES)

    def set_thread(
        self,
        partner_id: str,
        messages: list[ConfirmedMessage],
        partner: Partner | None,
        pagination: PaginationInfo | None,
    ) -> bool:
        """Replace the thread with a fetched page.

        Ignored when ``partner_id`` is no longer active. Returns whether the
        page was applied.
        """
        if partner_id != self.active_conversation_id:
            logger.debug("Discarding stale thread page", partner_id=partner_id)
            return False
        unique: dict[str, Message] = {}
        for message in messages:
            message = message.model_copy(
                update={"sender": message.sender.for_viewer(self.current_user_id)}
            )
            unique.setdefault(message.key, message)
        self.messages = list(unique.values())
        self.partner = partner
        self.message_pagination = pagination
        self.notify(MESSAGES)
        self.reset_unread(partner_id)
        return True

    def has_message(self, key: str) -> bool:
        return any(message.key == key for message in self.messages)

    def append_pending(self, message: PendingMessage) -> None:
        if self.has_message(message.key):
            return
        self.messages = [*self.messages, message]
        self.notify(MESSAGES)

    def reconcile(self, client_id: str, confirmed: ConfirmedMessage) -> bool:
        """Swap the pending entry ``client_id`` for its confirmed message.

        When the confirmed id is already in the thread (the stream delivered
        it first) the pending entry is dropped instead. Returns False when
        no pending entry matched, e.g. after a conversation switch.
        """
        if not self.has_message(client_id):
            return False
        confirmed = confirmed.model_copy(
            update={"sender": confirmed.sender.for_viewer(self.current_user_id)}
        )
        if self.has_message(confirmed.key):
            self.messages = [m for m in self.messages if m.key != client_id]
        else:
            self.messages = [
                confirmed if m.key == client_id else m for m in self.messages
            ]
        self.notify(MESSAGES)
        return True

    def discard(self, key: str) -> tuple[int, Message] | None:
        """Remove the entry with ``key``; returns its index and value."""
        for index, message in enumerate(self.messages):
            if message.key == key:
                self.messages = self.messages[:index] + self.messages[index + 1 :]
                self.notify(MESSAGES)
                return index, message
        return None

    def restore(self, index: int, message: Message) -> None:
        """Put back an entry removed by ``discard`` unless it reappeared."""
        if self.has_message(message.key):
            return
        messages = list(self.messages)
        messages.insert(min(index, len(messages)), message)
        self.messages = messages
        self.notify(MESSAGES)

    def belongs_to_active_thread(self, event: NewMessageEvent) -> bool:
        """Whether a streamed message is part of the open conversation."""
        active = self.active_conversation_id
        if active is None:
            return False
        sender = event.message.sender.for_viewer(self.current_user_id)
        if sender.id == active:
            return True
        if sender.is_current_user:
            return event.conversation_id in (None, active)
        return False

    def apply_incoming(self, event: NewMessageEvent) -> bool:
        """Append a streamed message to the active thread if it belongs there.

        Returns whether the thread changed.
        """
        if not self.belongs_to_active_thread(event):
            return False
        message = event.message
        if self.has_message(message.key):
            logger.debug("Duplicate message ignored", message_id=message.key)
            return False
        message = message.model_copy(
            update={"sender": message.sender.for_viewer(self.current_user_id)}
        )
        self.messages = [*self.messages, message]
        self.notify(MESSAGES)
        self.request_scroll()
        return True

    # --- Compose box, status ---

    def set_draft(self, text: str) -> None:
        self.draft = text
        self.notify(DRAFT)

    def set_error(self, error: str | None) -> None:
        self.error = error
        self.notify(ERROR)

    def set_loading(
        self,
        *,
        conversations: bool | None = None,
        messages: bool | None = None,
    ) -> None:
        if conversations is not None:
            self.conversations_loading = conversations
        if messages is not None:
            self.messages_loading = messages
        self.notify(LOADING)

    def request_scroll(self) -> None:
        """Ask the view to bring the newest message into sight."""
        self.notify(SCROLL)
