"""Text rendering of the conversation view."""

import sys
from collections.abc import Callable
from datetime import datetime
from typing import TextIO

from messaging.schemas.conversation_schema import Conversation, PaginationInfo
from messaging.schemas.message_schema import Message, Partner
from messaging.services.conversation_store import LOADING, ConversationStore
from messaging.utils.time_format import format_message_time

CLEAR_SCREEN = "\x1b[2J\x1b[H"
PREVIEW_WIDTH = 32
RULE = "-" * 60


def _truncate(text: str, width: int) -> str:
    text = " ".join(text.split())
    if len(text) <= width:
        return text
    return text[: width - 3] + "..."


def render_pagination(pagination: PaginationInfo | None) -> str:
    if pagination is None or pagination.pages == 0:
        return ""
    return f"page {pagination.page}/{pagination.pages} ({pagination.total} total)"


def render_conversation_row(conversation: Conversation, active: bool) -> str:
    marker = ">" if active else " "
    name = conversation.participant
    if conversation.unread_count:
        name = f"{name} ({conversation.unread_count})"
    preview = _truncate(conversation.last_message, PREVIEW_WIDTH)
    return f"{marker} {name:<24} {preview:<{PREVIEW_WIDTH}} {conversation.timestamp}".rstrip()


def render_conversation_list(
    conversations: list[Conversation],
    active_id: str | None,
    pagination: PaginationInfo | None = None,
    search_query: str = "",
    loading: bool = False,
) -> list[str]:
    lines = ["Conversations"]
    if loading and not conversations:
        lines.append("  loading...")
    elif not conversations:
        if search_query:
            lines.append("  No conversations match your search")
        else:
            lines.append("  No conversations yet")
    else:
        lines.extend(
            render_conversation_row(conv, conv.partner_id == active_id)
            for conv in conversations
        )
    footer = render_pagination(pagination)
    if footer:
        lines.append(f"  {footer}")
    return lines


def render_message(message: Message, now: datetime | None = None) -> str:
    sender = message.sender
    name = "You" if sender.is_current_user else (sender.name or sender.id)
    when = format_message_time(message.created_at, now)
    line = f"[{when}] {name}: {message.content}"
    if message.is_pending:
        line += "  (sending...)"
    else:
        line += f"  #{message.key}"
    return line


def render_thread(
    partner: Partner | None,
    partner_id: str | None,
    messages: list[Message],
    pagination: PaginationInfo | None = None,
    loading: bool = False,
    now: datetime | None = None,
) -> list[str]:
    if partner_id is None:
        return ["Select a conversation"]
    title = (partner.name if partner and partner.name else None) or partner_id
    lines = [title, RULE]
    if loading and not messages:
        lines.append("loading...")
    elif not messages:
        lines.append("No messages yet")
    else:
        lines.extend(render_message(message, now) for message in messages)
    footer = render_pagination(pagination)
    if footer:
        lines.append(footer)
    return lines


def render(store: ConversationStore, now: datetime | None = None) -> str:
    """Render the whole view from the store."""
    lines = render_conversation_list(
        store.filtered_conversations(),
        store.active_conversation_id,
        store.conversation_pagination,
        store.search_query,
        store.conversations_loading,
    )
    lines.append("")
    lines.extend(
        render_thread(
            store.partner,
            store.active_conversation_id,
            store.messages,
            store.message_pagination,
            store.messages_loading,
            now,
        )
    )
    if store.error:
        lines.append(f"! {store.error}")
    if store.draft:
        lines.append(f"> {store.draft}")
    return "\n".join(lines)


class TerminalView:
    """Redraws the conversation view whenever the store changes."""

    def __init__(self, store: ConversationStore, out: TextIO | None = None) -> None:
        self._store = store
        self._out = out or sys.stdout
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def _clears_screen(self) -> bool:
        isatty = getattr(self._out, "isatty", None)
        return bool(isatty and isatty())

    def attach(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self._on_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_change(self, topic: str) -> None:
        # Loading flips on every fetch; the data topics redraw anyway.
        if topic == LOADING:
            return
        self.draw()

    def draw(self) -> None:
        prefix = CLEAR_SCREEN if self._clears_screen else ""
        self._out.write(prefix + render(self._store) + "\n")
        self._out.flush()
