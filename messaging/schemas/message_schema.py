"""Message schemas.

A thread holds two kinds of entries: messages the backend has stored
(``ConfirmedMessage``) and local placeholders for sends still in flight
(``PendingMessage``). Both expose ``key``, the identity used for
deduplication and replacement.
"""

import uuid
from datetime import UTC, datetime
from typing import Annotated, Literal

from pydantic import Field

from messaging.schemas.base_schema import WireModel
from messaging.schemas.conversation_schema import PaginationInfo


class Partner(WireModel):
    """The other participant of a conversation."""

    id: str
    name: str | None = None
    image: str | None = None


class Sender(WireModel):
    """Author of a message as seen by the signed-in user."""

    id: str
    name: str | None = None
    image: str | None = None
    is_current_user: bool = False

    def for_viewer(self, user_id: str | None) -> "Sender":
        """Mark the sender as the current user when the ids match."""
        if user_id is not None and self.id == user_id and not self.is_current_user:
            return self.model_copy(update={"is_current_user": True})
        return self


class ConfirmedMessage(WireModel):
    """Message stored by the backend, identified by its server id."""

    status: Literal["confirmed"] = "confirmed"
    id: str
    content: str
    created_at: datetime
    read: bool = False
    sender: Sender

    @property
    def key(self) -> str:
        return self.id

    @property
    def is_pending(self) -> bool:
        return False


def _client_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class PendingMessage(WireModel):
    """Optimistic placeholder for a send awaiting the backend."""

    status: Literal["pending"] = "pending"
    client_id: str = Field(default_factory=_client_id)
    content: str
    created_at: datetime = Field(default_factory=_now)
    read: bool = True
    sender: Sender

    @property
    def key(self) -> str:
        return self.client_id

    @property
    def is_pending(self) -> bool:
        return True


Message = Annotated[ConfirmedMessage | PendingMessage, Field(discriminator="status")]


class ConversationMessagesResponse(WireModel):
    """One page of a conversation thread."""

    messages: list[ConfirmedMessage] = Field(default_factory=list)
    partner: Partner | None = None
    pagination: PaginationInfo | None = None


class SendMessageRequest(WireModel):
    """Body of the send-message endpoint."""

    receiver_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class SendMessageResponse(WireModel):
    """Backend confirmation of a sent message."""

    message: ConfirmedMessage
