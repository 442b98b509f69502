"""Conversation list schemas."""

from datetime import datetime

from pydantic import Field

from messaging.schemas.base_schema import WireModel


class PaginationInfo(WireModel):
    """Page metadata shared by the conversation and message endpoints."""

    total: int = Field(default=0, ge=0)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1)
    pages: int = Field(default=0, ge=0)

    def contains(self, page: int) -> bool:
        """Whether ``page`` is a navigable page number."""
        return 1 <= page <= self.pages


class Conversation(WireModel):
    """Single conversation entry, keyed by the counterpart user."""

    id: str | None = None
    partner_id: str
    participant: str
    avatar: str | None = None
    role: str | None = None
    last_message: str = ""
    timestamp: str = ""
    unread_count: int = Field(default=0, ge=0)
    created_at: datetime | None = None


class ConversationFilters(WireModel):
    """Query parameters for the conversation list endpoint."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)

    def to_params(self) -> dict[str, int]:
        return {"page": self.page, "limit": self.limit}


class ConversationListResponse(WireModel):
    """Paginated conversation list."""

    conversations: list[Conversation] = Field(default_factory=list)
    pagination: PaginationInfo | None = None
