"""Async REST client for the messaging backend."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from types import TracebackType
from typing import Any, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from messaging.client.sse import iter_events
from messaging.core.exceptions import (
    InvalidResponseError,
    NetworkError,
    RequestFailedError,
    StreamConnectError,
)
from messaging.core.settings import ApiConfig
from messaging.schemas.conversation_schema import (
    Conversation,
    ConversationFilters,
    ConversationListResponse,
)
from messaging.schemas.event_schema import StreamEvent
from messaging.schemas.message_schema import (
    ConfirmedMessage,
    ConversationMessagesResponse,
    SendMessageRequest,
    SendMessageResponse,
)
from messaging.schemas.response_schema import ErrorResponse
from messaging.utils.urls import absolute_url

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)


class MessagingClient:
    """Thin wrapper over ``httpx.AsyncClient`` returning parsed models.

    Every call raises ``RequestFailedError`` on a non-success status,
    ``NetworkError`` when the backend is unreachable and
    ``InvalidResponseError`` when the body does not match the schema.
    """

    def __init__(
        self,
        config: ApiConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._http = http_client or httpx.AsyncClient(
            base_url=config.base_url,
            headers=config.auth_headers,
            timeout=config.timeout,
        )

    async def __aenter__(self) -> "MessagingClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # --- Conversations ---

    async def list_conversations(
        self, filters: ConversationFilters | None = None
    ) -> ConversationListResponse:
        """Fetch one page of the signed-in user's conversations."""
        filters = filters or ConversationFilters(limit=self._config.page_limit)
        data = await self._request(
            "GET", self._config.conversations_path, params=filters.to_params()
        )
        result = self._parse(ConversationListResponse, data)
        return result.model_copy(
            update={
                "conversations": [
                    self._with_absolute_avatar(conv) for conv in result.conversations
                ]
            }
        )

    async def get_conversation(
        self, partner_id: str, page: int = 1
    ) -> ConversationMessagesResponse:
        """Fetch one page of messages exchanged with ``partner_id``."""
        data = await self._request(
            "GET",
            f"{self._config.conversations_path}/{partner_id}",
            params={"page": page},
        )
        result = self._parse(ConversationMessagesResponse, data)
        partner = result.partner
        if partner is not None and partner.image:
            partner = partner.model_copy(
                update={"image": absolute_url(partner.image, self._config.origin)}
            )
        return result.model_copy(
            update={
                "messages": [self.normalize_message(m) for m in result.messages],
                "partner": partner,
            }
        )

    # --- Messages ---

    async def send_message(self, receiver_id: str, content: str) -> SendMessageResponse:
        """Post a new message to ``receiver_id``."""
        body = SendMessageRequest(receiver_id=receiver_id, content=content)
        data = await self._request(
            "POST", self._config.messages_path, json=body.model_dump(by_alias=True)
        )
        result = self._parse(SendMessageResponse, data)
        return SendMessageResponse(message=self.normalize_message(result.message))

    async def delete_message(self, message_id: str) -> None:
        """Delete a stored message."""
        await self._request("DELETE", f"{self._config.messages_path}/{message_id}")

    # --- Event stream ---

    @asynccontextmanager
    async def stream_events(
        self, partner_id: str | None = None
    ) -> AsyncIterator[AsyncIterator[StreamEvent]]:
        """Open the event stream, optionally scoped to one partner.

        Stream reads have no timeout; the connection stays open until the
        server closes it or the caller leaves the context.
        """
        params = {"partnerId": partner_id} if partner_id else None
        timeout = httpx.Timeout(self._config.timeout, read=None)
        try:
            async with self._http.stream(
                "GET",
                self._config.events_path,
                params=params,
                headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
                timeout=timeout,
            ) as response:
                if not response.is_success:
                    raise StreamConnectError(response.status_code)
                logger.debug("Event stream opened", partner_id=partner_id)
                yield iter_events(response.aiter_lines())
        except httpx.TransportError as exc:
            raise NetworkError(f"Event stream interrupted: {exc}") from exc

    # --- Helpers ---

    def normalize_message(self, message: ConfirmedMessage) -> ConfirmedMessage:
        """Resolve a relative sender image against the API origin."""
        if not message.sender.image:
            return message
        sender = message.sender.model_copy(
            update={"image": absolute_url(message.sender.image, self._config.origin)}
        )
        return message.model_copy(update={"sender": sender})

    def _with_absolute_avatar(self, conversation: Conversation) -> Conversation:
        if not conversation.avatar:
            return conversation
        return conversation.model_copy(
            update={"avatar": absolute_url(conversation.avatar, self._config.origin)}
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            logger.warning("Request could not be sent", method=method, path=path)
            raise NetworkError(str(exc) or "Network error") from exc

        if not response.is_success:
            detail = self._error_detail(response)
            logger.warning(
                "Request failed",
                method=method,
                path=path,
                status=response.status_code,
                detail=detail,
            )
            raise RequestFailedError(response.status_code, detail)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise InvalidResponseError("Response body is not JSON") from exc

    @staticmethod
    def _error_detail(response: httpx.Response) -> str | None:
        try:
            return ErrorResponse.model_validate(response.json()).detail
        except (ValueError, ValidationError):
            return None

    @staticmethod
    def _parse(model: type[ModelT], data: Any) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise InvalidResponseError(
                f"Unexpected {model.__name__} body: {exc.error_count()} errors"
            ) from exc
