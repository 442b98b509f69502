"""Server-Sent Event schemas."""

import json

from pydantic import BaseModel, ValidationError

from messaging.core.exceptions import InvalidEventError
from messaging.schemas.base_schema import WireModel
from messaging.schemas.message_schema import ConfirmedMessage

CONNECTED_EVENT = "connected"
NEW_MESSAGE_EVENT = "new-message"
PING_EVENT = "ping"


class StreamEvent(BaseModel, frozen=True):
    """One decoded event-stream frame."""

    event: str = "message"
    data: str = ""


class NewMessageEvent(WireModel):
    """Payload of a ``new-message`` event."""

    message: ConfirmedMessage
    conversation_id: str | None = None

    @classmethod
    def from_stream_event(cls, event: StreamEvent) -> "NewMessageEvent":
        """Parse the JSON data of a stream frame.

        Accepts ``{message, conversationId}`` as well as a bare message
        object, which some backend routes publish without the wrapper.
        """
        try:
            data = json.loads(event.data)
        except ValueError as exc:
            raise InvalidEventError(event.event, "data is not JSON") from exc
        if isinstance(data, dict) and "message" not in data:
            data = {"message": data}
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise InvalidEventError(event.event, str(exc)) from exc
