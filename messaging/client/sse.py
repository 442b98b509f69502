"""Decoder for ``text/event-stream`` bodies."""

from collections.abc import AsyncIterable, AsyncIterator

from messaging.schemas.event_schema import StreamEvent


class SSEDecoder:
    """Incremental line-based event-stream decoder.

    Feed one line at a time (without the trailing newline). A blank line
    completes the current frame; frames carrying no ``data`` field are
    dropped. ``id`` and ``retry`` fields are ignored: every reconnect opens
    a fresh stream after a fixed delay.
    """

    def __init__(self) -> None:
        self._event = ""
        self._data: list[str] = []

    def decode(self, line: str) -> StreamEvent | None:
        line = line.rstrip("\r\n")
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        return None

    def _dispatch(self) -> StreamEvent | None:
        if not self._data:
            self._event = ""
            return None
        event = StreamEvent(event=self._event or "message", data="\n".join(self._data))
        self._event = ""
        self._data = []
        return event


async def iter_events(lines: AsyncIterable[str]) -> AsyncIterator[StreamEvent]:
    """Turn an async stream of text lines into stream events."""
    decoder = SSEDecoder()
    async for line in lines:
        event = decoder.decode(line)
        if event is not None:
            yield event
