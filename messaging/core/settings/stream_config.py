"""Event stream configuration."""

from pydantic import BaseModel


class StreamConfig(BaseModel, frozen=True):
    """Server-Sent Events subscription settings."""

    reconnect_delay_seconds: float
