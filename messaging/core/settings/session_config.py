"""Signed-in user configuration."""

from pydantic import BaseModel


class SessionConfig(BaseModel, frozen=True):
    """Identity of the user the client acts for."""

    user_id: str | None
    user_name: str
