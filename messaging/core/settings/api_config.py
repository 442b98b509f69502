"""Messaging backend API configuration."""

from urllib.parse import urlsplit

from pydantic import BaseModel, SecretStr


class ApiConfig(BaseModel, frozen=True):
    """REST and event-stream endpoint settings."""

    base_url: str
    token: SecretStr
    timeout: float
    conversations_path: str
    messages_path: str
    events_path: str
    page_limit: int

    @property
    def origin(self) -> str:
        """Scheme and host of the base URL, used to absolutize image paths."""
        parts = urlsplit(self.base_url)
        return f"{parts.scheme}://{parts.netloc}"

    @property
    def auth_headers(self) -> dict[str, str]:
        """Authorization header, empty when no token is configured."""
        token = self.token.get_secret_value()
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}
