"""Application configuration using Pydantic Settings V2."""

from functools import cached_property
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from messaging.core.settings import (
    ApiConfig,
    AppConfig,
    SessionConfig,
    StreamConfig,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Flat fields are loaded directly from environment variables.
    Domain properties provide grouped access (e.g. settings.api.base_url).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = Field(
        default="messaging-client",
        description="Application name",
    )
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(
        default=True,
        description="Debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum log level",
    )

    # Backend API
    api_base_url: str = Field(
        default="http://localhost:3000/api",
        description="Base URL of the messaging backend",
    )
    api_token: SecretStr = Field(
        default=SecretStr(""),
        description="Bearer token sent with every request",
    )
    api_timeout: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Request timeout in seconds (not applied to stream reads)",
    )
    conversations_path: str = Field(
        default="/conversations",
        description="Conversation list endpoint path",
    )
    messages_path: str = Field(
        default="/messages",
        description="Message send/delete endpoint path",
    )
    events_path: str = Field(
        default="/events",
        description="Server-Sent Events endpoint path",
    )
    page_limit: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Conversations requested per page",
    )

    # Event stream
    reconnect_delay_seconds: float = Field(
        default=5.0,
        gt=0,
        le=300,
        description="Fixed delay before reopening a failed event stream",
    )

    # Session
    user_id: str | None = Field(
        default=None,
        description="Id of the signed-in user, used to recognise own messages",
    )
    user_name: str = Field(
        default="You",
        description="Display name for messages sent from this client",
    )

    # --- Domain properties ---

    @cached_property
    def app(self) -> AppConfig:
        """Application environment configuration."""
        return AppConfig(
            name=self.app_name,
            env=self.app_env,
            debug=self.debug,
            log_level=self.log_level,
        )

    @cached_property
    def api(self) -> ApiConfig:
        """Backend API configuration."""
        return ApiConfig(
            base_url=self.api_base_url.rstrip("/"),
            token=self.api_token,
            timeout=self.api_timeout,
            conversations_path=self.conversations_path,
            messages_path=self.messages_path,
            events_path=self.events_path,
            page_limit=self.page_limit,
        )

    @cached_property
    def stream(self) -> StreamConfig:
        """Event stream configuration."""
        return StreamConfig(reconnect_delay_seconds=self.reconnect_delay_seconds)

    @cached_property
    def session(self) -> SessionConfig:
        """Signed-in user configuration."""
        return SessionConfig(user_id=self.user_id, user_name=self.user_name)

    # --- Convenience properties (delegate to domain configs) ---

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app.is_development


# Global settings instance
settings = Settings()
