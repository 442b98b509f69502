"""Domain-specific configuration models."""

from messaging.core.settings.api_config import ApiConfig
from messaging.core.settings.app_config import AppConfig
from messaging.core.settings.session_config import SessionConfig
from messaging.core.settings.stream_config import StreamConfig

__all__ = [
    "ApiConfig",
    "AppConfig",
    "SessionConfig",
    "StreamConfig",
]
