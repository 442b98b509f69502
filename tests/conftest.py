"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr

from messaging.client.api_client import MessagingClient
from messaging.core.settings import ApiConfig, SessionConfig
from messaging.services.conversation_store import ConversationStore
from tests.fake_backend import TEST_TOKEN, FakeBackend
from tests.fakes import FakeScheduler, FakeStreamClient

# --- Configuration ---


@pytest.fixture
def api_config() -> ApiConfig:
    """API settings pointing at the in-process fake backend."""
    return ApiConfig(
        base_url="http://test/api",
        token=SecretStr(TEST_TOKEN),
        timeout=5.0,
        conversations_path="/conversations",
        messages_path="/messages",
        events_path="/events",
        page_limit=20,
    )


@pytest.fixture
def session_config() -> SessionConfig:
    return SessionConfig(user_id="me", user_name="Me")


# --- Fake backend (FastAPI over ASGITransport) ---


@pytest.fixture
def backend() -> FakeBackend:
    """Fresh backend seeded with two partners."""
    fake = FakeBackend(user_id="me")
    fake.add_user("u1", "Alice Smith", image="/uploads/alice.png")
    fake.add_user("u2", "Bob Jones")
    return fake


@pytest.fixture
async def api_client(
    backend: FakeBackend, api_config: ApiConfig
) -> AsyncGenerator[MessagingClient, None]:
    """MessagingClient wired to the fake backend."""
    transport = ASGITransport(app=backend.app)
    http = AsyncClient(
        transport=transport,
        base_url=api_config.base_url,
        headers=api_config.auth_headers,
    )
    client = MessagingClient(api_config, http_client=http)
    yield client
    await client.aclose()


# --- Stream and timer doubles ---


@pytest.fixture
def fake_streams() -> FakeStreamClient:
    return FakeStreamClient()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


# --- Store ---


@pytest.fixture
def store() -> ConversationStore:
    return ConversationStore(current_user_id="me")


@pytest.fixture
def mock_client() -> AsyncMock:
    """Create a mock MessagingClient."""
    return AsyncMock(spec=MessagingClient)
