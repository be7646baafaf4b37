"""
Shared fixtures.

Nothing here touches the network: Telegram is replaced by FakeTelegram,
OpenAI by a mocked AsyncOpenAI client, GitHub by httpx.MockTransport.
"""

from types import SimpleNamespace
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.agents.schemas import BotCreate
from app.errors import InvalidCredential, UpstreamServiceError
from app.services.completion import CompletionGateway
from app.storage import MemStorage
from app.telegram_bot.manager import BotLifecycleManager

VALID_TOKEN = "123456789:AAHdqTcvCH1vGWJxfSeofSAs0K5PALDsaw"
OTHER_VALID_TOKEN = "987654321:BBHdqTcvCH1vGWJxfSeofSAs0K5PALDsaw"
REJECTED_TOKEN = "111111111:RevokedTokenRevokedTokenRevoked00"
DEMO_USER = "demo-user"
GPT_REPLY = "Hello from GPT"


def make_completion(content: Optional[str]) -> SimpleNamespace:
    """Shape of an OpenAI chat completion response."""
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )


class FakeConnection:
    """In-process stand-in for TelegramConnection."""

    def __init__(self, token: str, open_error: Optional[Exception] = None):
        self.token = token
        self.open_error = open_error
        self.send_error: Optional[Exception] = None
        self.close_error: Optional[Exception] = None
        self.opened = False
        self.closed = False
        self.sent: list[tuple[int, str]] = []
        self.on_message = None
        self.on_polling_error = None

    async def open(self, on_message, on_polling_error) -> str:
        if self.open_error is not None:
            raise self.open_error
        self.on_message = on_message
        self.on_polling_error = on_polling_error
        self.opened = True
        return "fake_bot"

    async def send_message(self, chat_id: int, text: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((chat_id, text))

    async def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


class FakeTelegram:
    """Connection factory that records every connection it builds."""

    def __init__(self):
        self.connections: list[FakeConnection] = []
        self.rejected_tokens = {REJECTED_TOKEN}
        self.unreachable = False

    def __call__(self, token: str) -> FakeConnection:
        error = None
        if token in self.rejected_tokens:
            error = InvalidCredential("Telegram rejected the bot token")
        elif self.unreachable:
            error = UpstreamServiceError("Telegram API error: Timed out")
        connection = FakeConnection(token, open_error=error)
        self.connections.append(connection)
        return connection

    @property
    def last(self) -> FakeConnection:
        return self.connections[-1]

    @property
    def all_sent(self) -> list[tuple[int, str]]:
        return [message for c in self.connections for message in c.sent]


@pytest.fixture
def storage() -> MemStorage:
    return MemStorage()


@pytest.fixture
def openai_client() -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=make_completion(GPT_REPLY))
    return client


@pytest.fixture
def completion(openai_client) -> CompletionGateway:
    return CompletionGateway(client=openai_client)


@pytest.fixture
def telegram() -> FakeTelegram:
    return FakeTelegram()


@pytest.fixture
def manager(storage, completion, telegram) -> BotLifecycleManager:
    return BotLifecycleManager(storage, completion, connection_factory=telegram)


@pytest.fixture
def make_bot(storage):
    """Create a stored (inactive) bot."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        fields = {
            "name": "Helper",
            "username": f"helper_{counter['n']}_bot",
            "telegram_token": VALID_TOKEN,
            "gpt_model": "gpt-4o-mini",
            "personality": "You are a pirate.",
            "temperature": 0.5,
            "max_tokens": 200,
        }
        fields.update(overrides)
        return storage.create_bot(BotCreate(**fields), DEMO_USER)

    return _make


@pytest.fixture
def client(storage, manager, completion):
    """TestClient wired to the test storage, manager and completion gateway."""
    from fastapi.testclient import TestClient
    from app.main import app
    from app.api.ai import limiter
    from app.services.completion import get_completion_gateway
    from app.storage import get_storage
    from app.telegram_bot.manager import get_bot_manager

    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_bot_manager] = lambda: manager
    app.dependency_overrides[get_completion_gateway] = lambda: completion
    limiter.enabled = False

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    limiter.enabled = True
