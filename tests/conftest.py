"""Global test configuration and fixtures.

Provides shared fixtures for all test levels: environment setup, in-memory
collaborators with controllable clocks, and factories for mocked Telegram
updates and contexts.
"""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest

from modbot.bot.dispatcher import InteractionDispatcher
from modbot.core.cooldown import CooldownTracker
from modbot.core.hooks import HookTable
from modbot.core.paginator import Paginator
from modbot.core.registry import CommandRegistry
from modbot.core.response_registry import ResponseRegistry
from modbot.services.store import MemoryEntityStore

# Test constants
TEST_BOT_TOKEN = os.getenv("TEST_BOT_TOKEN", "test_bot_token_placeholder")
TEST_OWNER_ID = int(os.getenv("TEST_ADMIN_CHAT_ID", "12345"))
TEST_CHAT_ID = -1001
TEST_USER_ID = 42


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, amount: float) -> None:
        self.now += amount


@pytest.fixture(autouse=True)
def test_environment():
    """Setup test environment variables for all tests."""
    test_env = {
        'BOT_TOKEN': TEST_BOT_TOKEN,
        'ADMIN_CHAT_ID': str(TEST_OWNER_ID),
        'LOG_LEVEL': 'DEBUG',
    }

    # Store original values
    original_env = {}
    for key, value in test_env.items():
        original_env[key] = os.environ.get(key)
        os.environ[key] = value

    yield

    # Restore original values
    for key, original_value in original_env.items():
        if original_value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = original_value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryEntityStore()


@pytest.fixture
def paginator(clock):
    return Paginator(clock=clock)


@pytest.fixture
def responses(clock):
    registry = ResponseRegistry(clock=clock)
    # No background sweeper task on the test loop
    registry.attach_job_queue(MagicMock())
    return registry


@pytest.fixture
def cooldowns(clock):
    return CooldownTracker(clock=clock)


@pytest.fixture
def hooks():
    return HookTable()


@pytest.fixture
def registry(store, hooks, paginator, responses):
    return CommandRegistry(
        store=store,
        hooks=hooks,
        paginator=paginator,
        responses=responses,
        owner_id=TEST_OWNER_ID,
    )


@pytest.fixture
def make_update():
    """Factory for mocked updates.

    Passing ``data`` builds a callback query update, otherwise a message
    update with ``text``.
    """

    def factory(
        text: str | None = None,
        data: str | None = None,
        chat_id: int = TEST_CHAT_ID,
        user_id: int = TEST_USER_ID,
        chat_type: str = "group",
    ):
        update = MagicMock()
        update.effective_chat = MagicMock(id=chat_id, title="Test chat", type=chat_type)
        update.effective_user = MagicMock(id=user_id, username="tester", language_code="en")

        sent = MagicMock()
        sent.edit_text = AsyncMock()
        message = MagicMock()
        message.text = text
        message.reply_text = AsyncMock(return_value=sent)
        update.effective_message = message

        if data is None:
            update.callback_query = None
        else:
            query = MagicMock()
            query.data = data
            query.message = message
            query.answer = AsyncMock()
            query.edit_message_text = AsyncMock(return_value=True)
            update.callback_query = query

        return update

    return factory


@pytest.fixture
def context():
    """Mocked callback context with a bot that accepts every API call."""
    ctx = MagicMock()
    ctx.args = None
    ctx.bot = MagicMock()
    ctx.bot.username = "modbot_test"
    ctx.bot.set_my_commands = AsyncMock(return_value=True)
    ctx.bot.delete_my_commands = AsyncMock(return_value=True)
    ctx.bot.get_chat_member = AsyncMock(return_value=MagicMock(status="administrator"))
    return ctx


@pytest.fixture
def dispatcher(registry, cooldowns, paginator, hooks, store):
    return InteractionDispatcher(
        registry=registry,
        cooldowns=cooldowns,
        paginator=paginator,
        hooks=hooks,
        store=store,
        owner_id=TEST_OWNER_ID,
    )
