"""Tests for application wiring."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from dependency_injector import providers
from telegram.ext import CallbackQueryHandler, ChatMemberHandler, MessageHandler

from modbot.config import Config, config
from modbot.core.container import build_container
from modbot.main import build_application, cleanup_resources, initialize_resources
from modbot.services.store import MemoryEntityStore


@pytest.fixture
def container(tmp_path):
    container = build_container(Config(config_dir=tmp_path))
    container.store.override(providers.Object(MemoryEntityStore()))
    return container


def test_build_application_registers_handlers(monkeypatch, container):
    monkeypatch.setattr(config.bot, "bot_token", "123456:TEST")

    app = build_application(container)

    handlers = app.handlers[0]
    assert [type(handler) for handler in handlers] == [
        MessageHandler,
        CallbackQueryHandler,
        MessageHandler,
        MessageHandler,
        MessageHandler,
        ChatMemberHandler,
    ]
    assert all(handler.block is False for handler in handlers)
    assert app.error_handlers


@pytest.mark.asyncio
async def test_initialize_resources_publishes_and_schedules(container):
    application = MagicMock()
    application.bot.set_my_commands = AsyncMock(return_value=True)
    application.bot.delete_my_commands = AsyncMock(return_value=True)
    application.job_queue.get_jobs_by_name.return_value = []

    await initialize_resources(application, container)

    application.bot.set_my_commands.assert_awaited_once()
    names = [call.kwargs["name"] for call in application.job_queue.run_custom.call_args_list]
    assert "earthquake:poll:global" in names
    application.job_queue.run_repeating.assert_called_once()


@pytest.mark.asyncio
async def test_cleanup_resources_clears_state(container):
    container.responses().store("key", "message")

    await cleanup_resources(container)

    assert container.responses().size() == 0
