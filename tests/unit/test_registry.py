"""Tests for the per-scope command registry."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram import BotCommandScopeChat, BotCommandScopeDefault
from telegram.error import NetworkError

from modbot.bot.command import BaseCommand, CustomizableCommand
from modbot.core.annotations import chain_event, cron
from modbot.core.errors import StoreError
from modbot.core.registry import CommandRegistry
from modbot.models import GLOBAL_SCOPE, EventType

FAILING_SCOPE = "-666"


class EchoCommand(BaseCommand):
    name = "echo"
    pretty_name = "Echo Back"
    description = "Repeat a message"
    aliases = frozenset({"say"})
    extra_commands = {"echo_all": "Repeat to everyone"}

    async def execute(self, update, context):
        return None


class CounterCommand(CustomizableCommand):
    name = "counter"
    description = "Count messages"

    async def prepare_command_data(self, scope_id):
        if scope_id == FAILING_SCOPE:
            raise StoreError("settings table unavailable")
        await super().prepare_command_data(scope_id)

    async def execute(self, update, context):
        return None

    @chain_event(EventType.MESSAGE)
    async def count(self, update, context):
        return None


class ReportCommand(CustomizableCommand):
    name = "report"

    def __init__(self, services=None):
        super().__init__(services)
        self.polls = 0

    async def prepare_command_data(self, scope_id):
        await super().prepare_command_data(scope_id)

    async def execute(self, update, context):
        return None

    @cron("0 * * * *")
    async def poll(self, context):
        self.polls += 1


class NamelessCommand(BaseCommand):
    async def execute(self, update, context):
        return None


async def add_chats(store, *chat_ids):
    for chat_id in chat_ids:
        await store.save("chats", {"chat_id": chat_id})


class FakeJobQueue:
    """Job queue keeping scheduled jobs by name."""

    def __init__(self):
        self.jobs = {}

    def run_custom(self, callback, job_kwargs, name, data):
        job = MagicMock(data=data, callback=callback)

        def remove():
            if self.jobs.get(name) is job:
                del self.jobs[name]

        job.schedule_removal.side_effect = remove
        self.jobs[name] = job
        return job

    def get_jobs_by_name(self, name):
        return (self.jobs[name],) if name in self.jobs else ()


def make_bot():
    bot = MagicMock()
    bot.set_my_commands = AsyncMock(return_value=True)
    bot.delete_my_commands = AsyncMock(return_value=True)
    return bot


class TestRegistryLoad:
    """Loading prototypes and per-scope clones."""

    @pytest.mark.asyncio
    async def test_plain_command_registered_globally(self, registry):
        await registry.load(EchoCommand())

        assert registry.get(GLOBAL_SCOPE, "echo") is not None
        assert registry.scopes() == [GLOBAL_SCOPE]

    @pytest.mark.asyncio
    async def test_nameless_command_skipped(self, registry):
        await registry.load(NamelessCommand())

        assert registry.prototypes() == []

    @pytest.mark.asyncio
    async def test_customizable_without_scopes_lives_globally(self, registry):
        await registry.load(CounterCommand())

        assert registry.get(GLOBAL_SCOPE, "counter") is not None

    @pytest.mark.asyncio
    async def test_customizable_cloned_per_scope(self, registry, store):
        await add_chats(store, -1, -2)

        await registry.load(CounterCommand())

        first = registry.get("-1", "counter")
        second = registry.get("-2", "counter")
        assert first is not second
        assert first.scope_id == "-1" and second.scope_id == "-2"
        assert registry.get(GLOBAL_SCOPE, "counter") is None

    @pytest.mark.asyncio
    async def test_clones_have_independent_enabled_state(self, registry, store):
        await add_chats(store, -1, -2)
        await store.save("command_settings", {"scope_id": "-1", "command": "counter", "enabled": True})

        await registry.load(CounterCommand())

        assert registry.get("-1", "counter").enabled is True
        assert registry.get("-2", "counter").enabled is False

        registry.get("-2", "counter").enabled = True
        registry.get("-1", "counter").enabled = False
        assert registry.get("-2", "counter").enabled is True

    @pytest.mark.asyncio
    async def test_failing_scope_skipped_others_loaded(self, registry, store):
        await add_chats(store, -1, int(FAILING_SCOPE))

        await registry.load(CounterCommand())

        assert registry.get("-1", "counter") is not None
        assert registry.get(FAILING_SCOPE, "counter") is None

    @pytest.mark.asyncio
    async def test_store_failure_while_listing_scopes_falls_back_to_global(self, registry, store):
        store.find = AsyncMock(side_effect=StoreError("down"))

        await registry.load(CounterCommand())

        assert registry.get(GLOBAL_SCOPE, "counter") is not None

    @pytest.mark.asyncio
    async def test_hooks_bound_per_scope(self, registry, store, hooks):
        await add_chats(store, -1, -2)

        await registry.load(CounterCommand())

        bound = hooks.hooks_for(EventType.MESSAGE, "-1")
        assert [hook.instance for hook in bound] == [registry.get("-1", "counter")]

    @pytest.mark.asyncio
    async def test_reloading_custom_command_replaces_registrations(self, registry, store, hooks):
        await add_chats(store, -1)
        await registry.load(CounterCommand())

        await registry.load(CounterCommand())

        assert len(hooks.hooks_for(EventType.MESSAGE, "-1")) == 1

    @pytest.mark.asyncio
    async def test_full_load_discovers_feature_modules(self, registry, store):
        await add_chats(store, -1)

        await registry.load()

        names = {command.name for command in registry.prototypes()}
        assert {"help", "settings", "ping", "alias", "earthquake"} <= names
        assert registry.get(GLOBAL_SCOPE, "help") is not None
        assert registry.get("-1", "alias") is not None

    @pytest.mark.asyncio
    async def test_full_reload_drops_removed_commands(self, registry, store, hooks, monkeypatch):
        await add_chats(store, -1)
        monkeypatch.setattr(
            registry, "discover", MagicMock(side_effect=[[EchoCommand, CounterCommand], [EchoCommand]])
        )
        await registry.load()
        assert registry.get("-1", "counter") is not None

        await registry.load()

        assert [command.name for command in registry.prototypes()] == ["echo"]
        assert set(registry.visible("-1")) == {"echo"}
        assert hooks.hooks_for(EventType.MESSAGE, "-1") == []


class TestRegistryJobs:
    """Scheduled jobs follow the scopes commands are exposed in."""

    @pytest.mark.asyncio
    async def test_scope_added_after_startup_gets_its_own_job(self, registry, hooks):
        await registry.load(ReportCommand())
        job_queue = FakeJobQueue()
        hooks.schedule(job_queue)
        assert list(job_queue.jobs) == ["report:poll:global"]

        await registry.add_scope("-7")

        assert list(job_queue.jobs) == ["report:poll:-7"]
        clone = registry.get("-7", "report")
        clone.enabled = True
        await hooks._run_job(MagicMock(job=job_queue.jobs["report:poll:-7"]))
        assert clone.polls == 1

    @pytest.mark.asyncio
    async def test_each_new_scope_is_scheduled(self, registry, store, hooks):
        await add_chats(store, -1)
        await registry.load(ReportCommand())
        job_queue = FakeJobQueue()
        hooks.schedule(job_queue)

        await registry.add_scope("-2")

        assert sorted(job_queue.jobs) == ["report:poll:-1", "report:poll:-2"]

    @pytest.mark.asyncio
    async def test_reloaded_command_keeps_one_job_per_scope(self, registry, store, hooks):
        await add_chats(store, -1)
        await registry.load(ReportCommand())
        job_queue = FakeJobQueue()
        hooks.schedule(job_queue)
        first = job_queue.jobs["report:poll:-1"]

        await registry.load(ReportCommand())

        assert list(job_queue.jobs) == ["report:poll:-1"]
        assert job_queue.jobs["report:poll:-1"] is not first
        first.schedule_removal.assert_called_once()


class TestRegistryLookup:
    """Visibility and name resolution."""

    @pytest.mark.asyncio
    async def test_visible_merges_global_and_scope(self, registry, store):
        await add_chats(store, -1)
        await registry.load(EchoCommand())
        await registry.load(CounterCommand())

        assert set(registry.visible("-1")) == {"echo", "counter"}
        assert set(registry.visible(GLOBAL_SCOPE)) == {"echo"}

    @pytest.mark.asyncio
    async def test_find_by_name_display_name_and_alias(self, registry):
        await registry.load(EchoCommand())

        assert registry.find(GLOBAL_SCOPE, "echo").name == "echo"
        assert registry.find(GLOBAL_SCOPE, "Echo Back").name == "echo"
        assert registry.find(GLOBAL_SCOPE, "echo_back").name == "echo"
        assert registry.find(GLOBAL_SCOPE, "SAY").name == "echo"
        assert registry.find(GLOBAL_SCOPE, "missing") is None

    @pytest.mark.asyncio
    async def test_add_scope_clones_customizable_commands(self, registry):
        await registry.load(CounterCommand())

        assert await registry.add_scope("-5")
        assert not await registry.add_scope("-5")

        assert registry.get("-5", "counter").scope_id == "-5"
        assert registry.get(GLOBAL_SCOPE, "counter") is None


class TestRegistryPublish:
    """Command list payloads and publishing."""

    @pytest.mark.asyncio
    async def test_payload_includes_global_and_enabled_local(self, registry, store):
        await add_chats(store, -1, -2)
        await store.save("command_settings", {"scope_id": "-1", "command": "counter", "enabled": True})
        await registry.load(EchoCommand())
        await registry.load(CounterCommand())

        assert [entry.name for entry in registry.build_payload("-1")] == ["counter", "echo", "echo_all"]
        assert [entry.name for entry in registry.build_payload("-2")] == ["echo", "echo_all"]
        assert [entry.name for entry in registry.build_payload(GLOBAL_SCOPE)] == ["echo", "echo_all"]

    @pytest.mark.asyncio
    async def test_publish_is_idempotent_unless_forced(self, registry):
        await registry.load(EchoCommand())
        bot = make_bot()

        assert await registry.publish(bot) == {GLOBAL_SCOPE: True}
        assert await registry.publish(bot) == {GLOBAL_SCOPE: False}
        assert await registry.publish(bot, force=True) == {GLOBAL_SCOPE: True}

        assert bot.set_my_commands.await_count == 2
        assert isinstance(bot.set_my_commands.await_args.kwargs["scope"], BotCommandScopeDefault)

    @pytest.mark.asyncio
    async def test_publish_chat_scope(self, registry, store):
        await add_chats(store, -1)
        await registry.load(EchoCommand())
        await registry.load(CounterCommand())
        bot = make_bot()

        await registry.publish(bot, "-1")

        scope = bot.set_my_commands.await_args.kwargs["scope"]
        assert isinstance(scope, BotCommandScopeChat)
        assert scope.chat_id == -1

    @pytest.mark.asyncio
    async def test_clear_old_commands_once_per_scope(self, store, hooks):
        registry = CommandRegistry(store=store, hooks=hooks, clear_old_commands=True)
        await registry.load(EchoCommand())
        bot = make_bot()

        await registry.publish(bot, force=True)
        await registry.publish(bot, force=True)

        assert bot.delete_my_commands.await_count == 1

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_stop_other_scopes(self, registry, store):
        await add_chats(store, -1)
        await registry.load(EchoCommand())
        await registry.load(CounterCommand())
        bot = make_bot()
        bot.set_my_commands = AsyncMock(side_effect=[NetworkError("boom"), True])

        results = await registry.publish(bot)

        assert results == {GLOBAL_SCOPE: False, "-1": True}

    @pytest.mark.asyncio
    async def test_failed_publish_is_retried_next_time(self, registry):
        await registry.load(EchoCommand())
        bot = make_bot()
        bot.set_my_commands = AsyncMock(side_effect=[NetworkError("boom"), True])

        await registry.publish(bot)

        assert await registry.publish(bot) == {GLOBAL_SCOPE: True}
