"""Tests for event and cron hook bindings."""

from unittest.mock import MagicMock

import pytest

from modbot.bot.command import BaseCommand
from modbot.core.annotations import chain_event, cron
from modbot.models import GLOBAL_SCOPE, EventType


class GreeterCommand(BaseCommand):
    name = "greeter"

    def __init__(self, services=None):
        super().__init__(services)
        self.seen = []

    async def execute(self, update, context):
        return None

    @chain_event(EventType.MEMBER_JOINED)
    async def greet(self, update, context):
        self.seen.append(update)

    @cron("*/10 * * * *")
    async def tick(self, context):
        self.seen.append("tick")


class BrokenCommand(BaseCommand):
    name = "broken"

    async def execute(self, update, context):
        return None

    @chain_event(EventType.MEMBER_JOINED)
    async def explode(self, update, context):
        raise RuntimeError("hook failure")


class OnceCommand(BaseCommand):
    name = "once"

    def __init__(self, services=None):
        super().__init__(services)
        self.calls = 0

    async def execute(self, update, context):
        return None

    @chain_event(EventType.MESSAGE, once=True)
    async def first_message(self, update, context):
        self.calls += 1


def make_job_queue():
    job_queue = MagicMock()
    job_queue.get_jobs_by_name.return_value = []
    return job_queue


class TestHookTableEvents:
    """Event delivery per scope."""

    @pytest.mark.asyncio
    async def test_fire_reaches_scope_and_global_hooks_only(self, hooks):
        local = GreeterCommand().clone_for("-1")
        other = GreeterCommand().clone_for("-2")
        shared = GreeterCommand()
        hooks.bind(local, "-1")
        hooks.bind(other, "-2")
        hooks.bind(shared, GLOBAL_SCOPE)

        completed = await hooks.fire(EventType.MEMBER_JOINED, "-1", "update", None)

        assert completed == 2
        assert local.seen == ["update"]
        assert shared.seen == ["update"]
        assert other.seen == []

    @pytest.mark.asyncio
    async def test_disabled_instances_are_skipped(self, hooks):
        instance = GreeterCommand().clone_for("-1")
        instance.enabled = False
        hooks.bind(instance, "-1")

        assert await hooks.fire(EventType.MEMBER_JOINED, "-1", "update", None) == 0

    @pytest.mark.asyncio
    async def test_failing_hook_does_not_block_others(self, hooks):
        greeter = GreeterCommand().clone_for("-1")
        hooks.bind(BrokenCommand().clone_for("-1"), "-1")
        hooks.bind(greeter, "-1")

        completed = await hooks.fire(EventType.MEMBER_JOINED, "-1", "update", None)

        assert completed == 1
        assert greeter.seen == ["update"]

    @pytest.mark.asyncio
    async def test_once_hook_unbound_after_first_delivery(self, hooks):
        instance = OnceCommand().clone_for("-1")
        hooks.bind(instance, "-1")

        await hooks.fire(EventType.MESSAGE, "-1", "update", None)
        await hooks.fire(EventType.MESSAGE, "-1", "update", None)

        assert instance.calls == 1

    def test_rebind_replaces_previous_instance(self, hooks):
        hooks.bind(GreeterCommand().clone_for("-1"), "-1")
        replacement = GreeterCommand().clone_for("-1")

        hooks.bind(replacement, "-1")

        assert [hook.instance for hook in hooks.hooks_for(EventType.MEMBER_JOINED, "-1")] == [replacement]

    def test_unbind(self, hooks):
        hooks.bind(GreeterCommand().clone_for("-1"), "-1")

        hooks.unbind("greeter", "-1")

        assert hooks.hooks_for(EventType.MEMBER_JOINED, "-1") == []
        assert hooks.jobs() == []


class TestHookTableCron:
    """Scheduling of cron hooks."""

    def test_schedule_one_job_per_scope(self, hooks):
        hooks.bind(GreeterCommand().clone_for("-1"), "-1")
        hooks.bind(GreeterCommand().clone_for("-2"), "-2")
        job_queue = make_job_queue()

        assert hooks.schedule(job_queue) == 2

        names = sorted(call.kwargs["name"] for call in job_queue.run_custom.call_args_list)
        assert names == ["greeter:tick:-1", "greeter:tick:-2"]
        assert "trigger" in job_queue.run_custom.call_args.kwargs["job_kwargs"]

    def test_schedule_replaces_existing_jobs(self, hooks):
        hooks.bind(GreeterCommand().clone_for("-1"), "-1")
        existing = MagicMock()
        job_queue = make_job_queue()
        job_queue.get_jobs_by_name.return_value = [existing]

        hooks.schedule(job_queue)

        existing.schedule_removal.assert_called_once()

    def test_bind_after_schedule_adds_job(self, hooks):
        job_queue = make_job_queue()
        hooks.schedule(job_queue)

        hooks.bind(GreeterCommand().clone_for("-3"), "-3")

        job_queue.run_custom.assert_called_once()
        assert job_queue.run_custom.call_args.kwargs["name"] == "greeter:tick:-3"

    def test_unbind_after_schedule_cancels_job(self, hooks):
        hooks.bind(GreeterCommand().clone_for("-3"), "-3")
        job_queue = make_job_queue()
        hooks.schedule(job_queue)
        scheduled = MagicMock()
        job_queue.get_jobs_by_name.return_value = [scheduled]

        hooks.unbind("greeter", "-3")

        job_queue.get_jobs_by_name.assert_called_with("greeter:tick:-3")
        scheduled.schedule_removal.assert_called_once()

    @pytest.mark.asyncio
    async def test_job_runs_bound_instance_when_enabled(self, hooks):
        instance = GreeterCommand().clone_for("-1")
        hooks.bind(instance, "-1")
        context = MagicMock()
        context.job.data = "greeter:tick:-1"

        await hooks._run_job(context)
        instance.enabled = False
        await hooks._run_job(context)

        assert instance.seen == ["tick"]
