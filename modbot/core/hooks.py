"""Event and scheduled-job bindings of command instances.

Each exposed command instance binds its ``chain_event`` and ``cron`` handlers
here under the scope it serves, so an incoming event is delivered to exactly
the instances of that chat (plus global ones), and every enabled chat gets
its own scheduled job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from apscheduler.triggers.cron import CronTrigger

from ..models import GLOBAL_SCOPE, EventType
from .annotations import CRON, EVENT, AnnotationEntry, AnnotationStore, annotation_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoundHook:
    """A handler bound to one command instance in one scope."""

    command_name: str
    scope_id: str
    instance: Any
    entry: AnnotationEntry

    @property
    def key(self) -> str:
        return f"{self.command_name}:{self.entry.action_name}:{self.scope_id}"

    async def __call__(self, *args: Any) -> Any:
        return await self.entry.bind(self.instance)(*args)


class HookTable:
    """Explicit (event type, scope) -> hooks table plus the cron job list."""

    def __init__(self, store: AnnotationStore | None = None):
        self._annotations = store or annotation_store
        self._events: dict[tuple[EventType, str], dict[str, BoundHook]] = {}
        self._jobs: dict[str, BoundHook] = {}
        self._job_queue: Any = None

    def bind(self, instance: Any, scope_id: str) -> None:
        """Bind the instance's hooks, replacing earlier ones of the same command and scope."""
        self.unbind(instance.name, scope_id)
        cls = type(instance)

        for entry in self._annotations.entries(cls, EVENT):
            hook = BoundHook(instance.name, scope_id, instance, entry)
            self._events.setdefault((entry.metadata.event_type, scope_id), {})[hook.key] = hook

        for entry in self._annotations.entries(cls, CRON):
            hook = BoundHook(instance.name, scope_id, instance, entry)
            self._jobs[hook.key] = hook
            if self._job_queue is not None:
                self._schedule_job(hook.key, hook)

    def unbind(self, command_name: str, scope_id: str) -> None:
        """Drop the command's hooks in a scope and cancel its scheduled jobs."""
        for (_, scope), hooks in self._events.items():
            if scope != scope_id:
                continue
            for key in [key for key, hook in hooks.items() if hook.command_name == command_name]:
                del hooks[key]

        for key in [
            key for key, hook in self._jobs.items()
            if hook.command_name == command_name and hook.scope_id == scope_id
        ]:
            del self._jobs[key]
            if self._job_queue is not None:
                self._remove_job(key)

    def hooks_for(self, event_type: EventType, scope_id: str) -> list[BoundHook]:
        hooks = list(self._events.get((event_type, scope_id), {}).values())
        if scope_id != GLOBAL_SCOPE:
            hooks.extend(self._events.get((event_type, GLOBAL_SCOPE), {}).values())
        return hooks

    def jobs(self) -> list[BoundHook]:
        return list(self._jobs.values())

    async def fire(self, event_type: EventType, scope_id: str, update: Any, context: Any) -> int:
        """Deliver an event to the enabled hooks of a scope.

        Each hook runs in isolation; a failing hook is logged and the others
        still run.

        Returns:
            Number of hooks that completed without raising.
        """
        completed = 0
        for hook in self.hooks_for(event_type, scope_id):
            if not hook.instance.enabled:
                continue
            try:
                await hook(update, context)
                completed += 1
            except Exception:
                logger.exception(f"Event hook {hook.key} failed for {event_type.value}")
                continue

            if hook.entry.metadata.once:
                self._events.get((event_type, hook.scope_id), {}).pop(hook.key, None)
        return completed

    def schedule(self, job_queue: Any) -> int:
        """Schedule every bound cron hook on the application's job queue.

        Jobs already scheduled under the same name are removed first, so
        calling this again after a reload does not duplicate jobs. The job
        queue is kept afterwards: hooks bound or unbound later, e.g. for a
        chat seen after startup, are scheduled or cancelled right away.

        Returns:
            Number of scheduled jobs.
        """
        self._job_queue = job_queue
        scheduled = sum(1 for name, hook in list(self._jobs.items()) if self._schedule_job(name, hook))
        logger.info(f"Scheduled {scheduled} cron jobs")
        return scheduled

    def _schedule_job(self, name: str, hook: BoundHook) -> bool:
        self._remove_job(name)
        try:
            trigger = CronTrigger.from_crontab(hook.entry.metadata.schedule)
        except ValueError as e:
            logger.error(f"Invalid cron schedule for {name}: {e}")
            return False

        self._job_queue.run_custom(self._run_job, job_kwargs={"trigger": trigger}, name=name, data=name)
        logger.debug(f"Scheduled cron job {name}")
        return True

    def _remove_job(self, name: str) -> None:
        for job in self._job_queue.get_jobs_by_name(name):
            job.schedule_removal()

    async def _run_job(self, context: Any) -> None:
        hook = self._jobs.get(context.job.data)
        if hook is None or not hook.instance.enabled:
            return
        try:
            await hook(context)
        except Exception:
            logger.exception(f"Cron job {hook.key} failed")
