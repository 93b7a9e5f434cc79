"""Annotation metadata for command classes.

Command classes declare their sub-actions, settings entries, event hooks and
scheduled jobs by decorating methods. The decorators only attach marks to the
functions; the marks are collected into the process-wide ``annotation_store``
once per class, when ``BaseCommand.__init_subclass__`` runs, so cloning or
re-instantiating a command never registers anything twice.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..models import CronHook, EventHook, EventType, SettingMeta

logger = logging.getLogger(__name__)

COMMAND = "command"
SETTINGS = "settings"
EVENT = "event"
CRON = "cron"
NAMESPACES = (COMMAND, SETTINGS, EVENT, CRON)

_MARKS_ATTR = "__modbot_marks__"
_SEPARATORS = re.compile(r"[\s_\-.]+")


def normalize_action(name: str) -> str:
    """Normalize an action name for lenient lookups.

    Args:
        name: Raw action name, e.g. ``"message_id"`` or ``"Message-ID"``.

    Returns:
        Lower-cased name with separator characters removed.
    """
    return _SEPARATORS.sub("", name).lower()


@dataclass(frozen=True)
class AnnotationEntry:
    """A registered handler.

    Attributes:
        action_name: Lower-cased name the entry is registered under.
        handler: The decorated function.
        metadata: Namespace specific metadata (``SettingMeta``, ``EventHook``,
            ``CronHook`` or None for plain sub-actions).
        attr_name: Attribute name of the handler on its class.
    """

    action_name: str
    handler: Callable[..., Any]
    metadata: Any = None
    attr_name: str | None = None

    def bind(self, instance: Any) -> Callable[..., Any]:
        """Return the handler bound to ``instance``, honouring overrides."""
        if self.attr_name:
            bound = getattr(instance, self.attr_name, None)
            if bound is not None:
                return bound
        return self.handler.__get__(instance, type(instance))


class AnnotationStore:
    """Per-class, per-namespace registry of decorated handlers."""

    def __init__(self) -> None:
        self._entries: dict[type, dict[str, dict[str, AnnotationEntry]]] = {}
        self._collected: set[type] = set()

    def register(
        self,
        cls: type,
        namespace: str,
        action_name: str,
        handler: Callable[..., Any],
        metadata: Any = None,
        attr_name: str | None = None,
    ) -> AnnotationEntry:
        """Register a handler; a later registration under the same name wins.

        Raises:
            ValueError: If the namespace is unknown or the name is empty.
        """
        if namespace not in NAMESPACES:
            raise ValueError(f"Unknown annotation namespace: {namespace}")
        if not action_name:
            raise ValueError("Action name must not be empty")

        key = action_name.lower()
        entry = AnnotationEntry(key, handler, metadata, attr_name)
        table = self._entries.setdefault(cls, {}).setdefault(namespace, {})
        table.pop(key, None)
        table[key] = entry
        return entry

    def resolve(self, cls: type, namespace: str, action_name: str) -> AnnotationEntry | None:
        """Find the handler registered for ``action_name`` on exactly ``cls``.

        Tries an exact (case-insensitive) match first, then a match with
        separator characters stripped from both sides.
        """
        table = self._entries.get(cls, {}).get(namespace)
        if not table or not action_name:
            return None

        entry = table.get(action_name.lower())
        if entry is not None:
            return entry

        wanted = normalize_action(action_name)
        for name, candidate in table.items():
            if normalize_action(name) == wanted:
                return candidate
        return None

    def entries(self, cls: type, namespace: str) -> list[AnnotationEntry]:
        return list(self._entries.get(cls, {}).get(namespace, {}).values())

    def collect(self, cls: type) -> None:
        """Collect decorator marks of ``cls`` and its bases.

        Bases are visited first so that entries redefined by a subclass
        replace the inherited ones.
        """
        if cls in self._collected:
            return
        self._collected.add(cls)

        for klass in reversed(cls.__mro__):
            for attr_name, value in vars(klass).items():
                marks = getattr(value, _MARKS_ATTR, None)
                if not marks:
                    continue
                for namespace, action_name, metadata in marks:
                    self.register(cls, namespace, action_name, value, metadata, attr_name)

        logger.debug(
            "Collected annotations for %s: %s",
            cls.__name__,
            {ns: len(self.entries(cls, ns)) for ns in NAMESPACES},
        )

    def clear(self) -> None:
        self._entries.clear()
        self._collected.clear()


def _mark(func: Callable[..., Any], namespace: str, action_name: str, metadata: Any = None):
    marks = func.__dict__.setdefault(_MARKS_ATTR, [])
    marks.append((namespace, action_name.lower(), metadata))
    return func


def command_action(*names: str):
    """Register the decorated method as a sub-action.

    The method is reachable through ``command:<command>:<name>[:args]``
    callbacks and receives the trailing args positionally.

    Args:
        names: Action names; defaults to the method name.
    """

    def decorator(func):
        for name in names or (func.__name__,):
            _mark(func, COMMAND, name)
        return func

    return decorator


def command_setting(
    name: str | None = None,
    *,
    display_name: str | None = None,
    description: str = "",
    database_key: str | None = None,
    view_in_ui: bool = True,
    is_bot_owner_only: bool = False,
):
    """Register the decorated method as a settings entry.

    The method is reachable through ``settings:<command>:<name>[:args]``
    callbacks and is listed in the command's generated settings panel.
    """

    def decorator(func):
        action = name or func.__name__
        meta = SettingMeta(
            display_name=display_name or action.replace("_", " ").title(),
            description=description,
            database_key=database_key,
            view_in_ui=view_in_ui,
            is_bot_owner_only=is_bot_owner_only,
        )
        return _mark(func, SETTINGS, action, meta)

    return decorator


def chain_event(event_type: EventType | str, *, once: bool = False):
    """Subscribe the decorated method to a chat event.

    The method is called as ``handler(update, context)`` for every matching
    update in a scope where the command is enabled.
    """

    def decorator(func):
        hook = EventHook(event_type=EventType(event_type), once=once)
        return _mark(func, EVENT, f"{hook.event_type.value}_{func.__name__}", hook)

    return decorator


def cron(schedule: str):
    """Run the decorated method on a crontab schedule, once per enabled scope.

    Args:
        schedule: Five-field crontab expression, e.g. ``"*/5 * * * *"``.
    """

    def decorator(func):
        return _mark(func, CRON, func.__name__, CronHook(schedule=schedule))

    return decorator


annotation_store = AnnotationStore()
