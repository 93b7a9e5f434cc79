"""Command base classes.

Every feature module subclasses ``BaseCommand`` (a command that is the same in
every chat) or ``CustomizableCommand`` (a command with per-chat settings and an
enable switch). The registry instantiates each class once and, for
customizable commands, clones that prototype into every known chat.
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from html import escape
from typing import TYPE_CHECKING, Any

from telegram import Update
from telegram.ext import ContextTypes

from ..core.annotations import SETTINGS, annotation_store, command_setting
from ..core.routing import build_routing_string
from ..models import GLOBAL_SCOPE, MenuOption, PageView, PublishedCommand, SettingMeta
from .messages import SETTING_NOT_SET, SETTING_OFF, SETTING_ON, t
from .ui import notify, send_view
from .utils import language_of, user_id_of

if TYPE_CHECKING:
    from ..core.paginator import Paginator
    from ..core.registry import CommandRegistry
    from ..core.response_registry import ResponseRegistry
    from ..services.store import EntityStore

logger = logging.getLogger(__name__)

SETTINGS_KIND = "command_settings"


@dataclass
class CommandServices:
    """Collaborators the registry hands to every command."""

    store: EntityStore | None = None
    paginator: Paginator | None = None
    responses: ResponseRegistry | None = None
    registry: CommandRegistry | None = None
    owner_id: int | None = None


def normalize_command_name(name: str) -> str:
    """Lower-case a display name and replace spaces with underscores."""
    return name.strip().replace(" ", "_").lower()


class BaseCommand(ABC):
    """A bot command.

    Subclasses describe themselves through class attributes and implement
    ``execute``. Decorated methods (``command_action``, ``command_setting``,
    ``chain_event``, ``cron``) are collected once, when the subclass is
    created.

    Attributes:
        name: Command name as typed after the slash; empty names are skipped.
        pretty_name: Display name used in menus.
        description: Short description published with the command list.
        help: Longer help text shown by /help.
        cooldown: Per-user cooldown in seconds, 0 disables it.
        aliases: Additional names resolving to this command.
        extra_commands: Additional published command names mapped to their
            descriptions.
        is_admin_command: Restricted to chat administrators.
        is_bot_owner_command: Restricted to the configured bot owner.
        enabled_by_default: Initial enabled state of new instances.
    """

    name: str = ""
    pretty_name: str = ""
    description: str = ""
    help: str = ""
    cooldown: int = 0
    aliases: frozenset[str] = frozenset()
    extra_commands: dict[str, str] = {}
    is_admin_command: bool = False
    is_bot_owner_command: bool = False
    is_customizable: bool = False
    enabled_by_default: bool = True

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        annotation_store.collect(cls)

    def __init__(self, services: CommandServices | None = None):
        self.services = services or CommandServices()
        self.scope_id = GLOBAL_SCOPE
        self.enabled = self.enabled_by_default
        if not self.pretty_name:
            self.pretty_name = self.name.replace("_", " ").title()

    @abstractmethod
    async def execute(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Run the command."""

    @property
    def store(self) -> EntityStore | None:
        return self.services.store

    @property
    def paginator(self) -> Paginator | None:
        return self.services.paginator

    @property
    def responses(self) -> ResponseRegistry | None:
        return self.services.responses

    @property
    def registry(self) -> CommandRegistry | None:
        return self.services.registry

    def clone_for(self, scope_id: str) -> BaseCommand:
        """Return a shallow copy bound to ``scope_id`` with fresh mutable state."""
        clone = copy.copy(self)
        clone.scope_id = scope_id
        clone.reset_scope_state()
        return clone

    def reset_scope_state(self) -> None:
        self.enabled = self.enabled_by_default

    def matches(self, requested: str) -> bool:
        """Whether ``requested`` names this command, its display name or an alias."""
        wanted = normalize_command_name(requested)
        if wanted == self.name:
            return True
        if wanted == normalize_command_name(self.pretty_name):
            return True
        return wanted in {normalize_command_name(alias) for alias in self.aliases}

    def descriptors(self) -> list[PublishedCommand]:
        """Command list entries contributed by this command."""
        entries = {self.name: self.description, **self.extra_commands}
        return [PublishedCommand(name=name, description=text) for name, text in entries.items()]

    def t(self, key: str, update: Update | None = None, **kwargs: Any) -> str:
        return t(key, language_of(update) if update is not None else None, **kwargs)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} scope={self.scope_id} enabled={self.enabled}>"


class CustomizableCommand(BaseCommand):
    """A command with per-chat settings.

    Each chat gets its own clone whose ``settings`` document is loaded from
    the entity store by ``prepare_command_data``. The built-in ``toggle``
    setting flips ``enabled``, persists it and republishes the chat's command
    list.
    """

    is_customizable = True
    enabled_by_default = False
    default_settings: dict[str, Any] = {}

    def __init__(self, services: CommandServices | None = None):
        super().__init__(services)
        self.settings: dict[str, Any] = {}

    def reset_scope_state(self) -> None:
        super().reset_scope_state()
        self.settings = {}

    @abstractmethod
    async def prepare_command_data(self, scope_id: str) -> None:
        """Hydrate per-chat state before the clone is exposed.

        Implementations usually start with ``await super().prepare_command_data(scope_id)``,
        which loads the settings document and the ``enabled`` flag.

        Raises:
            StoreError: If the settings cannot be loaded.
        """
        self.settings = await self.load_settings(scope_id)
        self.enabled = bool(self.settings.get("enabled", self.enabled_by_default))

    async def load_settings(self, scope_id: str) -> dict[str, Any]:
        """Load the chat's settings document, creating it with defaults if missing."""
        if self.store is None:
            return {"enabled": self.enabled_by_default, **copy.deepcopy(self.default_settings)}

        where = {"scope_id": scope_id, "command": self.name}
        document = await self.store.find_one(SETTINGS_KIND, where)
        if document is None:
            document = await self.store.save(
                SETTINGS_KIND,
                {**where, "enabled": self.enabled_by_default, **copy.deepcopy(self.default_settings)},
            )
            logger.debug(f"Created default settings for {self.name} in {scope_id}")
        return document

    async def save_settings(self, **changes: Any) -> dict[str, Any]:
        """Merge ``changes`` into the settings document and persist it."""
        self.settings.update(changes)
        self.settings.setdefault("scope_id", self.scope_id)
        self.settings.setdefault("command", self.name)
        if self.store is not None:
            self.settings = await self.store.save(SETTINGS_KIND, self.settings)
        return self.settings

    @command_setting(
        "toggle",
        display_name="Enabled",
        description="Enable or disable this module",
        database_key="enabled",
    )
    async def toggle(self, update: Update, context: ContextTypes.DEFAULT_TYPE, *args: str) -> None:
        self.enabled = not self.enabled
        await self.save_settings(enabled=self.enabled)
        logger.info(f"{self.name} {'enabled' if self.enabled else 'disabled'} in {self.scope_id}")

        if self.registry is not None:
            await self.registry.publish(context.bot, self.scope_id)

        await self.settings_ui(update, context)

    def format_setting_value(self, meta: SettingMeta, update: Update | None = None) -> str:
        if not meta.database_key:
            return ""

        value = self.settings.get(meta.database_key)
        if value is None:
            return f"{SETTING_NOT_SET} {self.t('settings.not_set', update)}"
        if isinstance(value, bool):
            if value:
                return f"{SETTING_ON} {self.t('settings.enabled', update)}"
            return f"{SETTING_OFF} {self.t('settings.disabled', update)}"
        return escape(str(value))

    def build_settings_view(self, update: Update | None = None) -> PageView:
        """Build the settings panel from the registered setting entries."""
        lines = []
        options = []
        for entry in annotation_store.entries(type(self), SETTINGS):
            meta: SettingMeta = entry.metadata
            if meta.view_in_ui:
                value = self.format_setting_value(meta, update)
                line = f"<b>{escape(meta.display_name)}</b>"
                lines.append(f"{line}: {value}" if value else line)
            options.append(
                MenuOption(
                    label=meta.display_name,
                    value=build_routing_string(SETTINGS, self.name, entry.action_name),
                    description=meta.description,
                )
            )

        options.append(
            MenuOption(label=self.t("settings.back_to_main_menu", update), value=SETTINGS)
        )
        return PageView(
            title=self.t("settings.command_title", update, command=self.pretty_name),
            body="\n".join(lines),
            options=options,
        )

    async def settings_ui(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await send_view(update, self.build_settings_view(update))

    async def require_owner(self, update: Update, meta: SettingMeta) -> bool:
        """Reject owner-only settings for everyone but the bot owner."""
        if not meta.is_bot_owner_only or user_id_of(update) == self.services.owner_id:
            return True
        await notify(update, self.t("settings.owner_only", update))
        return False
