"""Per-scope command registry.

Holds the loaded command instances per scope: process-wide commands live in
the "global" scope, customizable commands get one clone per known chat.
Also builds the command list payload of each scope and publishes it to
Telegram.
"""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
import re
from typing import Any

from telegram import BotCommand, BotCommandScopeChat, BotCommandScopeDefault

from ..bot.command import BaseCommand, CommandServices
from ..models import GLOBAL_SCOPE, PublishedCommand
from ..services.store import EntityStore
from .errors import PublishError, ScopeLoadError, StoreError
from .hooks import HookTable

CHATS_KIND = "chats"
COMMANDS_PACKAGE = "modbot.commands"

# Telegram command list constraints
COMMAND_NAME_PATTERN = re.compile(r"^[a-z0-9_]{1,32}$")
MAX_DESCRIPTION_LENGTH = 256
DEFAULT_DESCRIPTION = "No description provided."


class CommandRegistry:
    """Registry of command instances per scope.

    Args:
        store: Entity store holding known chats and module settings.
        hooks: Hook table receiving each exposed instance's bindings.
        paginator: Paginator handed to commands.
        responses: Response registry handed to commands.
        package: Package scanned for command modules.
        clear_old_commands: Submit an empty command list before the first
            publish of each scope.
        owner_id: Telegram user id of the bot owner.
    """

    def __init__(
        self,
        store: EntityStore,
        hooks: HookTable | None = None,
        paginator: Any = None,
        responses: Any = None,
        package: str = COMMANDS_PACKAGE,
        clear_old_commands: bool = False,
        owner_id: int | None = None,
    ):
        self.store = store
        self.hooks = hooks or HookTable()
        self.package = package
        self.clear_old_commands = clear_old_commands
        self.services = CommandServices(
            store=store,
            paginator=paginator,
            responses=responses,
            registry=self,
            owner_id=owner_id,
        )
        self.logger = logging.getLogger(f"{__name__}.registry")

        self._commands: dict[str, dict[str, BaseCommand]] = {}
        self._prototypes: dict[str, BaseCommand] = {}
        self._published: dict[str, list[tuple[str, str]]] = {}
        self._cleared: set[str] = set()

    def discover(self) -> list[type[BaseCommand]]:
        """Import every module of the commands package and collect command classes.

        Returns:
            Concrete ``BaseCommand`` subclasses defined in those modules,
            in module order.
        """
        package = importlib.import_module(self.package)
        classes: list[type[BaseCommand]] = []

        for module_info in pkgutil.walk_packages(package.__path__, prefix=f"{package.__name__}."):
            try:
                module = importlib.import_module(module_info.name)
            except Exception as e:
                self.logger.error(f"Failed to import command module {module_info.name}: {e}")
                continue

            for _, obj in inspect.getmembers(module, inspect.isclass):
                if (
                    issubclass(obj, BaseCommand)
                    and obj.__module__ == module.__name__
                    and not inspect.isabstract(obj)
                ):
                    classes.append(obj)

        return classes

    async def known_scopes(self) -> list[str]:
        """Chat scopes recorded in the entity store."""
        try:
            chats = await self.store.find(CHATS_KIND)
        except StoreError as e:
            self.logger.error(f"Failed to read known chats: {e}")
            return []
        return [str(chat["chat_id"]) for chat in chats if chat.get("chat_id") is not None]

    async def load(self, custom_command: BaseCommand | None = None) -> None:
        """Load commands into their scopes.

        Without arguments every command class under the commands package is
        instantiated once; with ``custom_command`` only that instance is
        (re)processed and its previous registrations are replaced.
        """
        scopes = await self.known_scopes()

        if custom_command is not None:
            prototypes = [custom_command]
            self._forget(custom_command.name)
        else:
            self._reset()
            prototypes = [cls(self.services) for cls in self.discover()]

        for prototype in prototypes:
            if not prototype.name:
                self.logger.info(f"Skipping command without a name: {type(prototype).__name__}")
                continue
            if custom_command is None and not prototype.is_customizable and not prototype.enabled:
                self.logger.info(f"Skipping disabled command: {prototype.name}")
                continue

            prototype.services = self.services
            self._prototypes[prototype.name] = prototype

            targets = scopes if prototype.is_customizable and scopes else [GLOBAL_SCOPE]
            for scope_id in targets:
                await self._expose(prototype, scope_id)

        self.logger.info(
            f"Loaded {len(self._prototypes)} commands into {len(self._commands)} scopes"
        )

    async def add_scope(self, scope_id: str) -> bool:
        """Register a newly seen chat and clone every customizable command into it.

        Returns:
            True if the scope was new.
        """
        scope_id = str(scope_id)
        if scope_id == GLOBAL_SCOPE or scope_id in self._commands:
            return False

        self._commands[scope_id] = {}
        for prototype in self._prototypes.values():
            if not prototype.is_customizable:
                continue

            # Until the first chat is known customizable commands live globally
            if self._commands.get(GLOBAL_SCOPE, {}).get(prototype.name) is prototype:
                del self._commands[GLOBAL_SCOPE][prototype.name]
                self.hooks.unbind(prototype.name, GLOBAL_SCOPE)

            await self._expose(prototype, scope_id)

        self.logger.info(f"Registered scope {scope_id}")
        return True

    async def _expose(self, prototype: BaseCommand, scope_id: str) -> BaseCommand | None:
        scope = self._commands.setdefault(scope_id, {})

        if scope_id == GLOBAL_SCOPE:
            instance = prototype
        else:
            instance = prototype.clone_for(scope_id)
            try:
                await self._prepare(instance, scope_id)
            except ScopeLoadError as e:
                self.logger.warning(str(e))
                scope.pop(prototype.name, None)
                self.hooks.unbind(prototype.name, scope_id)
                return None

        scope[instance.name] = instance
        self.hooks.bind(instance, scope_id)
        return instance

    async def _prepare(self, instance: BaseCommand, scope_id: str) -> None:
        try:
            await instance.prepare_command_data(scope_id)
        except Exception as e:
            raise ScopeLoadError(instance.name, scope_id, str(e)) from e

    def _reset(self) -> None:
        """Drop every registration before a full reload."""
        for scope_id, commands in self._commands.items():
            for name in commands:
                self.hooks.unbind(name, scope_id)
        self._commands.clear()
        self._prototypes.clear()

    def _forget(self, name: str) -> None:
        for scope_id, commands in self._commands.items():
            if commands.pop(name, None) is not None:
                self.hooks.unbind(name, scope_id)
        self._prototypes.pop(name, None)

    def get(self, scope_id: str, name: str) -> BaseCommand | None:
        return self._commands.get(str(scope_id), {}).get(name)

    def visible(self, scope_id: str) -> dict[str, BaseCommand]:
        """Commands visible in a scope: global ones overlaid with the scope's own."""
        commands = dict(self._commands.get(GLOBAL_SCOPE, {}))
        if scope_id != GLOBAL_SCOPE:
            commands.update(self._commands.get(str(scope_id), {}))
        return commands

    def find(self, scope_id: str, requested: str) -> BaseCommand | None:
        """Resolve a typed command name by exact name, display name, then alias."""
        commands = self.visible(scope_id)
        name = requested.lower()
        if name in commands:
            return commands[name]

        for command in commands.values():
            if command.matches(requested):
                return command
        return None

    def scopes(self) -> list[str]:
        return list(self._commands.keys())

    def prototypes(self) -> list[BaseCommand]:
        return list(self._prototypes.values())

    def build_payload(self, scope_id: str) -> list[PublishedCommand]:
        """Build the command list of a scope.

        A chat-scoped list replaces the default one in that chat, so chat
        payloads include the global commands as well.
        """
        commands = (
            self._commands.get(GLOBAL_SCOPE, {})
            if scope_id == GLOBAL_SCOPE
            else self.visible(scope_id)
        )

        payload: dict[str, PublishedCommand] = {}
        for command in commands.values():
            if not command.enabled:
                continue
            for entry in command.descriptors():
                if not COMMAND_NAME_PATTERN.match(entry.name):
                    self.logger.warning(f"Skipping invalid command name: {entry.name}")
                    continue
                description = (entry.description or DEFAULT_DESCRIPTION)[:MAX_DESCRIPTION_LENGTH]
                payload[entry.name] = PublishedCommand(name=entry.name, description=description)

        return [payload[name] for name in sorted(payload)]

    async def publish(self, bot: Any, scope_id: str | None = None, force: bool = False) -> dict[str, bool]:
        """Publish command lists to Telegram.

        Args:
            bot: Telegram bot used for the API calls.
            scope_id: Single scope to publish; every scope when None.
            force: Submit even if the payload did not change.

        Returns:
            Mapping of scope id to whether a list was submitted.
        """
        targets = [str(scope_id)] if scope_id is not None else self.scopes()
        results: dict[str, bool] = {}

        for target in targets:
            try:
                results[target] = await self._publish_scope(bot, target, force)
            except PublishError as e:
                self.logger.error(str(e))
                results[target] = False

        return results

    async def _publish_scope(self, bot: Any, scope_id: str, force: bool) -> bool:
        payload = self.build_payload(scope_id)
        wire = [(entry.name, entry.description) for entry in payload]

        if not force and self._published.get(scope_id) == wire:
            self.logger.debug(f"Command list of {scope_id} unchanged, not publishing")
            return False

        try:
            scope = (
                BotCommandScopeDefault()
                if scope_id == GLOBAL_SCOPE
                else BotCommandScopeChat(chat_id=int(scope_id))
            )

            if self.clear_old_commands and scope_id not in self._cleared:
                await bot.delete_my_commands(scope=scope)
                self._cleared.add(scope_id)

            await bot.set_my_commands([BotCommand(name, text) for name, text in wire], scope=scope)
        except Exception as e:
            raise PublishError(scope_id, str(e)) from e

        self._published[scope_id] = wire
        self.logger.info(f"Published {len(wire)} commands to {scope_id}")
        return True
