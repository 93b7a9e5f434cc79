"""Interaction dispatcher.

Single entry point for slash commands, inline button callbacks and chat
events. Commands are resolved against the chat's visible commands and checked
against the cooldown tracker; callback data is parsed into a routing intent
and sent to the matching command method, paginator transition or settings
panel. Every handler runs isolated: a failure is logged and never affects
other interactions.
"""

import logging
import math
from collections.abc import Awaitable, Callable

from telegram import Update
from telegram.constants import ChatType
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from ..core.annotations import COMMAND, SETTINGS, AnnotationStore, annotation_store
from ..core.cooldown import CooldownTracker
from ..core.errors import RoutingError, StoreError
from ..core.hooks import HookTable
from ..core.paginator import Paginator
from ..core.registry import CHATS_KIND, CommandRegistry
from ..core.routing import Invoke, PageNav, SettingsNav, SubAction, parse_routing_string
from ..models import ChatRecord, EventType
from ..services.store import EntityStore
from .command import BaseCommand, CustomizableCommand
from .messages import t
from .ui import notify, send_view
from .utils import language_of, parse_command_text, scope_of, user_id_of

logger = logging.getLogger(__name__)

SETTINGS_COMMAND = "settings"
ADMIN_STATUSES = ("administrator", "creator")


class InteractionDispatcher:
    """Routes Telegram updates to commands.

    Args:
        registry: Command registry resolving names per scope.
        cooldowns: Per-user cooldown tracker.
        paginator: Pagination state machine used for page navigation.
        hooks: Hook table receiving chat events.
        store: Entity store where newly seen chats are recorded.
        annotations: Annotation store resolving sub-actions and settings.
        owner_id: Telegram user id of the bot owner.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        cooldowns: CooldownTracker,
        paginator: Paginator,
        hooks: HookTable,
        store: EntityStore,
        annotations: AnnotationStore | None = None,
        owner_id: int | None = None,
    ):
        self.registry = registry
        self.cooldowns = cooldowns
        self.paginator = paginator
        self.hooks = hooks
        self.store = store
        self.annotations = annotations or annotation_store
        self.owner_id = owner_id
        self._known_chats: set[int] = set()
        self._unanswered: set[str] = set()

    async def handle_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle a slash command message."""
        message = update.effective_message
        if message is None:
            return

        token, mention, args = parse_command_text(message.text)
        if not token:
            return

        bot_username = getattr(context.bot, "username", None)
        if mention and isinstance(bot_username, str) and mention.lower() != bot_username.lower():
            logger.debug(f"Command /{token} addressed to another bot ({mention})")
            return

        await self.register_fact(update, context)

        scope_id = scope_of(update)
        command = self.registry.find(scope_id, token)
        if command is None:
            logger.debug(f"Unknown command /{token} in {scope_id}")
            return
        if not command.enabled:
            logger.debug(f"Command {command.name} is disabled in {scope_id}")
            return
        if not await self._is_authorized(command, update, context):
            await notify(update, t("not_allowed", language_of(update)))
            return

        user_id = user_id_of(update)
        result = self.cooldowns.check(command.name, user_id, command.cooldown)
        if not result.allowed:
            seconds = math.ceil(result.remaining_ms / 1000)
            logger.info(f"User {user_id} on cooldown for {command.name} ({result.remaining_ms} ms left)")
            await message.reply_text(
                t("cooldown", language_of(update), seconds=seconds, command=command.name)
            )
            return

        context.args = args
        await self._run(update, f"{command.name}.execute", lambda: command.execute(update, context))

    async def handle_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle an inline button press.

        The query is answered right before its handler starts, so the client
        stops its loading indicator even while a slow handler runs. Dropped
        or rejected interactions are answered once dispatching is over.
        """
        query = update.callback_query
        if query is None:
            return

        self._unanswered.add(query.id)
        try:
            await self.register_fact(update, context)
            await self.dispatch(update, context, query.data)
        finally:
            await self._acknowledge(update)

    async def dispatch(self, update: Update, context: ContextTypes.DEFAULT_TYPE, routing: str | None) -> bool:
        """Route callback data to its target.

        Returns:
            True if a handler was invoked and completed, False if the
            interaction was dropped or the handler failed.
        """
        try:
            intent = parse_routing_string(routing)
        except RoutingError as e:
            logger.debug(f"Dropping interaction: {e}")
            return False

        scope_id = scope_of(update)

        main_menu = isinstance(intent, SettingsNav) and intent.command is None
        target = SETTINGS_COMMAND if main_menu else intent.command

        command = self.registry.visible(scope_id).get(target)
        if command is None:
            logger.debug(f"Command {target} not visible in {scope_id}")
            return False
        if not await self._is_authorized(command, update, context):
            await notify(update, t("not_allowed", language_of(update)))
            return False

        if main_menu:
            return await self._invoke_execute(command, update, context)

        if isinstance(intent, SettingsNav):
            # Changing a module's settings is an admin action whatever the module
            if not await self._is_admin(update, context):
                await notify(update, t("not_allowed", language_of(update)))
                return False
            return await self._dispatch_settings(command, intent, update, context)

        if not command.enabled:
            logger.debug(f"Command {command.name} is disabled in {scope_id}")
            return False

        if isinstance(intent, Invoke):
            return await self._invoke_execute(command, update, context)

        if isinstance(intent, SubAction):
            entry = self.annotations.resolve(type(command), COMMAND, intent.name)
            if entry is None:
                logger.debug(f"Unknown sub-action {intent.name} of {command.name}")
                return False
            handler = entry.bind(command)
            return await self._run(
                update, f"{command.name}.{entry.action_name}", lambda: handler(update, context, *intent.args)
            )

        if isinstance(intent, PageNav):
            view = self.paginator.navigate(scope_id, user_id_of(update), command.name, intent.direction)
            if view is None:
                logger.debug(f"No pagination state for {command.name} in {scope_id}")
                return False
            return await self._run(update, f"{command.name}.page.{intent.direction}", lambda: send_view(update, view))

        return False

    async def _dispatch_settings(
        self,
        command: BaseCommand,
        intent: SettingsNav,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
    ) -> bool:
        if not isinstance(command, CustomizableCommand):
            logger.debug(f"Command {command.name} has no settings")
            return False

        if intent.name is None:
            return await self._run(update, f"{command.name}.settings_ui", lambda: command.settings_ui(update, context))

        entry = self.annotations.resolve(type(command), SETTINGS, intent.name)
        if entry is None:
            logger.debug(f"Unknown setting {intent.name} of {command.name}")
            return False
        if not await command.require_owner(update, entry.metadata):
            return False

        handler = entry.bind(command)
        return await self._run(
            update, f"{command.name}.settings.{entry.action_name}", lambda: handler(update, context, *intent.args)
        )

    async def _invoke_execute(self, command: BaseCommand, update: Update, context: ContextTypes.DEFAULT_TYPE) -> bool:
        return await self._run(update, f"{command.name}.execute", lambda: command.execute(update, context))

    async def _run(self, update: Update, label: str, call: Callable[[], Awaitable[object]]) -> bool:
        await self._acknowledge(update)
        try:
            await call()
        except Exception:
            logger.exception(f"Handler {label} failed")
            return False
        return True

    async def _acknowledge(self, update: Update) -> None:
        """Answer a pending callback query, at most once."""
        query = update.callback_query
        if query is None or query.id not in self._unanswered:
            return

        self._unanswered.discard(query.id)
        try:
            await query.answer()
        except TelegramError as e:
            logger.debug(f"Callback query already answered: {e}")

    async def _is_authorized(
        self, command: BaseCommand, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> bool:
        if command.is_bot_owner_command and user_id_of(update) != self.owner_id:
            return False
        if not command.is_admin_command:
            return True
        return await self._is_admin(update, context)

    async def _is_admin(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> bool:
        user_id = user_id_of(update)
        chat = update.effective_chat
        if chat is None or chat.type == ChatType.PRIVATE or user_id == self.owner_id:
            return True

        try:
            member = await context.bot.get_chat_member(chat.id, user_id)
        except TelegramError as e:
            logger.warning(f"Cannot check admin status of {user_id} in {chat.id}: {e}")
            return False
        return member.status in ADMIN_STATUSES

    def event_handler(self, event_type: EventType) -> Callable[[Update, ContextTypes.DEFAULT_TYPE], Awaitable[None]]:
        """Build a handler callback delivering updates as ``event_type``."""

        async def handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
            await self.handle_event(event_type, update, context)

        return handler

    async def handle_event(self, event_type: EventType, update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
        await self.register_fact(update, context)
        return await self.hooks.fire(event_type, scope_of(update), update, context)

    async def handle_chat_member(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Register chats the bot was added to."""
        await self.register_fact(update, context)

    async def register_fact(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Record the update's chat; a new chat becomes a scope and gets its command list."""
        chat = update.effective_chat
        if chat is None or chat.id in self._known_chats:
            return

        # Claimed before awaiting so concurrent updates of the chat register it once
        self._known_chats.add(chat.id)
        try:
            existing = await self.store.find_one(CHATS_KIND, {"chat_id": chat.id})
            if existing is None:
                record = ChatRecord(chat_id=chat.id, title=chat.title, type=str(chat.type))
                await self.store.save(CHATS_KIND, record.model_dump(mode="json"))
                logger.info(f"Registered new chat {chat.id}")
        except StoreError as e:
            logger.warning(f"Failed to register chat {chat.id}: {e}")
            self._known_chats.discard(chat.id)
            return

        if await self.registry.add_scope(str(chat.id)):
            await self.registry.publish(context.bot, str(chat.id))
