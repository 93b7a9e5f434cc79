"""/alias module: per-chat keyword auto-replies."""

import logging
import re

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from ...bot.command import CustomizableCommand
from ...bot.decorators import log_execution, question_prompt
from ...bot.ui import send_view
from ...bot.utils import scope_of, user_id_of
from ...core.annotations import chain_event, command_action, command_setting
from ...models import EventType, PageConfig, PageItem, ViewItem

logger = logging.getLogger(__name__)

KEYWORD_LIMIT = 32
KEYWORD_PATTERN = re.compile(rf"^[\w-]{{1,{KEYWORD_LIMIT}}}$")


class AliasCommand(CustomizableCommand):
    name = "alias"
    pretty_name = "Alias"
    description = "Automatic replies to keywords in this chat."
    help = """
        Replies automatically when a message consists of a saved keyword.

        /alias add <keyword> <reply> saves a keyword
        /alias remove <keyword> deletes it
        /alias list shows all keywords
        /alias reset deletes every keyword after confirmation
    """
    cooldown = 3
    default_settings = {"aliases": {}}

    async def prepare_command_data(self, scope_id: str) -> None:
        await super().prepare_command_data(scope_id)
        self.settings.setdefault("aliases", {})

    @property
    def aliases_table(self) -> dict[str, str]:
        return self.settings.setdefault("aliases", {})

    @log_execution
    async def execute(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        args = list(context.args or [])
        action = args[0].lower() if args else ""

        if action == "add" and len(args) >= 3:
            await self.add(update, args[1], " ".join(args[2:]))
        elif action == "remove" and len(args) == 2:
            await self.remove(update, args[1])
        elif action == "list":
            await self.show_list(update)
        elif action == "reset":
            await self.reset(update, context)
        else:
            await message.reply_text(self.t("alias.usage", update))

    async def add(self, update: Update, keyword: str, reply: str) -> None:
        message = update.effective_message
        if not KEYWORD_PATTERN.match(keyword):
            await message.reply_text(self.t("alias.invalid_keyword", update, limit=KEYWORD_LIMIT))
            return

        keyword = keyword.lower()
        self.aliases_table[keyword] = reply
        await self.save_settings(aliases=self.aliases_table)
        logger.info(f"Alias {keyword} saved in {self.scope_id}")
        await message.reply_text(self.t("alias.added", update, keyword=keyword), parse_mode=ParseMode.HTML)

    async def remove(self, update: Update, keyword: str) -> None:
        message = update.effective_message
        keyword = keyword.lower()
        if self.aliases_table.pop(keyword, None) is None:
            await message.reply_text(self.t("alias.not_found", update, keyword=keyword), parse_mode=ParseMode.HTML)
            return

        await self.save_settings(aliases=self.aliases_table)
        await message.reply_text(self.t("alias.removed", update, keyword=keyword), parse_mode=ParseMode.HTML)

    async def show_list(self, update: Update) -> None:
        if not self.aliases_table:
            await update.effective_message.reply_text(self.t("alias.empty", update))
            return

        config = PageConfig(
            title=self.t("alias.list_title", update),
            items=[
                PageItem(name=keyword, pretty_name=keyword, description=reply)
                for keyword, reply in sorted(self.aliases_table.items())
            ],
        )
        view = self.paginator.render(scope_of(update), user_id_of(update), self.name, config)
        await send_view(update, view)

    @command_action("pageitem")
    async def show_alias(self, update: Update, context: ContextTypes.DEFAULT_TYPE, keyword: str = "") -> None:
        reply = self.aliases_table.get(keyword)
        if reply is None:
            return
        view = self.paginator.view(
            scope_of(update), user_id_of(update), self.name, keyword, ViewItem(title=keyword, description=reply)
        )
        await send_view(update, view)

    @question_prompt(title_key="alias.reset_title")
    async def reset(self, update: Update, context: ContextTypes.DEFAULT_TYPE, *args: str) -> None:
        self.aliases_table.clear()
        await self.save_settings(aliases={})
        logger.info(f"All aliases deleted in {self.scope_id}")
        await update.effective_message.reply_text(self.t("alias.reset_done", update))

    @command_setting("reset", display_name="Delete all aliases", view_in_ui=False)
    async def reset_setting(self, update: Update, context: ContextTypes.DEFAULT_TYPE, *args: str) -> None:
        await self.reset(update, context)

    @chain_event(EventType.MESSAGE)
    async def on_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        if message is None or not message.text:
            return

        reply = self.aliases_table.get(message.text.strip().lower())
        if reply is not None:
            await message.reply_text(reply)
