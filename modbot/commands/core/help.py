"""/help command: paginated catalog of the chat's commands."""

import logging
import textwrap

from telegram import Update
from telegram.ext import ContextTypes

from ...bot.command import BaseCommand
from ...bot.ui import send_view
from ...bot.utils import scope_of, user_id_of
from ...core.annotations import command_action
from ...models import PageConfig, PageItem, ViewItem

logger = logging.getLogger(__name__)


class HelpCommand(BaseCommand):
    name = "help"
    pretty_name = "Help"
    description = "Provides information about available commands and how to use them."
    help = """
        Lists every command available in this chat.

        Use the arrows to switch pages and pick a command to read its
        detailed help.
    """
    cooldown = 5
    aliases = frozenset({"commands"})

    async def execute(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        scope_id = scope_of(update)
        commands = sorted(
            (command for command in self.registry.visible(scope_id).values() if command.enabled),
            key=lambda command: command.name,
        )

        config = PageConfig(
            title=self.t("help.title", update),
            items=[
                PageItem(name=command.name, pretty_name=command.pretty_name, description=command.description)
                for command in commands
            ],
        )
        view = self.paginator.render(scope_id, user_id_of(update), self.name, config)
        await send_view(update, view)

    @command_action("pageitem")
    async def show_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE, command_name: str = "") -> None:
        scope_id = scope_of(update)
        command = self.registry.visible(scope_id).get(command_name)
        if command is None:
            logger.debug(f"Help requested for unknown command {command_name}")
            return

        lines = [textwrap.dedent(command.help).strip() or command.description or self.t("help.no_help", update)]
        if command.aliases:
            lines.append(self.t("help.aliases", update, aliases=", ".join(sorted(command.aliases))))
        if command.cooldown:
            lines.append(self.t("help.cooldown", update, seconds=command.cooldown))

        detail = ViewItem(title=f"/{command.name} - {command.pretty_name}", description="\n\n".join(lines))
        view = self.paginator.view(scope_id, user_id_of(update), self.name, command_name, detail)
        await send_view(update, view)
