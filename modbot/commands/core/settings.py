"""/settings command: entry point of the per-chat module configuration."""

from telegram import Update
from telegram.ext import ContextTypes

from ...bot.command import BaseCommand
from ...bot.ui import respond, send_view
from ...bot.utils import scope_of, user_id_of
from ...models import PageConfig, PageItem


class SettingsCommand(BaseCommand):
    name = "settings"
    pretty_name = "Settings"
    description = "Configure the modules of this chat."
    help = """
        Opens the settings menu of this chat.

        Pick a module to see its current configuration, switch it on or off
        and change its options. Only chat administrators can use it.
    """
    is_admin_command = True

    async def execute(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        scope_id = scope_of(update)
        commands = sorted(
            (command for command in self.registry.visible(scope_id).values() if command.is_customizable),
            key=lambda command: command.name,
        )
        if not commands:
            await respond(update, self.t("settings.empty", update))
            return

        config = PageConfig(
            title=self.t("settings.title", update),
            items=[
                PageItem(
                    name=command.name,
                    pretty_name=command.pretty_name,
                    description=command.description,
                    namespace="settings",
                )
                for command in commands
            ],
        )
        view = self.paginator.render(scope_id, user_id_of(update), self.name, config)
        await send_view(update, view)
