"""/ping command."""

from datetime import datetime, timezone

from telegram import Update
from telegram.ext import ContextTypes

from ...bot.command import BaseCommand


class PingCommand(BaseCommand):
    name = "ping"
    pretty_name = "Ping"
    description = "Check that the bot is alive."
    help = "Replies with the delay between your message and the bot's answer."
    cooldown = 10

    async def execute(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        if message is None:
            return

        latency = 0
        if isinstance(message.date, datetime):
            delta = datetime.now(timezone.utc) - message.date
            latency = max(0, int(delta.total_seconds() * 1000))

        await message.reply_text(self.t("ping.pong", update, latency=latency))
