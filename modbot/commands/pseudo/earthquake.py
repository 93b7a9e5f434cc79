"""/earthquake module: scheduled earthquake notifications per chat."""

import logging
from datetime import datetime, timezone

from telegram import Update
from telegram.ext import ContextTypes

from ...bot.command import CustomizableCommand
from ...bot.decorators import choice_setting
from ...core.annotations import cron

logger = logging.getLogger(__name__)

MAGNITUDE_CHOICES = ("2.0", "3.0", "4.0", "5.0", "6.0")
DEFAULT_MAGNITUDE = 3.0


class EarthquakeCommand(CustomizableCommand):
    name = "earthquake"
    pretty_name = "Earthquake"
    description = "Earthquake notifications for this chat."
    help = """
        Posts a notification when an earthquake at or above the configured
        magnitude is reported. Configure it with /settings.
    """
    default_settings = {"magnitude": DEFAULT_MAGNITUDE, "last_checked": None}

    async def prepare_command_data(self, scope_id: str) -> None:
        await super().prepare_command_data(scope_id)
        self.settings.setdefault("magnitude", DEFAULT_MAGNITUDE)

    async def execute(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        state = self.t("settings.enabled" if self.enabled else "settings.disabled", update).lower()
        await update.effective_message.reply_text(
            self.t("earthquake.status", update, state=state, magnitude=self.settings.get("magnitude"))
        )

    @choice_setting(
        "magnitude",
        display_name="Minimum magnitude",
        description="Only report earthquakes at or above this magnitude",
        choices=MAGNITUDE_CHOICES,
        convert=float,
    )
    async def magnitude(self, update: Update, context: ContextTypes.DEFAULT_TYPE, value: float) -> None:
        logger.info(f"Earthquake notifications in {self.scope_id} now start at magnitude {value}")

    @cron("*/5 * * * *")
    async def poll(self, context: ContextTypes.DEFAULT_TYPE) -> None:
        logger.info(
            f"Polling earthquakes for {self.scope_id} (magnitude >= {self.settings.get('magnitude')})"
        )
        await self.save_settings(last_checked=datetime.now(timezone.utc).isoformat())
