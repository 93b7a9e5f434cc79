"""Method decorators for command classes.

``question_prompt`` and ``choice_setting`` turn a method into an interactive flow
(a confirmation prompt, a pick-one settings menu) while ``log_execution``
wraps a method with start/success/failure logging.
"""

import functools
import logging

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from ..core.annotations import command_action, command_setting
from ..core.response_registry import ResponseRegistry
from ..core.routing import COMMAND, SETTINGS, build_routing_string
from ..models import MenuOption
from .ui import respond, send_view
from .utils import chat_id_of, user_id_of

logger = logging.getLogger(__name__)

CONFIRM = "ok"
CANCEL = "cancel"


async def _edit_prompt(stored, update: Update, text: str) -> None:
    """Replace the prompt's text and drop its buttons."""
    try:
        await stored.edit_text(text, parse_mode=ParseMode.HTML, reply_markup=None)
    except (TelegramError, AttributeError) as e:
        logger.debug(f"Cannot edit stored prompt, editing callback message: {e}")
        await respond(update, text)


def question_prompt(
    title_key: str = "question.title",
    message_key: str = "question.message",
    buttons: list[tuple[str, str]] | None = None,
    ttl_ms: float | None = None,
):
    """Ask for confirmation before running the decorated method.

    The first call sends a prompt with OK and Cancel buttons routed to
    ``command:<command>:<method>:<args...>:ok|cancel`` and stores the sent
    message in the response registry. OK edits the prompt to "processing"
    and runs the method with the original args; Cancel edits it to
    "cancelled". A click without a stored prompt (repeated or expired) is
    ignored.

    Args:
        title_key: Message key of the prompt heading.
        message_key: Message key of the prompt body.
        buttons: Extra (label, routing string) buttons shown under OK/Cancel.
        ttl_ms: Prompt lifetime; the registry default when None.
    """

    def decorator(func):
        action = func.__name__.lower()

        @functools.wraps(func)
        async def wrapper(self, update: Update, context: ContextTypes.DEFAULT_TYPE, *args: str):
            key = ResponseRegistry.generate_key(
                self.name, action, user_id_of(update), chat_id_of(update)
            )
            decision = args[-1] if args else None

            if decision in (CONFIRM, CANCEL):
                stored = self.responses.pop(key)
                if stored is None:
                    logger.debug(f"No pending prompt for {key}, ignoring {decision}")
                    return None

                if decision == CANCEL:
                    await _edit_prompt(stored, update, self.t("question.cancelled", update))
                    return None

                await _edit_prompt(stored, update, self.t("question.processing", update))
                return await func(self, update, context, *args[:-1])

            rows = [[
                InlineKeyboardButton(
                    self.t("question.ok", update),
                    callback_data=build_routing_string(COMMAND, self.name, action, *args, CONFIRM),
                ),
                InlineKeyboardButton(
                    self.t("question.cancel", update),
                    callback_data=build_routing_string(COMMAND, self.name, action, *args, CANCEL),
                ),
            ]]
            if buttons:
                rows.append([InlineKeyboardButton(label, callback_data=value) for label, value in buttons])

            text = f"<b>{self.t(title_key, update)}</b>\n\n{self.t(message_key, update)}"
            message = update.effective_message
            if message is None:
                return None

            sent = await message.reply_text(
                text, parse_mode=ParseMode.HTML, reply_markup=InlineKeyboardMarkup(rows)
            )
            self.responses.store(key, sent, ttl_ms)
            return None

        return command_action(action)(wrapper)

    return decorator


def choice_setting(
    name: str | None = None,
    *,
    choices: tuple[str, ...] | list[str],
    display_name: str | None = None,
    description: str = "",
    database_key: str | None = None,
    is_bot_owner_only: bool = False,
    convert=str,
):
    """Register a settings entry whose value is picked from fixed choices.

    Without a valid choice the settings panel is replaced by one button per
    choice, routed to ``settings:<command>:<name>:<choice>``, plus a button
    back to the panel. A valid choice is converted, saved under
    ``database_key`` (the setting name when None), passed to the decorated
    method as its only argument, and the panel is shown again.

    Args:
        name: Setting name; the method name when None.
        choices: Accepted values as they appear in callback data.
        display_name: Label in the settings panel.
        description: Description of the panel button.
        database_key: Settings document key holding the value.
        is_bot_owner_only: Only the bot owner may change the value.
        convert: Callable turning the picked string into the stored value.
    """

    def decorator(func):
        action = name or func.__name__
        key = database_key or action

        @functools.wraps(func)
        async def wrapper(self, update: Update, context: ContextTypes.DEFAULT_TYPE, *args: str):
            if args and args[0] in choices:
                value = convert(args[0])
                await self.save_settings(**{key: value})
                logger.debug(f"{self.name}.{key} set to {value} in {self.scope_id}")
                await func(self, update, context, value)
                await self.settings_ui(update, context)
                return None

            if args:
                logger.debug(f"Ignoring invalid choice {args[0]!r} for {self.name}.{action}")

            view = self.build_settings_view(update)
            view.options = [
                MenuOption(label=str(choice), value=build_routing_string(SETTINGS, self.name, action, choice))
                for choice in choices
            ]
            view.options.append(
                MenuOption(label=self.t("page.back", update), value=build_routing_string(SETTINGS, self.name))
            )
            await send_view(update, view)
            return None

        return command_setting(
            action,
            display_name=display_name,
            description=description,
            database_key=key,
            is_bot_owner_only=is_bot_owner_only,
        )(wrapper)

    return decorator


def log_execution(func):
    """Log start and success at debug level and failures at error level.

    Failures are logged and not re-raised.
    """

    @functools.wraps(func)
    async def wrapper(self, update, context, *args):
        label = f"{self.name}.{func.__name__}"
        logger.debug(f"Executing {label} in scope {self.scope_id}")
        try:
            result = await func(self, update, context, *args)
        except Exception as e:
            logger.error(f"Error executing {label} in scope {self.scope_id}: {e}", exc_info=True)
            return None
        logger.debug(f"Executed {label} successfully")
        return result

    return wrapper
