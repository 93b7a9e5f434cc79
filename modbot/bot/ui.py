"""Rendering of view models into Telegram messages.

``PageView`` models produced by the paginator and the settings panels are
converted into HTML text plus an inline keyboard here. Callback queries edit
the message the button belonged to; direct commands get a reply.
"""

import logging
from html import escape

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Message, Update
from telegram.constants import ParseMode
from telegram.error import BadRequest

from ..models import PageView
from .messages import DISABLED_BUTTON_MARK

logger = logging.getLogger(__name__)


def render_text(view: PageView) -> str:
    """Build the HTML message text of a view."""
    parts = [f"<b>{escape(view.title)}</b>"]
    if view.body:
        parts.append(view.body)
    if view.footer:
        parts.append(f"<i>{escape(view.footer)}</i>")
    return "\n\n".join(parts)


def to_markup(view: PageView) -> InlineKeyboardMarkup | None:
    """Build the inline keyboard of a view.

    Options get one row each; navigation buttons share the last row. A
    disabled button keeps its routing string, the transition behind it is a
    no-op at the bounds.
    """
    rows = [
        [InlineKeyboardButton(option.label, callback_data=option.value)]
        for option in view.options
    ]

    nav = [
        InlineKeyboardButton(
            DISABLED_BUTTON_MARK if button.disabled else button.label,
            callback_data=button.routing,
        )
        for button in view.nav
    ]
    if nav:
        rows.append(nav)

    return InlineKeyboardMarkup(rows) if rows else None


async def respond(
    update: Update,
    text: str,
    reply_markup: InlineKeyboardMarkup | None = None,
    parse_mode: str | None = ParseMode.HTML,
) -> Message | None:
    """Edit the callback's message, or reply to the command message.

    Returns:
        The sent or edited message, None if nothing could be sent.
    """
    query = update.callback_query
    if query is not None and query.message is not None:
        try:
            edited = await query.edit_message_text(
                text,
                parse_mode=parse_mode,
                reply_markup=reply_markup,
                disable_web_page_preview=True,
            )
            return edited if isinstance(edited, Message) else None
        except BadRequest as e:
            if "not modified" in str(e).lower():
                return None
            logger.warning(f"Failed to edit message, replying instead: {e}")

    message = update.effective_message
    if message is None:
        logger.debug("Update has no message to reply to")
        return None

    return await message.reply_text(
        text,
        parse_mode=parse_mode,
        reply_markup=reply_markup,
        disable_web_page_preview=True,
    )


async def send_view(update: Update, view: PageView) -> Message | None:
    return await respond(update, render_text(view), reply_markup=to_markup(view))


async def notify(update: Update, text: str) -> None:
    """Show a short ephemeral notice.

    Callback queries get an alert popup; commands get a plain reply.
    """
    query = update.callback_query
    if query is not None:
        try:
            await query.answer(text, show_alert=True)
            return
        except BadRequest as e:
            # Query already answered by the dispatcher
            logger.debug(f"Cannot answer callback query: {e}")

    message = update.effective_message
    if message is not None:
        await message.reply_text(text)
