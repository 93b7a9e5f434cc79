"""Helpers for reading common facts off Telegram updates."""

from telegram import Update

from ..models import GLOBAL_SCOPE


def scope_of(update: Update) -> str:
    """Return the scope id of an update: the chat id, or the global scope."""
    chat = update.effective_chat
    return str(chat.id) if chat is not None else GLOBAL_SCOPE


def user_id_of(update: Update) -> int:
    user = update.effective_user
    return user.id if user is not None else 0


def chat_id_of(update: Update) -> int:
    chat = update.effective_chat
    return chat.id if chat is not None else 0


def language_of(update: Update) -> str | None:
    user = update.effective_user
    return getattr(user, "language_code", None) if user is not None else None


def parse_command_text(text: str | None) -> tuple[str, str | None, list[str]]:
    """Split a slash command message.

    Args:
        text: Message text such as ``"/help@modbot settings"``.

    Returns:
        Tuple of (command token, addressed bot username or None, args).
        The token is empty when the text is not a command.
    """
    if not text or not text.startswith("/"):
        return "", None, []

    head, *args = text.split()
    token, _, mention = head[1:].partition("@")
    return token, mention or None, args
