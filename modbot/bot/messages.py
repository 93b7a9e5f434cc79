"""Telegram bot message templates and constants.

Contains all user-facing message templates in English and Turkish. Templates
are looked up through ``t`` by key; a missing translation falls back to
English, and a missing key falls back to the key itself.
"""

import logging

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("en", "tr")
_default_language = "en"

# Status markers for setting values
SETTING_ON = "🟢"
SETTING_OFF = "🔴"
SETTING_NOT_SET = "⚪"

# Shown instead of a disabled button's label
DISABLED_BUTTON_MARK = "·"

EN = {
    # Dispatcher
    "cooldown": "⏳ Please wait {seconds} second(s) before reusing the /{command} command.",
    "not_allowed": "⛔ You are not allowed to use this command.",
    # Pagination
    "page.previous": "⬅️ Previous",
    "page.next": "Next ➡️",
    "page.back": "↩️ Back",
    "page.placeholder": "Select an item from the list",
    # Settings panels
    "settings.title": "⚙️ Settings",
    "settings.empty": "There are no configurable modules in this chat.",
    "settings.command_title": "⚙️ {command} settings",
    "settings.back_to_main_menu": "↩️ Back to main menu",
    "settings.enabled": "Enabled",
    "settings.disabled": "Disabled",
    "settings.not_set": "Not set",
    "settings.owner_only": "Only the bot owner can change this setting.",
    # Confirmation prompts
    "question.title": "❓ Are you sure?",
    "question.message": "Please confirm to continue.",
    "question.ok": "✅ OK",
    "question.cancel": "❌ Cancel",
    "question.processing": "⏳ Processing, please wait...",
    "question.cancelled": "❌ Cancelled.",
    # Help
    "help.title": "📖 Available commands",
    "help.no_help": "No further help is available for this command.",
    "help.aliases": "Aliases: {aliases}",
    "help.cooldown": "Cooldown: {seconds} second(s)",
    # Ping
    "ping.pong": "🏓 Pong! {latency} ms",
    # Alias
    "alias.usage": (
        "Usage:\n"
        "/alias add <keyword> <reply>\n"
        "/alias remove <keyword>\n"
        "/alias list\n"
        "/alias reset"
    ),
    "alias.added": "✅ Alias <b>{keyword}</b> saved.",
    "alias.removed": "🗑 Alias <b>{keyword}</b> removed.",
    "alias.not_found": "Alias <b>{keyword}</b> does not exist.",
    "alias.invalid_keyword": "Keywords may only contain letters, digits, '_' and '-' (max {limit} characters).",
    "alias.list_title": "🔤 Aliases",
    "alias.empty": "No aliases are defined in this chat.",
    "alias.reset_title": "Delete all aliases of this chat?",
    "alias.reset_done": "🗑 All aliases were deleted.",
    # Earthquake
    "earthquake.status": "🌍 Earthquake notifications are {state}. Minimum magnitude: {magnitude}.",
}

TR = {
    "cooldown": "⏳ /{command} komutunu tekrar kullanmadan önce lütfen {seconds} saniye bekleyin.",
    "not_allowed": "⛔ Bu komutu kullanma izniniz yok.",
    "page.previous": "⬅️ Önceki",
    "page.next": "Sonraki ➡️",
    "page.back": "↩️ Geri",
    "page.placeholder": "Listeden bir öğe seçin",
    "settings.title": "⚙️ Ayarlar",
    "settings.empty": "Bu sohbette yapılandırılabilir modül yok.",
    "settings.command_title": "⚙️ {command} ayarları",
    "settings.back_to_main_menu": "↩️ Ana menüye dön",
    "settings.enabled": "Açık",
    "settings.disabled": "Kapalı",
    "settings.not_set": "Ayarlanmadı",
    "settings.owner_only": "Bu ayarı yalnızca bot sahibi değiştirebilir.",
    "question.title": "❓ Emin misiniz?",
    "question.message": "Devam etmek için onaylayın.",
    "question.ok": "✅ Tamam",
    "question.cancel": "❌ İptal",
    "question.processing": "⏳ İşleniyor, lütfen bekleyin...",
    "question.cancelled": "❌ İptal edildi.",
    "help.title": "📖 Kullanılabilir komutlar",
    "help.no_help": "Bu komut için ek yardım yok.",
    "help.aliases": "Takma adlar: {aliases}",
    "help.cooldown": "Bekleme süresi: {seconds} saniye",
    "ping.pong": "🏓 Pong! {latency} ms",
    "alias.added": "✅ <b>{keyword}</b> kaydedildi.",
    "alias.removed": "🗑 <b>{keyword}</b> silindi.",
    "alias.not_found": "<b>{keyword}</b> bulunamadı.",
    "alias.list_title": "🔤 Takma adlar",
    "alias.empty": "Bu sohbette tanımlı takma ad yok.",
    "alias.reset_title": "Bu sohbetin tüm takma adları silinsin mi?",
    "alias.reset_done": "🗑 Tüm takma adlar silindi.",
    "earthquake.status": "🌍 Deprem bildirimleri {state}. En düşük büyüklük: {magnitude}.",
}

MESSAGES = {"en": EN, "tr": TR}


def set_default_language(language: str) -> None:
    """Set the language used when a lookup names none."""
    global _default_language
    if language not in MESSAGES:
        logger.warning(f"Unsupported language {language}, keeping {_default_language}")
        return
    _default_language = language


def t(key: str, lang: str | None = None, **kwargs) -> str:
    """Look up and format a message template.

    Args:
        key: Template key, e.g. ``"page.next"``.
        lang: Language code; unsupported or missing codes use the default.
        **kwargs: Values substituted into the template.

    Returns:
        The formatted message.
    """
    if isinstance(lang, str):
        lang = lang.split("-")[0].lower()
    if lang not in MESSAGES:
        lang = _default_language

    template = MESSAGES[lang].get(key) or EN.get(key)
    if template is None:
        logger.debug(f"Missing message template {key}")
        return key

    try:
        return template.format(**kwargs) if kwargs else template
    except (KeyError, IndexError) as e:
        logger.warning(f"Cannot format message {key}: {e}")
        return template
