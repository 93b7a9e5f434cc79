"""Application entry point.

Main module that initializes and runs the Telegram bot application. Handles both
webhook mode (for production deployment on Railway) and polling mode (for local
development). Configures logging, loads the command modules and registers the
interaction dispatcher for commands, button callbacks and chat events.
"""

import logging

from telegram import Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    ChatMemberHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from .bot.messages import set_default_language
from .config import config
from .core.container import Container, build_container
from .models import EventType

# Logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, config.bot.log_level.upper(), logging.INFO),
)
logger = logging.getLogger(__name__)


async def initialize_resources(application: Application, container: Container) -> None:
    """Load commands, publish command lists and schedule jobs."""
    registry = container.registry()
    await registry.load()

    results = await registry.publish(application.bot)
    logger.info(f"Published command lists: {sum(results.values())}/{len(results)} scopes")

    job_queue = application.job_queue
    if job_queue is None:
        logger.warning("Job queue unavailable; cron jobs disabled, prompts swept by a background task")
        return

    container.hooks().schedule(job_queue)
    container.responses().attach_job_queue(job_queue)


async def cleanup_resources(container: Container) -> None:
    """Cleanup application resources."""
    container.responses().clear()
    container.cooldowns().reset()
    logger.info("Interaction state cleared")


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Log errors that escaped the dispatcher."""
    logger.error(f"Unhandled error while processing {update}: {context.error}", exc_info=context.error)


def build_application(container: Container) -> Application:
    """Create the Telegram application and register all handlers.

    Args:
        container: Configured dependency container.

    Returns:
        Application ready to run.
    """
    app = Application.builder().token(config.bot.bot_token).build()

    async def post_init(application: Application) -> None:
        await initialize_resources(application, container)

    async def post_shutdown(application: Application) -> None:
        await cleanup_resources(container)

    app.post_init = post_init
    app.post_shutdown = post_shutdown

    dispatcher = container.dispatcher()

    # Every interaction runs as its own task
    app.add_handler(MessageHandler(filters.COMMAND, dispatcher.handle_command, block=False))
    app.add_handler(CallbackQueryHandler(dispatcher.handle_callback, block=False))
    app.add_handler(
        MessageHandler(
            filters.StatusUpdate.NEW_CHAT_MEMBERS,
            dispatcher.event_handler(EventType.MEMBER_JOINED),
            block=False,
        )
    )
    app.add_handler(
        MessageHandler(
            filters.StatusUpdate.LEFT_CHAT_MEMBER,
            dispatcher.event_handler(EventType.MEMBER_LEFT),
            block=False,
        )
    )
    app.add_handler(
        MessageHandler(
            filters.TEXT & ~filters.COMMAND,
            dispatcher.event_handler(EventType.MESSAGE),
            block=False,
        )
    )
    app.add_handler(
        ChatMemberHandler(dispatcher.handle_chat_member, ChatMemberHandler.MY_CHAT_MEMBER, block=False)
    )

    app.add_error_handler(error_handler)
    return app


def main() -> None:
    """Main application entry point.

    Initializes the Telegram bot application with proper configuration,
    registers handlers, and starts the bot in either webhook mode
    (production) or polling mode (development).

    Raises:
        RuntimeError: If BOT_TOKEN environment variable is not set.
    """
    if not config.bot.bot_token:
        raise RuntimeError("Set BOT_TOKEN environment variable")

    set_default_language(config.bot.language)
    container = build_container(config)
    app = build_application(container)

    # Run in webhook or polling mode
    if config.bot.use_webhook:
        path = f"/{config.bot.bot_token}"
        webhook_url = f"https://{config.bot.webhook_domain}{path}"
        logger.info(f"Starting webhook at https://{config.bot.webhook_domain}")

        app.run_webhook(
            listen=config.bot.listen_host,
            port=config.bot.port,
            url_path=path,
            webhook_url=webhook_url,
            allowed_updates=Update.ALL_TYPES,
        )
    else:
        logger.warning("No public domain found; falling back to long-polling")
        app.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
