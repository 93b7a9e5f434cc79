"""Configuration management for modbot.

Handles all application configuration including environment variables, the
YAML state limits file, and default settings. Provides structured
configuration classes for the bot, the persistence layer and the interaction
state kept in memory.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings


class StateConfig(BaseSettings):
    """Limits of the in-memory interaction state.

    Attributes:
        items_per_page: Default page size of paginated lists.
        pagination_state_ttl: Seconds of inactivity after which a pagination
            state is dropped.
        pagination_max_states: Maximum number of stored pagination states.
        response_ttl_ms: Lifetime of confirmation prompts in milliseconds.
        response_max_entries: Maximum number of pending confirmation prompts.
        response_sweep_interval: Seconds between sweeps of expired prompts.
    """
    items_per_page: int = 5
    pagination_state_ttl: float = 3600.0
    pagination_max_states: int = 10_000
    response_ttl_ms: int = 300_000
    response_max_entries: int = 1000
    response_sweep_interval: float = 60.0


class StoreConfig(BaseSettings):
    """Persistence configuration.

    Attributes:
        db_path: Path to the SQLite database file.
    """
    db_path: str = Field(default="data/modbot.db", validation_alias="DATABASE_PATH")


class BotConfig(BaseSettings):
    """Main Telegram bot configuration.

    Attributes:
        bot_token: Telegram bot API token from environment.
        admin_chat_id: Telegram user ID of the bot owner.
        port: Server port for webhook mode.
        railway_domain: Railway public domain for webhooks.
        railway_url: Railway URL for webhooks (fallback).
        listen_host: Interface the webhook server binds to.
        clear_old_commands_on_startup: Submit an empty command list before
            the first publish of each scope.
        language: Default language of bot messages.
        log_level: Logging level name.
    """
    bot_token: str = Field(default="", validation_alias="BOT_TOKEN")
    admin_chat_id: int | None = Field(default=None, validation_alias="ADMIN_CHAT_ID")
    port: int = Field(default=8000, validation_alias="PORT")
    railway_domain: str | None = Field(default=None, validation_alias="RAILWAY_PUBLIC_DOMAIN")
    railway_url: str | None = Field(default=None, validation_alias="RAILWAY_URL")
    listen_host: str = Field(default="127.0.0.1", validation_alias="BOT_LISTEN_HOST")
    clear_old_commands_on_startup: bool = Field(
        default=False, validation_alias="CLEAR_OLD_COMMANDS_ON_STARTUP"
    )
    language: str = Field(default="en", validation_alias="BOT_LANGUAGE")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @property
    def webhook_domain(self) -> str | None:
        """Get webhook domain for Railway deployment.

        Returns:
            Domain string if available, None for polling mode.
        """
        return self.railway_domain or self.railway_url

    @property
    def use_webhook(self) -> bool:
        """Determine if webhook mode should be used.

        Returns:
            True if webhook domain is configured, False for polling mode.
        """
        return bool(self.webhook_domain)


class Config:
    """Application configuration manager.

    Centralizes loading of environment variables and the state limits file.
    Provides typed access to configuration sections for different
    application components.
    """

    def __init__(self, config_dir: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_dir: Path to configuration directory, defaults to modbot/config.
        """
        if config_dir is None:
            config_dir = Path(__file__).parent / "config"

        self.config_dir = Path(config_dir)

        self.bot = BotConfig()
        self.store = StoreConfig()
        self.state = self._load_state_config()

    def _load_state_config(self) -> StateConfig:
        """Load state limits from YAML configuration.

        Returns:
            StateConfig with values from state.yml, defaults if the file is missing.
        """
        state_path = self.config_dir / "state.yml"
        if not state_path.exists():
            return StateConfig()

        with open(state_path) as f:
            data = yaml.safe_load(f) or {}

        pagination = data.get("pagination", {})
        responses = data.get("responses", {})
        return StateConfig(
            items_per_page=pagination.get("items_per_page", 5),
            pagination_state_ttl=pagination.get("state_ttl_seconds", 3600.0),
            pagination_max_states=pagination.get("max_states", 10_000),
            response_ttl_ms=responses.get("ttl_ms", 300_000),
            response_max_entries=responses.get("max_entries", 1000),
            response_sweep_interval=responses.get("sweep_interval_seconds", 60.0),
        )

    def as_dict(self) -> dict[str, Any]:
        """Flatten all sections for the dependency container."""
        return {
            "bot": self.bot.model_dump(),
            "store": self.store.model_dump(),
            "state": self.state.model_dump(),
        }


# Global configuration instance
config = Config()
