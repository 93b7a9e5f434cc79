"""Dependency-injection container.

This module defines a dependency-injection (DI) container that wires together
the application's components. This approach to DI helps to decouple the
application's components and makes them easier to test and maintain.
"""

from dependency_injector import containers, providers

from ..bot.dispatcher import InteractionDispatcher
from ..config import Config
from ..config import config as app_config
from ..services.store import SQLiteEntityStore
from .cooldown import CooldownTracker
from .hooks import HookTable
from .paginator import Paginator
from .registry import CommandRegistry
from .response_registry import ResponseRegistry


class Container(containers.DeclarativeContainer):
    """DI container for the application.

    This container holds the wiring for all the application's components.
    """

    config = providers.Configuration()

    # Services
    store = providers.Singleton(SQLiteEntityStore, db_path=config.store.db_path)

    # Interaction state
    cooldowns = providers.Singleton(CooldownTracker)
    responses = providers.Singleton(
        ResponseRegistry,
        default_ttl_ms=config.state.response_ttl_ms,
        max_entries=config.state.response_max_entries,
        sweep_interval=config.state.response_sweep_interval,
    )
    paginator = providers.Singleton(
        Paginator,
        default_items_per_page=config.state.items_per_page,
        state_ttl_seconds=config.state.pagination_state_ttl,
        max_states=config.state.pagination_max_states,
    )
    hooks = providers.Singleton(HookTable)

    # Bot components
    registry = providers.Singleton(
        CommandRegistry,
        store=store,
        hooks=hooks,
        paginator=paginator,
        responses=responses,
        clear_old_commands=config.bot.clear_old_commands_on_startup,
        owner_id=config.bot.admin_chat_id,
    )
    dispatcher = providers.Singleton(
        InteractionDispatcher,
        registry=registry,
        cooldowns=cooldowns,
        paginator=paginator,
        hooks=hooks,
        store=store,
        owner_id=config.bot.admin_chat_id,
    )


def build_container(settings: Config | None = None) -> Container:
    """Create a container configured from ``settings``.

    Args:
        settings: Configuration manager, the global one if None.

    Returns:
        Configured container.
    """
    container = Container()
    container.config.from_dict((settings or app_config).as_dict())
    return container
