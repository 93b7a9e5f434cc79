"""Pagination state machine for list menus.

Each (scope, user, command) triple owns one state. ``render`` always starts a
fresh list at page 1; ``next``/``previous`` move within the list; ``view``
switches to a single item and ``back`` returns to the list page the user left.
Views are returned as platform-neutral ``PageView`` models.
"""

import logging
import math
import textwrap
import time
from collections import OrderedDict
from collections.abc import Callable
from html import escape

from ..bot.messages import t
from ..models import Button, MenuOption, PageConfig, PageMode, PageView, PaginationState, ViewItem
from .errors import RoutingError
from .routing import COMMAND, PAGE, SETTINGS, build_routing_string

logger = logging.getLogger(__name__)

StateKey = tuple[str, str, str]

OPTION_DESCRIPTION_LIMIT = 50


class Paginator:
    """Keeps pagination states and renders their views.

    Args:
        default_items_per_page: Page size used when a config leaves it unset.
        state_ttl_seconds: Inactivity period after which a state is dropped.
        max_states: Upper bound on stored states, least recently used first out.
        clock: Callable returning the current time in seconds.
    """

    def __init__(
        self,
        default_items_per_page: int = 5,
        state_ttl_seconds: float = 3600.0,
        max_states: int = 10_000,
        clock: Callable[[], float] | None = None,
    ):
        self.default_items_per_page = default_items_per_page
        self.state_ttl_seconds = state_ttl_seconds
        self.max_states = max_states
        self._clock = clock or time.monotonic
        self._states: OrderedDict[StateKey, PaginationState] = OrderedDict()

    @staticmethod
    def state_key(scope_id: str, user_id: int | str, command_name: str) -> StateKey:
        return (str(scope_id), str(user_id), command_name)

    def state(self, scope_id: str, user_id: int | str, command_name: str) -> PaginationState | None:
        return self._get(self.state_key(scope_id, user_id, command_name))

    @staticmethod
    def total_pages(state: PaginationState) -> int:
        return max(1, math.ceil(len(state.config.items) / state.config.items_per_page))

    def render(
        self, scope_id: str, user_id: int | str, command_name: str, config: PageConfig
    ) -> PageView:
        """Start a list at page 1, replacing any existing state."""
        if "items_per_page" not in config.model_fields_set:
            config = config.model_copy(update={"items_per_page": self.default_items_per_page})

        state = PaginationState(config=config, touched_at=self._clock())
        self._put(self.state_key(scope_id, user_id, command_name), state)
        return self.build_list_view(state, command_name)

    def next(self, scope_id: str, user_id: int | str, command_name: str) -> PageView | None:
        return self._move(scope_id, user_id, command_name, 1)

    def previous(self, scope_id: str, user_id: int | str, command_name: str) -> PageView | None:
        return self._move(scope_id, user_id, command_name, -1)

    def back(self, scope_id: str, user_id: int | str, command_name: str) -> PageView | None:
        """Return from a detail view to the list page that was left."""
        state = self.state(scope_id, user_id, command_name)
        if state is None:
            return None
        state.mode = PageMode.LIST
        state.detail = None
        return self.build_list_view(state, command_name)

    def view(
        self,
        scope_id: str,
        user_id: int | str,
        command_name: str,
        item_name: str,
        detail: ViewItem,
    ) -> PageView:
        """Show a single item.

        The current list page is remembered when a state exists, so a later
        ``back`` restores it. Without a state the detail view is still
        rendered; ``back`` from it is then dropped.
        """
        state = self.state(scope_id, user_id, command_name)
        if state is not None:
            state.mode = PageMode.DETAIL
            state.detail = detail
        else:
            logger.debug(f"Detail view of {item_name} for {command_name} without a list state")
        return self.build_detail_view(detail, command_name)

    def navigate(
        self, scope_id: str, user_id: int | str, command_name: str, direction: str
    ) -> PageView | None:
        """Apply a page direction ("next", "previous" or "back")."""
        if direction == "next":
            return self.next(scope_id, user_id, command_name)
        if direction == "previous":
            return self.previous(scope_id, user_id, command_name)
        if direction == "back":
            return self.back(scope_id, user_id, command_name)
        logger.debug(f"Unknown page direction {direction}")
        return None

    def discard(self, scope_id: str, user_id: int | str, command_name: str) -> None:
        self._states.pop(self.state_key(scope_id, user_id, command_name), None)

    def size(self) -> int:
        return len(self._states)

    def _move(self, scope_id: str, user_id: int | str, command_name: str, step: int) -> PageView | None:
        state = self.state(scope_id, user_id, command_name)
        if state is None:
            return None
        state.current_page += step
        state.mode = PageMode.LIST
        state.detail = None
        return self.build_list_view(state, command_name)

    def build_list_view(self, state: PaginationState, command_name: str) -> PageView:
        """Render the state's current page.

        The page index is clamped into range first, so a list that shrank
        since the last render never points past its end.
        """
        config = state.config
        total = self.total_pages(state)
        state.current_page = min(max(state.current_page, 1), total)

        start = (state.current_page - 1) * config.items_per_page
        window = config.items[start:start + config.items_per_page]

        body = "\n\n".join(
            f"<b>{escape(item.pretty_name)}</b>\n{escape(item.description)}".rstrip()
            for item in window
        )

        nav: list[Button] = []
        if len(config.items) > config.items_per_page:
            nav = [
                Button(
                    label=t("page.previous"),
                    routing=build_routing_string(PAGE, command_name, "prev"),
                    disabled=state.current_page <= 1,
                ),
                Button(
                    label=t("page.next"),
                    routing=build_routing_string(PAGE, command_name, "next"),
                    disabled=state.current_page >= total,
                ),
            ]

        options = []
        for item in window:
            option = self._item_option(item, command_name)
            if option is not None:
                options.append(option)

        return PageView(
            title=config.title,
            body=body,
            footer=f"{state.current_page}/{total}",
            nav=nav,
            options=options,
            placeholder=config.placeholder or t("page.placeholder"),
        )

    def build_detail_view(self, detail: ViewItem, command_name: str) -> PageView:
        description = textwrap.dedent(detail.description).strip()
        return PageView(
            title=detail.title,
            body=escape(description),
            nav=[Button(label=t("page.back"), routing=build_routing_string(PAGE, command_name, "back"))],
        )

    @staticmethod
    def _item_option(item, command_name: str) -> MenuOption | None:
        if item.namespace == SETTINGS:
            parts = (SETTINGS, item.name)
        else:
            parts = (COMMAND, command_name, "pageitem", item.name)

        try:
            value = build_routing_string(*parts)
        except RoutingError as e:
            logger.warning(f"Skipping page item {item.name}: {e}")
            return None

        return MenuOption(
            label=item.pretty_name,
            value=value,
            description=item.description[:OPTION_DESCRIPTION_LIMIT],
        )

    def _get(self, key: StateKey) -> PaginationState | None:
        state = self._states.get(key)
        if state is None:
            return None

        now = self._clock()
        if now - state.touched_at > self.state_ttl_seconds:
            del self._states[key]
            return None

        state.touched_at = now
        self._states.move_to_end(key)
        return state

    def _put(self, key: StateKey, state: PaginationState) -> None:
        self._states.pop(key, None)
        self._states[key] = state
        while len(self._states) > self.max_states:
            evicted, _ = self._states.popitem(last=False)
            logger.debug(f"Evicted pagination state {evicted}")
