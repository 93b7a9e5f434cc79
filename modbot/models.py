"""Data models for the modbot application.

Defines Pydantic models for the data structures shared between the framework
core and the Telegram layer: cooldown decisions, pagination configuration and
state, platform-neutral view models for menus and the command descriptors
published to Telegram.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

GLOBAL_SCOPE = "global"


class EventType(str, Enum):
    """Chat events that command modules can subscribe to."""

    MESSAGE = "message"
    MEMBER_JOINED = "member_joined"
    MEMBER_LEFT = "member_left"


class PageMode(str, Enum):
    """Pagination view mode."""

    LIST = "list"
    DETAIL = "detail"


class CooldownResult(BaseModel):
    """Outcome of a cooldown check.

    Attributes:
        allowed: Whether the invocation may proceed.
        remaining_ms: Milliseconds left until the user may invoke again.
    """

    allowed: bool
    remaining_ms: int = 0


class SettingMeta(BaseModel):
    """Presentation metadata of a module setting.

    Attributes:
        display_name: Human readable label shown in the settings panel.
        description: Short explanation shown next to the option.
        database_key: Key in the stored settings document holding the value.
        view_in_ui: Whether the current value is listed in the panel body.
        is_bot_owner_only: Whether only the bot owner may change it.
    """

    display_name: str
    description: str = ""
    database_key: str | None = None
    view_in_ui: bool = True
    is_bot_owner_only: bool = False


class EventHook(BaseModel):
    """Event subscription metadata."""

    event_type: EventType
    once: bool = False


class CronHook(BaseModel):
    """Recurring job metadata; ``schedule`` is a five-field crontab expression."""

    schedule: str


class PageItem(BaseModel):
    """A single entry of a paginated list.

    Attributes:
        name: Machine name, used in the item's routing string.
        pretty_name: Label shown to users.
        description: Free text shown in the list body.
        namespace: "settings" opens the item's settings panel, "command"
            opens the item's detail view.
    """

    name: str
    pretty_name: str
    description: str = ""
    namespace: str = "command"


class PageConfig(BaseModel):
    """List rendering parameters."""

    title: str
    items: list[PageItem] = Field(default_factory=list)
    items_per_page: int = Field(default=5, gt=0)
    placeholder: str | None = None


class ViewItem(BaseModel):
    """Content of a detail view."""

    title: str
    description: str = ""


class PaginationState(BaseModel):
    """Per (scope, user, command) pagination state.

    Attributes:
        current_page: 1-based page index, always within [1, total pages].
        config: Configuration captured at the last list render.
        mode: Whether the list or a single item is being shown.
        detail: Item shown while in detail mode.
        touched_at: Clock reading of the last access, used for expiry.
    """

    current_page: int = Field(default=1, ge=1)
    config: PageConfig
    mode: PageMode = PageMode.LIST
    detail: ViewItem | None = None
    touched_at: float = 0.0


class Button(BaseModel):
    """Clickable control carrying a routing string."""

    label: str
    routing: str
    disabled: bool = False


class MenuOption(BaseModel):
    """Option of a selection menu; ``value`` is a routing string."""

    label: str
    value: str
    description: str = ""


class PageView(BaseModel):
    """Platform-neutral rendering of an interactive panel.

    Attributes:
        title: Panel heading.
        body: Panel text, HTML formatted.
        footer: Optional trailing line such as the page counter.
        nav: Navigation buttons rendered on one row.
        options: Selection menu options, one per row.
        placeholder: Hint for the selection menu.
    """

    title: str
    body: str = ""
    footer: str | None = None
    nav: list[Button] = Field(default_factory=list)
    options: list[MenuOption] = Field(default_factory=list)
    placeholder: str | None = None


class PublishedCommand(BaseModel):
    """Descriptor of one entry in a published command list."""

    name: str
    description: str


class ChatRecord(BaseModel):
    """Known chat persisted by the entity store."""

    chat_id: int
    title: str | None = None
    type: str | None = None
    registered_at: datetime = Field(default_factory=lambda: datetime.now())
