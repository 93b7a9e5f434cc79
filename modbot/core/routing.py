"""Routing strings carried by inline buttons.

Every interactive control encodes its target as
``namespace:command[:sub_action[:arg]*]`` in the button's callback data.
The dispatcher parses the string once into one of the intent types below and
branches on the type.
"""

from dataclasses import dataclass

from .errors import RoutingError

COMMAND = "command"
PAGE = "page"
SETTINGS = "settings"

SEPARATOR = ":"
MAX_CALLBACK_DATA_BYTES = 64

# Accepted page directions mapped to paginator transitions
PAGE_DIRECTIONS = {
    "next": "next",
    "prev": "previous",
    "previous": "previous",
    "back": "back",
}


@dataclass(frozen=True)
class Invoke:
    """Run the command's ``execute``."""

    command: str


@dataclass(frozen=True)
class SubAction:
    """Run a registered sub-action of a command."""

    command: str
    name: str
    args: tuple[str, ...] = ()


@dataclass(frozen=True)
class PageNav:
    """Move the command's pagination state."""

    command: str
    direction: str


@dataclass(frozen=True)
class SettingsNav:
    """Open the settings menu, a command's settings panel or a setting."""

    command: str | None = None
    name: str | None = None
    args: tuple[str, ...] = ()


RoutingIntent = Invoke | SubAction | PageNav | SettingsNav


def parse_routing_string(value: str | None) -> RoutingIntent:
    """Parse callback data into a routing intent.

    Args:
        value: Raw callback data.

    Returns:
        The decoded intent.

    Raises:
        RoutingError: If the string is empty, uses an unknown namespace,
            lacks a command name or names an unknown page direction.
    """
    if not value:
        raise RoutingError("Empty routing string")

    namespace, *rest = value.split(SEPARATOR)
    command = rest[0] if rest else ""
    tokens = rest[1:]

    if namespace == SETTINGS:
        if not command:
            return SettingsNav()
        if not tokens or not tokens[0]:
            return SettingsNav(command=command)
        return SettingsNav(command=command, name=tokens[0], args=tuple(tokens[1:]))

    if namespace not in (COMMAND, PAGE):
        raise RoutingError(f"Unknown routing namespace: {namespace!r}")
    if not command:
        raise RoutingError(f"Missing command name in {value!r}")

    if namespace == PAGE:
        direction = PAGE_DIRECTIONS.get(tokens[0].lower()) if tokens else None
        if direction is None:
            raise RoutingError(f"Unknown page direction in {value!r}")
        return PageNav(command=command, direction=direction)

    if not tokens or not tokens[0]:
        return Invoke(command=command)
    return SubAction(command=command, name=tokens[0], args=tuple(tokens[1:]))


def build_routing_string(*parts: object) -> str:
    """Join parts into callback data.

    Raises:
        RoutingError: If a part contains the separator or the result exceeds
            Telegram's callback data limit.
    """
    tokens = [str(part) for part in parts]
    for token in tokens:
        if SEPARATOR in token:
            raise RoutingError(f"Routing token must not contain {SEPARATOR!r}: {token!r}")

    value = SEPARATOR.join(tokens)
    if len(value.encode("utf-8")) > MAX_CALLBACK_DATA_BYTES:
        raise RoutingError(f"Routing string exceeds {MAX_CALLBACK_DATA_BYTES} bytes: {value!r}")
    return value
