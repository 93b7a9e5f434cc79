"""Per-user command cooldowns."""

import asyncio
import logging
import math
import time
from collections.abc import Callable

from ..models import CooldownResult

logger = logging.getLogger(__name__)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class CooldownTracker:
    """Tracks the last allowed invocation per (command, user).

    Entries expire through a one-shot ``loop.call_later`` timer when an event
    loop is running; an entry past its window is also ignored on read, so a
    late timer never blocks a user.

    Args:
        clock: Callable returning the current time in milliseconds.
    """

    def __init__(self, clock: Callable[[], float] | None = None):
        self._clock = clock or _monotonic_ms
        self._expires_at: dict[tuple[str, int], float] = {}
        self._timers: dict[tuple[str, int], asyncio.TimerHandle] = {}

    def check(self, command_name: str, user_id: int, cooldown_seconds: float) -> CooldownResult:
        """Check and record an invocation attempt.

        Args:
            command_name: Resolved command name, so aliases share one bucket.
            user_id: Invoking user.
            cooldown_seconds: Window length; zero or less disables the check.

        Returns:
            CooldownResult with ``allowed`` and, when rejected, the
            milliseconds remaining until the window closes.
        """
        if cooldown_seconds <= 0:
            return CooldownResult(allowed=True)

        key = (command_name, user_id)
        now = self._clock()
        expires_at = self._expires_at.get(key)

        if expires_at is not None:
            if now < expires_at:
                remaining = max(1, math.ceil(expires_at - now))
                return CooldownResult(allowed=False, remaining_ms=remaining)
            self._expire(key)

        window_ms = cooldown_seconds * 1000
        self._expires_at[key] = now + window_ms
        self._arm_timer(key, window_ms)
        return CooldownResult(allowed=True)

    def _arm_timer(self, key: tuple[str, int], window_ms: float) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return  # no loop, entries expire on read only

        previous = self._timers.pop(key, None)
        if previous is not None:
            previous.cancel()
        self._timers[key] = loop.call_later(window_ms / 1000, self._expire, key)

    def _expire(self, key: tuple[str, int]) -> None:
        self._expires_at.pop(key, None)
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()

    def reset(self, command_name: str | None = None) -> None:
        """Drop all entries, or only those of ``command_name``."""
        keys = [key for key in self._expires_at if command_name is None or key[0] == command_name]
        for key in keys:
            self._expire(key)
        if keys:
            logger.debug("Reset %d cooldown entries", len(keys))

    def size(self) -> int:
        return len(self._expires_at)
