"""Short-lived registry of sent prompt messages.

Confirmation prompts store the message they sent here so the later OK/Cancel
callback can edit it. Entries expire after a TTL; a periodic sweep removes
entries nobody resolved.
"""

import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 300_000
DEFAULT_SWEEP_INTERVAL = 60.0


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass
class StoredResponse:
    """A stored message handle with its expiry parameters."""

    response: Any
    created_at: float
    ttl_ms: float

    def expired(self, now: float) -> bool:
        return now - self.created_at > self.ttl_ms


class ResponseRegistry:
    """TTL keyed store for prompt responses.

    Args:
        default_ttl_ms: Lifetime of entries stored without an explicit TTL.
        max_entries: Upper bound; the oldest entry is evicted past it.
        sweep_interval: Seconds between expiry sweeps.
        clock: Callable returning the current time in milliseconds.
    """

    def __init__(
        self,
        default_ttl_ms: float = DEFAULT_TTL_MS,
        max_entries: int = 1000,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], float] | None = None,
    ):
        self.default_ttl_ms = default_ttl_ms
        self.max_entries = max_entries
        self.sweep_interval = sweep_interval
        self._clock = clock or _monotonic_ms
        self._responses: OrderedDict[str, StoredResponse] = OrderedDict()
        self._sweeper: asyncio.Task | None = None
        self._job_queue_sweep = False

    @staticmethod
    def generate_key(command_name: str, action_name: str, user_id: int, chat_id: int) -> str:
        return f"{command_name}:{action_name}:{user_id}:{chat_id}"

    def store(self, key: str, response: Any, ttl_ms: float | None = None) -> None:
        """Store ``response`` under ``key``, replacing any previous entry."""
        self._responses.pop(key, None)
        self._responses[key] = StoredResponse(
            response=response,
            created_at=self._clock(),
            ttl_ms=self.default_ttl_ms if ttl_ms is None else ttl_ms,
        )

        while len(self._responses) > self.max_entries:
            evicted, _ = self._responses.popitem(last=False)
            logger.debug(f"Evicted oldest stored response {evicted}")

        self._ensure_sweeper()

    def get(self, key: str) -> Any | None:
        """Return the stored response, or None if missing or expired."""
        entry = self._responses.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            del self._responses[key]
            return None
        return entry.response

    def pop(self, key: str) -> Any | None:
        """Remove and return the stored response in one step.

        Returns:
            The response, or None when the key is missing or expired, which
            makes a second confirm/cancel click for the same prompt a no-op.
        """
        entry = self._responses.pop(key, None)
        if entry is None or entry.expired(self._clock()):
            return None
        return entry.response

    def delete(self, key: str) -> bool:
        return self._responses.pop(key, None) is not None

    def cleanup(self) -> int:
        """Remove expired entries.

        Returns:
            Number of removed entries.
        """
        now = self._clock()
        expired = [key for key, entry in self._responses.items() if entry.expired(now)]
        for key in expired:
            del self._responses[key]
        if expired:
            logger.debug("Swept %d expired responses", len(expired))
        return len(expired)

    def size(self) -> int:
        return len(self._responses)

    def clear(self) -> None:
        self._responses.clear()
        if self._sweeper is not None and not self._sweeper.done():
            self._sweeper.cancel()
        self._sweeper = None

    def attach_job_queue(self, job_queue) -> None:
        """Sweep from the application's job queue instead of an own task."""
        job_queue.run_repeating(
            self._sweep_job,
            interval=self.sweep_interval,
            first=self.sweep_interval,
            name="response_registry_sweep",
        )
        self._job_queue_sweep = True
        if self._sweeper is not None and not self._sweeper.done():
            self._sweeper.cancel()
        self._sweeper = None

    async def _sweep_job(self, context) -> None:
        self.cleanup()

    def _ensure_sweeper(self) -> None:
        if self._job_queue_sweep:
            return
        if self._sweeper is not None and not self._sweeper.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._sweeper = loop.create_task(self._sweep_loop())

    async def _sweep_loop(self) -> None:
        while self._responses:
            await asyncio.sleep(self.sweep_interval)
            self.cleanup()
        logger.debug("Response registry empty, sweeper stopped")
