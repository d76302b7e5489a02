"""In-memory TTL cache.

Entries carry an absolute expiry instant. Expired entries are dropped lazily
on read and periodically by a background sweep task.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class CACHE_TTL:
    """Cache lifetimes in milliseconds."""

    TOKENS = 5 * 60 * 1000
    CHAINS = 60 * 60 * 1000
    SEARCH = 60 * 1000
    PAIRS = 2 * 60 * 1000
    ROUTER_FORMATS = 30 * 60 * 1000
    BALANCE = 30 * 1000
    TOKEN_BALANCES = 60 * 1000


@dataclass
class CacheEntry:
    """A cached value and the monotonic instant (seconds) it expires at."""

    key: str
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class TTLCache:
    """Key/value cache with per-entry TTL in milliseconds.

    All mutation happens on the event loop thread, so each get/set/delete is
    atomic with respect to other coroutines.
    """

    def __init__(
        self,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._entries: dict[str, CacheEntry] = {}
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._sweep_task: Optional[asyncio.Task] = None

    def get(self, key: str) -> Optional[Any]:
        """Get a value, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl: int) -> None:
        """Store a value for ttl milliseconds."""
        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            expires_at=self._clock() + ttl / 1000.0,
        )

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def clear(self) -> None:
        self._entries.clear()

    def size(self) -> int:
        """Number of stored entries, including expired ones not yet swept."""
        return len(self._entries)

    def sweep(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Cache sweep removed {len(expired)} expired entries")
        return len(expired)

    def start(self) -> None:
        """Start the background sweep task on the running loop."""
        if self._sweep_task and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        """Cancel the background sweep task."""
        if self._sweep_task is None:
            return
        self._sweep_task.cancel()
        try:
            await self._sweep_task
        except asyncio.CancelledError:
            pass
        self._sweep_task = None

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.sweep()
