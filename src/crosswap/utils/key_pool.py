"""Rate-limit aware rotation across a pool of API keys.

A request is retried with the next available key each time the upstream
answers with a rate limit, up to a bounded number of attempts. A key that
hit its limit stays exhausted until reset() is called.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from crosswap.errors import AllKeysExhausted, RateLimited

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ApiKeyPool:
    """Ordered credential list with an exhausted set and a rotation cursor."""

    def __init__(
        self,
        keys: list[str],
        name: str = "api",
        max_attempts: int = 3,
        retry_delay: float = 0.1,
    ):
        self.name = name
        self._keys = list(keys)
        self._exhausted: set[int] = set()
        self._cursor = 0
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay

    def __len__(self) -> int:
        return len(self._keys)

    @property
    def current_index(self) -> int:
        return self._cursor

    @property
    def current_key(self) -> Optional[str]:
        if not self._keys:
            return None
        return self._keys[self._cursor]

    @property
    def available_count(self) -> int:
        return len(self._keys) - len(self._exhausted)

    def is_exhausted(self, index: int) -> bool:
        return index in self._exhausted

    def mark_exhausted(self, index: int) -> None:
        """Mark a key as rate limited."""
        self._exhausted.add(index)
        logger.warning(f"[{self.name}] API key {index + 1} marked exhausted (rate limit hit)")

    def next_available_index(self) -> Optional[int]:
        """Current key if still usable, otherwise the next usable one in order."""
        if not self._keys:
            return None
        if self._cursor not in self._exhausted:
            return self._cursor
        for offset in range(1, len(self._keys) + 1):
            index = (self._cursor + offset) % len(self._keys)
            if index not in self._exhausted:
                return index
        return None

    def rotate(self) -> Optional[str]:
        """Move the cursor to the next available key.

        Returns:
            The new active key, or None if all keys are exhausted
        """
        index = self.next_available_index()
        if index is None:
            logger.error(f"[{self.name}] All {len(self._keys)} API keys exhausted")
            return None
        if index != self._cursor:
            logger.info(f"[{self.name}] Rotating from key {self._cursor + 1} to key {index + 1}")
            self._cursor = index
        return self._keys[index]

    def reset(self) -> None:
        """Forget exhaustion state, e.g. after the provider's quota window resets."""
        self._exhausted.clear()
        self._cursor = 0

    async def execute(self, request: Callable[[str], Awaitable[T]]) -> T:
        """Run request(key), rotating keys on RateLimited.

        Raises:
            AllKeysExhausted: no usable key is left
            RateLimited: max attempts ran out while keys remain
        """
        last_error: Optional[RateLimited] = None

        for attempt in range(self.max_attempts):
            key = self.rotate()
            if key is None:
                raise AllKeysExhausted(f"All {self.name} API keys exhausted") from last_error

            index = self._cursor
            try:
                return await request(key)
            except RateLimited as e:
                last_error = e
                self.mark_exhausted(index)

                if self.next_available_index() is None:
                    logger.error(f"[{self.name}] All {len(self._keys)} API keys exhausted")
                    raise AllKeysExhausted(f"All {self.name} API keys exhausted") from e

                if attempt < self.max_attempts - 1:
                    logger.warning(
                        f"[{self.name}] Rate limit on attempt {attempt + 1}, rotating to next key"
                    )
                    await asyncio.sleep(self.retry_delay)

        raise last_error or RateLimited(f"{self.name} request rate limited")
