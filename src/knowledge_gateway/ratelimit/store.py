"""Counter stores backing the rate limiter."""

import asyncio
from typing import Protocol

from cachetools import TTLCache


class CounterStore(Protocol):
    """Key/value counters with expiry.

    Implementations raise ``CounterStoreError`` (or ``OSError``) when the
    backing service is unreachable; the limiter then fails open.
    """

    async def get(self, key: str) -> int: ...

    async def increment(self, key: str, ttl_seconds: int) -> int: ...


class InMemoryCounterStore:
    """Process-local counters held in a TTL cache.

    Counters are per process: several workers each enforce the full limit.
    """

    def __init__(self, ttl_seconds: int, maxsize: int = 100_000) -> None:
        self._counters: TTLCache[str, int] = TTLCache(maxsize=maxsize, ttl=ttl_seconds)
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> int:
        return self._counters.get(key, 0)

    async def increment(self, key: str, ttl_seconds: int) -> int:
        # ttl_seconds is fixed per store; window keys never outlive one window
        async with self._lock:
            value = self._counters.get(key, 0) + 1
            self._counters[key] = value
            return value

    def clear(self) -> None:
        self._counters.clear()
