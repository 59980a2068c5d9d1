"""Fixed-window rate limiting for the protocol gateway.

Two ceilings apply to every call: one for the repository as a whole and
one for each (repository, client) pair. Windows are aligned to multiples
of the window length, so every caller shares the same reset instant.
"""

import math
import time
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from knowledge_gateway.exceptions import CounterStoreError
from knowledge_gateway.ratelimit.store import CounterStore


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RateLimitInfo:
    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after: int = 0

    def headers(self) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class RateLimiter:
    """Checks and counts gateway calls against both ceilings."""

    def __init__(
        self,
        store: CounterStore,
        *,
        repository_limit: int = 60,
        client_limit: int = 30,
        window_seconds: int = 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.repository_limit = repository_limit
        self.client_limit = client_limit
        self.window_seconds = window_seconds
        self._clock = clock

    def window_start(self, now: float | None = None) -> int:
        now = self._clock() if now is None else now
        return math.floor(now / self.window_seconds) * self.window_seconds

    async def check(self, repository_id: str, client_id: str) -> RateLimitInfo:
        """Count one call, or reject it if either ceiling is reached.

        Rejected calls are not counted. If the counter store is unavailable
        the call is allowed.
        """
        now = self._clock()
        window = self.window_start(now)
        reset_at = window + self.window_seconds
        retry_after = max(1, math.ceil(reset_at - now))

        repo_key = f"rate:{repository_id}:{window}"
        client_key = f"rate:{repository_id}:{client_id}:{window}"

        try:
            repo_count = await self.store.get(repo_key)
            client_count = await self.store.get(client_key)

            if repo_count >= self.repository_limit:
                return RateLimitInfo(False, self.repository_limit, 0, reset_at, retry_after)
            if client_count >= self.client_limit:
                return RateLimitInfo(False, self.client_limit, 0, reset_at, retry_after)

            repo_count = await self.store.increment(repo_key, self.window_seconds)
            client_count = await self.store.increment(client_key, self.window_seconds)
        except (CounterStoreError, OSError) as e:
            logger.warning(
                "rate_limit_store_unavailable",
                repository_id=repository_id,
                error=str(e),
            )
            return RateLimitInfo(True, self.repository_limit, self.repository_limit, reset_at)

        repo_remaining = max(0, self.repository_limit - repo_count)
        client_remaining = max(0, self.client_limit - client_count)
        if client_remaining < repo_remaining:
            return RateLimitInfo(True, self.client_limit, client_remaining, reset_at)
        return RateLimitInfo(True, self.repository_limit, repo_remaining, reset_at)

    async def peek(self, repository_id: str | None = None) -> RateLimitInfo:
        """Report the repository ceiling for the current window without counting.

        Used for responses that are rejected before a call is counted. With no
        repository, or an unavailable store, the full limit is reported.
        """
        now = self._clock()
        window = self.window_start(now)
        reset_at = window + self.window_seconds
        used = 0
        if repository_id is not None:
            try:
                used = await self.store.get(f"rate:{repository_id}:{window}")
            except (CounterStoreError, OSError) as e:
                logger.warning(
                    "rate_limit_store_unavailable",
                    repository_id=repository_id,
                    error=str(e),
                )
        remaining = max(0, self.repository_limit - used)
        return RateLimitInfo(True, self.repository_limit, remaining, reset_at)
