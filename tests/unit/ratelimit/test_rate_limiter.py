"""Tests for the fixed-window rate limiter."""

import pytest

from knowledge_gateway.exceptions import CounterStoreError
from knowledge_gateway.ratelimit import InMemoryCounterStore, RateLimiter


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FailingStore:
    async def get(self, key: str) -> int:
        raise CounterStoreError("down")

    async def increment(self, key: str, ttl_seconds: int) -> int:
        raise CounterStoreError("down")


def make_limiter(clock: FakeClock, repository_limit: int = 60, client_limit: int = 30):
    return RateLimiter(
        InMemoryCounterStore(ttl_seconds=60),
        repository_limit=repository_limit,
        client_limit=client_limit,
        window_seconds=60,
        clock=clock,
    )


class TestRateLimiter:
    def test_window_alignment(self) -> None:
        limiter = make_limiter(FakeClock(125.0))
        assert limiter.window_start() == 120
        assert limiter.window_start(59.9) == 0

    @pytest.mark.asyncio
    async def test_repository_limit(self) -> None:
        """The 61st call in a window is rejected; the next window resets."""
        clock = FakeClock(6000.0)
        limiter = make_limiter(clock, repository_limit=60, client_limit=1000)

        for i in range(60):
            info = await limiter.check("repo", f"client-{i % 3}")
            assert info.allowed

        rejected = await limiter.check("repo", "client-0")
        assert not rejected.allowed
        assert rejected.limit == 60
        assert rejected.remaining == 0
        assert rejected.reset_at == 6060
        assert rejected.headers()["Retry-After"] == "60"

        clock.now = 6060.0
        assert (await limiter.check("repo", "client-0")).allowed

    @pytest.mark.asyncio
    async def test_client_limit(self) -> None:
        """One client hitting its ceiling does not block other clients."""
        limiter = make_limiter(FakeClock(), client_limit=2)

        assert (await limiter.check("repo", "a")).allowed
        assert (await limiter.check("repo", "a")).allowed
        rejected = await limiter.check("repo", "a")
        assert not rejected.allowed
        assert rejected.limit == 2
        assert (await limiter.check("repo", "b")).allowed

    @pytest.mark.asyncio
    async def test_rejected_calls_not_counted(self) -> None:
        """Rejections do not consume repository capacity."""
        limiter = make_limiter(FakeClock(), repository_limit=3, client_limit=1)

        assert (await limiter.check("repo", "a")).allowed
        for _ in range(5):
            assert not (await limiter.check("repo", "a")).allowed
        assert (await limiter.check("repo", "b")).allowed
        assert (await limiter.check("repo", "c")).allowed

    @pytest.mark.asyncio
    async def test_reports_most_restrictive_counter(self) -> None:
        limiter = make_limiter(FakeClock(120.0), repository_limit=60, client_limit=30)
        info = await limiter.check("repo", "a")

        assert info.limit == 30
        assert info.remaining == 29
        headers = info.headers()
        assert headers["X-RateLimit-Limit"] == "30"
        assert headers["X-RateLimit-Remaining"] == "29"
        assert headers["X-RateLimit-Reset"] == "180"
        assert "Retry-After" not in headers

    @pytest.mark.asyncio
    async def test_repositories_are_independent(self) -> None:
        limiter = make_limiter(FakeClock(), repository_limit=1)
        assert (await limiter.check("one", "a")).allowed
        assert not (await limiter.check("one", "a")).allowed
        assert (await limiter.check("two", "a")).allowed

    @pytest.mark.asyncio
    async def test_fails_open_when_store_unavailable(self) -> None:
        limiter = RateLimiter(FailingStore(), clock=FakeClock())
        info = await limiter.check("repo", "a")
        assert info.allowed

    @pytest.mark.asyncio
    async def test_peek_does_not_count(self) -> None:
        limiter = make_limiter(FakeClock(120.0), repository_limit=5)
        await limiter.check("repo", "a")

        for _ in range(3):
            info = await limiter.peek("repo")
            assert info.allowed
            assert info.remaining == 4
        assert info.headers() == {
            "X-RateLimit-Limit": "5",
            "X-RateLimit-Remaining": "4",
            "X-RateLimit-Reset": "180",
        }
        assert (await limiter.check("repo", "a")).remaining == 3

    @pytest.mark.asyncio
    async def test_peek_without_repository_reports_full_limit(self) -> None:
        limiter = make_limiter(FakeClock(120.0), repository_limit=5)
        assert (await limiter.peek()).remaining == 5
        failing = RateLimiter(FailingStore(), repository_limit=7, clock=FakeClock())
        assert (await failing.peek("repo")).remaining == 7


class TestInMemoryCounterStore:
    @pytest.mark.asyncio
    async def test_increment_and_get(self) -> None:
        store = InMemoryCounterStore(ttl_seconds=60)
        assert await store.get("k") == 0
        assert await store.increment("k", 60) == 1
        assert await store.increment("k", 60) == 2
        assert await store.get("k") == 2

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        store = InMemoryCounterStore(ttl_seconds=60)
        await store.increment("k", 60)
        store.clear()
        assert await store.get("k") == 0
