"""Gateway rate limiting."""

from knowledge_gateway.ratelimit.limiter import RateLimiter, RateLimitInfo
from knowledge_gateway.ratelimit.store import CounterStore, InMemoryCounterStore


__all__ = ["CounterStore", "InMemoryCounterStore", "RateLimitInfo", "RateLimiter"]
