"""Gateway rate limiting configuration."""

from pydantic import BaseModel, Field


class RateLimitSettings(BaseModel):
    """Fixed-window request ceilings for the protocol gateway."""

    enabled: bool = Field(default=True, description="Enable gateway rate limiting")

    repository_limit: int = Field(
        default=60, ge=1, description="Requests per window per repository"
    )

    client_limit: int = Field(
        default=30, ge=1, description="Requests per window per repository and client"
    )

    window_seconds: int = Field(
        default=60, ge=1, description="Length of a rate-limit window in seconds"
    )

    max_tracked_keys: int = Field(
        default=100_000,
        ge=100,
        description="Upper bound on in-memory counters",
    )
