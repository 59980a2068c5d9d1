"""CORS configuration settings."""

from pydantic import BaseModel, Field, field_validator, model_validator


def _split_csv(value: str | list[str]) -> list[str]:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class CORSSettings(BaseModel):
    """CORS settings.

    Assistant clients call the gateway and token endpoints from arbitrary
    origins, so the defaults are permissive. Credentials are never allowed
    together with a wildcard origin.
    """

    origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="CORS allowed origins",
    )

    credentials: bool = Field(
        default=False,
        description="CORS allow credentials (disabled for wildcard origins)",
    )

    methods: list[str] = Field(
        default_factory=lambda: ["GET", "POST", "DELETE", "OPTIONS"],
        description="CORS allowed methods",
    )

    headers: list[str] = Field(
        default_factory=lambda: ["Content-Type", "Authorization", "Mcp-Session-Id"],
        description="CORS allowed headers",
    )

    expose_headers: list[str] = Field(
        default_factory=lambda: [
            "Mcp-Session-Id",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
        ],
        description="CORS exposed headers",
    )

    max_age: int = Field(
        default=86400,
        description="CORS preflight max age in seconds",
        ge=0,
    )

    @field_validator("origins", "headers", "expose_headers", mode="before")
    @classmethod
    def parse_csv(cls, v: str | list[str]) -> list[str]:
        """Accept comma-separated strings from the environment."""
        return _split_csv(v)

    @field_validator("methods", mode="before")
    @classmethod
    def parse_methods(cls, v: str | list[str]) -> list[str]:
        return [method.upper() for method in _split_csv(v)]

    @model_validator(mode="after")
    def validate_wildcard_credentials(self) -> "CORSSettings":
        if "*" in self.origins and self.credentials:
            object.__setattr__(self, "credentials", False)
        return self
