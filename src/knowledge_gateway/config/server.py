"""HTTP server configuration settings."""

from pydantic import BaseModel, Field, field_validator


class ServerSettings(BaseModel):
    """Server-specific configuration settings."""

    host: str = Field(default="127.0.0.1", description="Server host address")

    port: int = Field(default=8000, ge=1, le=65535, description="Server port number")

    reload: bool = Field(default=False, description="Enable auto-reload for development")

    log_level: str = Field(default="INFO", description="Logging level")

    log_file: str | None = Field(
        default=None,
        description="Optional path of a file receiving a copy of all log records",
    )

    json_logs: bool = Field(default=False, description="Render logs as JSON lines")

    public_url: str | None = Field(
        default=None,
        description="Externally visible base URL (issuer); defaults to http://host:port",
    )

    login_url: str = Field(
        default="/login",
        description="Where unauthenticated principals are sent from /authorize",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            raise ValueError(f"Invalid log level '{v}'. Must be one of: {sorted(valid)}")
        return upper

    @field_validator("public_url")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        return v.rstrip("/") if v else v
