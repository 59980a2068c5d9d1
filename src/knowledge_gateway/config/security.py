"""Security configuration settings."""

import secrets

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SecuritySettings(BaseSettings):
    """Security-specific configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="KBGW_",
        case_sensitive=False,
        extra="ignore",
    )

    token_pepper: str | None = Field(
        default=None,
        description="Key for hashing stored credentials (auto-generated if not set)",
    )

    token_pepper_generated: bool = Field(
        default=False,
        description="Whether the token pepper was auto-generated",
    )

    session_secret: str | None = Field(
        default=None,
        description="Secret key for signing principal session JWTs (auto-generated if not set)",
    )

    session_secret_generated: bool = Field(
        default=False,
        description="Whether the session secret was auto-generated",
    )

    session_cookie_name: str = Field(
        default="kbgw_session",
        description="Cookie carrying the principal session token",
    )

    session_ttl_hours: int = Field(
        default=24,
        ge=1,
        le=24 * 90,
        description="Lifetime of principal session tokens issued by the CLI",
    )

    @model_validator(mode="after")
    def ensure_secrets(self) -> "SecuritySettings":
        """Generate secrets that were not provided.

        Generated secrets do not survive a restart: every stored token hash
        and every session becomes invalid, so production deployments set both.
        """
        if not self.token_pepper:
            self.token_pepper = secrets.token_hex(32)
            self.token_pepper_generated = True
        if not self.session_secret:
            self.session_secret = secrets.token_hex(32)
            self.session_secret_generated = True
        return self
