"""OAuth credential lifetimes."""

from datetime import timedelta

from pydantic import BaseModel, Field


class OAuthSettings(BaseModel):
    """Lifetimes of the credentials issued by the authorization server."""

    access_token_ttl: int = Field(
        default=3600, ge=60, description="Access token lifetime in seconds"
    )

    refresh_token_ttl: int = Field(
        default=30 * 24 * 3600,
        ge=3600,
        description="Refresh token lifetime in seconds",
    )

    code_ttl: int = Field(
        default=600, ge=30, le=3600, description="Authorization code lifetime in seconds"
    )

    install_token_ttl: int = Field(
        default=30 * 24 * 3600,
        ge=3600,
        description="Lifetime of access-only install tokens in seconds",
    )

    @property
    def access_token_lifetime(self) -> timedelta:
        return timedelta(seconds=self.access_token_ttl)

    @property
    def refresh_token_lifetime(self) -> timedelta:
        return timedelta(seconds=self.refresh_token_ttl)

    @property
    def code_lifetime(self) -> timedelta:
        return timedelta(seconds=self.code_ttl)

    @property
    def install_token_lifetime(self) -> timedelta:
        return timedelta(seconds=self.install_token_ttl)
