"""Pydantic models for the OAuth endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field


class TokenResponse(BaseModel):
    """Successful token endpoint response (RFC 6749 section 5.1)."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_token: str | None = None
    scope: str


class ClientCreate(BaseModel):
    """Input model for registering a client."""

    repository_id: str = Field(..., min_length=1, description="Repository the client may access")
    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    redirect_uris: list[str] = Field(default_factory=list)
    scopes: list[str] | None = Field(
        default=None, description="Requested scopes (defaults to all scopes)"
    )


class RepositorySummary(BaseModel):
    id: str
    name: str
    slug: str


class ClientRegistration(BaseModel):
    """Returned once at registration; the secret is never shown again."""

    client_id: str
    client_secret: str
    client_id_issued_at: int
    name: str
    redirect_uris: list[str]
    scopes: list[str]
    repository: RepositorySummary
    mcp_url: str


class ClientInfo(BaseModel):
    """Client listing entry."""

    client_id: str
    name: str
    repository_id: str
    redirect_uris: list[str]
    scopes: list[str]
    created_at: datetime
    revoked: bool
    revoked_at: datetime | None = None


class InstallTokenCreate(BaseModel):
    client_type: str = Field(default="claude-desktop", min_length=1, max_length=64)


class InstallToken(BaseModel):
    token: str
    client_type: str
    expires_at: datetime
    repository: RepositorySummary
    mcp_url: str
