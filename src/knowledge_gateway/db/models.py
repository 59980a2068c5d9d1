"""SQLModel database models.

Enumerated columns are stored as their string values; the enums below are
the closed sets accepted at the boundary.
"""

from datetime import UTC, datetime
from enum import StrEnum
from uuid import uuid4

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


def _uuid() -> str:
    return str(uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class Visibility(StrEnum):
    PRIVATE = "private"
    PUBLIC = "public"


class PricingModel(StrEnum):
    FREE = "free"
    PAID = "paid"


class SubscriptionStatus(StrEnum):
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    EXPIRED = "expired"


ENTITLING_STATUSES = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING})


class SourceType(StrEnum):
    FILE = "file"
    URL = "url"


class SourceStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Repository(SQLModel, table=True):
    """Content repository (knowledge base) exposed through the gateway."""

    __tablename__ = "repositories"

    id: str = Field(default_factory=_uuid, primary_key=True)
    owner_id: str = Field(index=True)
    name: str
    description: str | None = None
    slug: str = Field(unique=True, index=True)
    visibility: str = Field(default=Visibility.PRIVATE)
    pricing_model: str = Field(default=PricingModel.FREE)
    price_cents: int | None = None
    gateway_enabled: bool = Field(default=False)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def is_public(self) -> bool:
        return self.visibility == Visibility.PUBLIC

    @property
    def is_paid(self) -> bool:
        return self.pricing_model == PricingModel.PAID


class Source(SQLModel, table=True):
    """Ingested source document; written by the ingestion pipeline."""

    __tablename__ = "sources"

    id: str = Field(default_factory=_uuid, primary_key=True)
    repository_id: str = Field(foreign_key="repositories.id", index=True)
    type: str = Field(default=SourceType.FILE)
    name: str
    url: str | None = None
    file_size: int | None = None
    mime_type: str | None = None
    status: str = Field(default=SourceStatus.PENDING)
    created_at: datetime = Field(default_factory=_now)


class OAuthClient(SQLModel, table=True):
    """Registered OAuth client bound to one repository."""

    __tablename__ = "oauth_clients"

    id: str = Field(default_factory=_uuid, primary_key=True)
    client_id: str = Field(unique=True, index=True)
    client_secret_hash: str
    repository_id: str = Field(foreign_key="repositories.id", index=True)
    owner_id: str = Field(index=True)
    name: str
    redirect_uris: list[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    scopes: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=_now)
    revoked_at: datetime | None = None

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None


class AuthorizationCode(SQLModel, table=True):
    """Single-use authorization code (stored hashed)."""

    __tablename__ = "oauth_codes"

    id: str = Field(default_factory=_uuid, primary_key=True)
    code_hash: str = Field(unique=True, index=True)
    client_id: str = Field(index=True)
    repository_id: str = Field(foreign_key="repositories.id")
    principal_id: str
    redirect_uri: str
    scopes: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    code_challenge: str
    code_challenge_method: str = Field(default="S256")
    expires_at: datetime
    used_at: datetime | None = None
    created_at: datetime = Field(default_factory=_now)


class OAuthToken(SQLModel, table=True):
    """Access/refresh token pair (stored hashed)."""

    __tablename__ = "oauth_tokens"

    id: str = Field(default_factory=_uuid, primary_key=True)
    client_id: str = Field(index=True)
    repository_id: str = Field(foreign_key="repositories.id", index=True)
    principal_id: str = Field(index=True)
    access_token_hash: str = Field(unique=True, index=True)
    refresh_token_hash: str | None = Field(default=None, unique=True, index=True)
    scopes: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    expires_at: datetime
    refresh_expires_at: datetime | None = None
    subscription_id: str | None = Field(default=None, foreign_key="subscriptions.id")
    created_at: datetime = Field(default_factory=_now)
    last_used_at: datetime | None = None


class Subscription(SQLModel, table=True):
    """Subscriber entitlement to one repository."""

    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint("repository_id", "subscriber_id", name="uq_subscription_owner"),
    )

    id: str = Field(default_factory=_uuid, primary_key=True)
    repository_id: str = Field(foreign_key="repositories.id", index=True)
    subscriber_id: str = Field(index=True)
    external_subscription_id: str | None = Field(default=None, unique=True, index=True)
    external_customer_id: str | None = None
    status: str = Field(default=SubscriptionStatus.ACTIVE)
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    canceled_at: datetime | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class RequestLog(SQLModel, table=True):
    """Append-only record of one gateway call."""

    __tablename__ = "request_logs"

    id: str = Field(default_factory=_uuid, primary_key=True)
    repository_id: str = Field(foreign_key="repositories.id", index=True)
    client_id: str | None = None
    method: str
    query: str | None = None
    duration_ms: int
    status_code: int
    error_message: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime = Field(default_factory=_now, index=True)
