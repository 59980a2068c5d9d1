"""Shared fixtures: temporary databases and data factories."""

import tempfile
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from knowledge_gateway.auth import TokenCodec, TokenKind
from knowledge_gateway.db import close_db, init_db
from knowledge_gateway.db.models import OAuthClient, PricingModel, Repository, Visibility
from knowledge_gateway.db.repositories import (
    ClientRepository,
    RepositoryRepository,
    TokenRepository,
)


TEST_PEPPER = "test-pepper-for-hashing-credentials-0123456789"
TEST_SESSION_SECRET = "test-session-secret-32-chars-long!!"
OWNER_ID = "owner-1"
SUBSCRIBER_ID = "subscriber-1"


@pytest.fixture
async def db() -> AsyncIterator[Path]:
    """Initialize a temporary database for the duration of one test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        await init_db(db_path)
        yield db_path
        await close_db()


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(TEST_PEPPER)


@pytest.fixture
def make_repository(db: Path) -> Callable[..., Awaitable[Repository]]:
    """Factory creating repositories; public, free and gateway-enabled by default."""
    counter = 0

    async def factory(**overrides: Any) -> Repository:
        nonlocal counter
        counter += 1
        values: dict[str, Any] = {
            "owner_id": OWNER_ID,
            "name": f"Repository {counter}",
            "slug": f"repo-{counter}",
            "description": "Test knowledge base",
            "visibility": Visibility.PUBLIC,
            "pricing_model": PricingModel.FREE,
            "gateway_enabled": True,
        }
        values.update(overrides)
        return await RepositoryRepository().create(**values)

    return factory


@pytest.fixture
def make_client(
    db: Path, codec: TokenCodec
) -> Callable[..., Awaitable[OAuthClient]]:
    """Factory registering clients directly in the store."""

    async def factory(repository: Repository, **overrides: Any) -> OAuthClient:
        values: dict[str, Any] = {
            "client_id": codec.generate(TokenKind.CLIENT_ID),
            "client_secret_hash": codec.hash("secret"),
            "repository_id": repository.id,
            "owner_id": repository.owner_id,
            "name": "Test client",
            "redirect_uris": ["https://app.example.com/callback"],
            "scopes": ["search", "list_sources", "get_info"],
        }
        values.update(overrides)
        return await ClientRepository().create(**values)

    return factory


@pytest.fixture
def issue_access_token(
    db: Path, codec: TokenCodec
) -> Callable[..., Awaitable[str]]:
    """Store an access token for ``client`` and return its plaintext."""

    async def factory(
        client: OAuthClient,
        *,
        principal_id: str | None = None,
        scopes: list[str] | None = None,
        expires_in: timedelta = timedelta(hours=1),
        subscription_id: str | None = None,
    ) -> str:
        token = codec.generate(TokenKind.ACCESS, client.repository_id)
        await TokenRepository().create(
            client_id=client.client_id,
            repository_id=client.repository_id,
            principal_id=principal_id or client.owner_id,
            access_token_hash=codec.hash(token),
            refresh_token_hash=None,
            scopes=scopes if scopes is not None else list(client.scopes),
            expires_at=datetime.now(UTC) + expires_in,
            refresh_expires_at=None,
            subscription_id=subscription_id,
        )
        return token

    return factory
