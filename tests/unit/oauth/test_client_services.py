"""Tests for client registration, revocation of tokens and install tokens."""

import time

import pytest

from knowledge_gateway.config.oauth import OAuthSettings
from knowledge_gateway.db.models import PricingModel, SubscriptionStatus, Visibility
from knowledge_gateway.db.repositories import (
    ClientRepository,
    SubscriptionRepository,
    TokenRepository,
)
from knowledge_gateway.exceptions import (
    InsufficientPermissionsError,
    NotFoundError,
    OAuthErrorCode,
    OAuthProtocolError,
    RepositoryNotFoundError,
    ValidationError,
)
from knowledge_gateway.oauth import ClientService, InstallTokenService, RevocationService
from knowledge_gateway.oauth.models import ClientCreate


ISSUER = "https://gateway.example.com"


@pytest.fixture
def local_zone_ahead(monkeypatch):
    """Run with the process local time zone five hours ahead of UTC."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    with monkeypatch.context() as patch:
        patch.setenv("TZ", "KGT-05")
        time.tzset()
        yield
    time.tzset()


class TestClientService:
    """Registration, listing and revocation of OAuth clients."""

    @pytest.mark.asyncio
    async def test_register_returns_secret_once(self, db, codec, make_repository):
        repository = await make_repository()
        service = ClientService(codec, ISSUER)

        registration = await service.register(
            "owner-1",
            ClientCreate(
                repository_id=repository.id,
                name="Desktop",
                redirect_uris=["https://app.example.com/cb", "not-a-url"],
            ),
        )

        assert registration.client_id.startswith("kbgw_client_")
        assert registration.client_secret.startswith("kbgw_secret_")
        assert registration.redirect_uris == ["https://app.example.com/cb"]
        assert registration.scopes == ["search", "list_sources", "get_info"]
        assert registration.mcp_url == f"{ISSUER}/mcp/{repository.slug}"

        stored = await ClientRepository().get(registration.client_id)
        assert stored is not None
        assert stored.client_secret_hash != registration.client_secret
        assert codec.matches(registration.client_secret, stored.client_secret_hash)

    @pytest.mark.asyncio
    async def test_issued_at_is_utc_epoch(self, db, codec, make_repository, local_zone_ahead):
        repository = await make_repository()
        before = int(time.time())

        registration = await ClientService(codec, ISSUER).register(
            "owner-1", ClientCreate(repository_id=repository.id, name="Desktop")
        )

        assert before - 1 <= registration.client_id_issued_at <= int(time.time()) + 1

    @pytest.mark.asyncio
    async def test_register_filters_unknown_scopes(self, db, codec, make_repository):
        repository = await make_repository()
        registration = await ClientService(codec, ISSUER).register(
            "owner-1",
            ClientCreate(repository_id=repository.id, name="C", scopes=["search", "admin"]),
        )
        assert registration.scopes == ["search"]

    @pytest.mark.asyncio
    async def test_register_requires_ownership(self, db, codec, make_repository):
        repository = await make_repository()

        with pytest.raises(OAuthProtocolError) as exc_info:
            await ClientService(codec, ISSUER).register(
                "someone-else",
                ClientCreate(repository_id=repository.id, name="C"),
            )
        assert exc_info.value.code == OAuthErrorCode.ACCESS_DENIED
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_list_and_revoke(self, db, codec, make_repository, make_client):
        repository = await make_repository()
        client = await make_client(repository)
        service = ClientService(codec, ISSUER)

        listed = await service.list_clients("owner-1")
        assert [c.client_id for c in listed] == [client.client_id]
        assert listed[0].revoked is False

        await service.revoke("owner-1", client.client_id)
        listed = await service.list_clients("owner-1", repository.id)
        assert listed[0].revoked is True

        with pytest.raises(NotFoundError):
            await service.revoke("owner-1", client.client_id)

    @pytest.mark.asyncio
    async def test_revoke_other_owners_client(self, db, codec, make_repository, make_client):
        repository = await make_repository()
        client = await make_client(repository)

        with pytest.raises(NotFoundError):
            await ClientService(codec, ISSUER).revoke("intruder", client.client_id)


class TestRevocationService:
    @pytest.mark.asyncio
    async def test_revoke_access_token(
        self, db, codec, make_repository, make_client, issue_access_token
    ):
        repository = await make_repository()
        client = await make_client(repository)
        token = await issue_access_token(client)

        await RevocationService(codec).revoke(token, "access_token")

        assert await TokenRepository().get_by_access_hash(codec.hash(token)) is None

    @pytest.mark.asyncio
    async def test_unknown_token_is_not_an_error(self, db, codec):
        await RevocationService(codec).revoke("kbgw_at_deadbeef_nope", None)

    @pytest.mark.asyncio
    async def test_missing_token(self, db, codec):
        with pytest.raises(OAuthProtocolError) as exc_info:
            await RevocationService(codec).revoke(None, None)
        assert exc_info.value.code == OAuthErrorCode.INVALID_REQUEST


class TestInstallTokenService:
    """Install tokens for subscribers of public repositories."""

    @pytest.fixture
    def service(self, db, codec) -> InstallTokenService:
        return InstallTokenService(codec, OAuthSettings(), ISSUER)

    @pytest.mark.asyncio
    async def test_free_repository_creates_subscription(self, service, make_repository):
        repository = await make_repository()

        result = await service.create(repository.slug, "subscriber-1", "cursor")

        assert result.token.startswith(f"kbgw_at_{repository.id.split('-')[0]}_")
        assert result.client_type == "cursor"
        assert result.mcp_url == f"{ISSUER}/mcp/{repository.slug}"
        subscription = await SubscriptionRepository().get_for_subscriber(
            repository.id, "subscriber-1"
        )
        assert subscription is not None
        assert subscription.status == SubscriptionStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_paid_repository_requires_subscription(self, service, make_repository):
        repository = await make_repository(pricing_model=PricingModel.PAID, price_cents=900)

        with pytest.raises(InsufficientPermissionsError):
            await service.create(repository.slug, "subscriber-1", "cursor")

    @pytest.mark.asyncio
    async def test_private_repository_is_not_found(self, service, make_repository):
        repository = await make_repository(visibility=Visibility.PRIVATE)

        with pytest.raises(RepositoryNotFoundError):
            await service.create(repository.slug, "owner-1", "cursor")

    @pytest.mark.asyncio
    async def test_unknown_repository(self, service, db):
        with pytest.raises(RepositoryNotFoundError):
            await service.create("missing", "owner-1", "cursor")

    @pytest.mark.asyncio
    async def test_gateway_disabled(self, service, make_repository):
        repository = await make_repository(gateway_enabled=False)

        with pytest.raises(ValidationError):
            await service.create(repository.slug, "owner-1", "cursor")
