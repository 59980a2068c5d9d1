"""Tests for bearer token validation on gateway calls."""

from datetime import timedelta

import pytest

from knowledge_gateway.db.models import PricingModel, SubscriptionStatus
from knowledge_gateway.db.repositories import (
    RepositoryRepository,
    SubscriptionRepository,
    TokenRepository,
)
from knowledge_gateway.exceptions import (
    AuthenticationRequiredError,
    InsufficientPermissionsError,
    InvalidTokenError,
    RepositoryNotFoundError,
)
from knowledge_gateway.gateway import GatewayAuthenticator


@pytest.fixture
def authenticator(db, codec) -> GatewayAuthenticator:
    return GatewayAuthenticator(codec)


class TestBearerToken:
    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer "])
    def test_missing_or_malformed(self, header) -> None:
        with pytest.raises(AuthenticationRequiredError):
            GatewayAuthenticator.bearer_token(header)

    def test_extracts_token(self) -> None:
        assert GatewayAuthenticator.bearer_token("Bearer kbgw_at_x_y") == "kbgw_at_x_y"


class TestResolveRepository:
    @pytest.mark.asyncio
    async def test_disabled_repository_is_not_found(self, authenticator, make_repository):
        repository = await make_repository(gateway_enabled=False)
        with pytest.raises(RepositoryNotFoundError):
            await authenticator.resolve_repository(repository.slug)

    @pytest.mark.asyncio
    async def test_unknown_slug(self, authenticator):
        with pytest.raises(RepositoryNotFoundError):
            await authenticator.resolve_repository("nope")


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_owner_token(
        self, authenticator, make_repository, make_client, issue_access_token
    ):
        repository = await make_repository()
        client = await make_client(repository)
        token = await issue_access_token(client, scopes=["search"])

        context = await authenticator.authenticate(repository, token)

        assert context.principal_id == "owner-1"
        assert context.client_id == client.client_id
        assert context.scopes == ["search"]

    @pytest.mark.asyncio
    async def test_wrong_prefix(self, authenticator, make_repository):
        repository = await make_repository()
        with pytest.raises(InvalidTokenError):
            await authenticator.authenticate(repository, "kbgw_rt_abc_def")

    @pytest.mark.asyncio
    async def test_unknown_token(self, authenticator, make_repository):
        repository = await make_repository()
        with pytest.raises(InvalidTokenError):
            await authenticator.authenticate(repository, "kbgw_at_abc_def")

    @pytest.mark.asyncio
    async def test_expired_token(
        self, authenticator, make_repository, make_client, issue_access_token
    ):
        repository = await make_repository()
        client = await make_client(repository)
        token = await issue_access_token(client, expires_in=timedelta(seconds=-5))

        with pytest.raises(InvalidTokenError):
            await authenticator.authenticate(repository, token)

    @pytest.mark.asyncio
    async def test_token_bound_to_other_repository(
        self, authenticator, make_repository, make_client, issue_access_token
    ):
        first = await make_repository()
        second = await make_repository()
        token = await issue_access_token(await make_client(first))

        with pytest.raises(InvalidTokenError):
            await authenticator.authenticate(second, token)

    @pytest.mark.asyncio
    async def test_free_subscriber_gets_linked_subscription(
        self, authenticator, codec, make_repository, make_client, issue_access_token
    ):
        repository = await make_repository()
        client = await make_client(repository)
        token = await issue_access_token(client, principal_id="subscriber-1")

        context = await authenticator.authenticate(repository, token)

        assert context.principal_id == "subscriber-1"
        subscription = await SubscriptionRepository().get_for_subscriber(
            repository.id, "subscriber-1"
        )
        assert subscription is not None
        stored = await TokenRepository().get_by_access_hash(codec.hash(token))
        assert stored.subscription_id == subscription.id

    @pytest.mark.asyncio
    async def test_past_due_subscription_denied(
        self, authenticator, make_repository, make_client, issue_access_token
    ):
        repository = await make_repository(pricing_model=PricingModel.PAID, price_cents=500)
        client = await make_client(repository)
        subscription = await SubscriptionRepository().create(
            repository.id, "subscriber-1", status=SubscriptionStatus.PAST_DUE
        )
        token = await issue_access_token(
            client, principal_id="subscriber-1", subscription_id=subscription.id
        )

        with pytest.raises(InsufficientPermissionsError):
            await authenticator.authenticate(repository, token)

    @pytest.mark.asyncio
    async def test_active_paid_subscription_allowed(
        self, authenticator, make_repository, make_client, issue_access_token
    ):
        repository = await make_repository(pricing_model=PricingModel.PAID, price_cents=500)
        client = await make_client(repository)
        subscription = await SubscriptionRepository().create(repository.id, "subscriber-1")
        token = await issue_access_token(
            client, principal_id="subscriber-1", subscription_id=subscription.id
        )

        context = await authenticator.authenticate(repository, token)
        assert context.principal_id == "subscriber-1"

    @pytest.mark.asyncio
    async def test_subscriber_denied_after_gateway_disabled(
        self, authenticator, make_repository, make_client, issue_access_token
    ):
        repository = await make_repository()
        client = await make_client(repository)
        token = await issue_access_token(client, principal_id="subscriber-1")
        await RepositoryRepository().set_gateway_enabled(repository.slug, False)
        repository.gateway_enabled = False

        with pytest.raises(InsufficientPermissionsError):
            await authenticator.authenticate(repository, token)
