"""Entitlement resolution.

Decides whether a principal may use a repository through the gateway.
The checks run in a fixed order and the first one that applies wins:

1. unknown repository: denied
2. the owner: always allowed
3. private repository or gateway disabled: denied
4. free tier: allowed, creating an active subscription on first use
5. paid tier: allowed only with an entitling subscription
"""

from dataclasses import dataclass
from datetime import datetime

import structlog

from knowledge_gateway.core.timeutils import ensure_utc, utcnow
from knowledge_gateway.db.models import ENTITLING_STATUSES, Repository, Subscription
from knowledge_gateway.db.repositories import (
    RepositoryRepository,
    SubscriptionRepository,
)


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class EntitlementDecision:
    allowed: bool
    reason: str
    subscription_id: str | None = None


def subscription_grants_access(
    subscription: Subscription, now: datetime | None = None
) -> bool:
    """Active or trialing, and the paid period has not ended."""
    if subscription.status not in ENTITLING_STATUSES:
        return False
    if subscription.current_period_end is None:
        return True
    return ensure_utc(subscription.current_period_end) > (now or utcnow())


class EntitlementResolver:
    """Resolves (repository, principal) pairs to access decisions."""

    def __init__(
        self,
        repositories: RepositoryRepository | None = None,
        subscriptions: SubscriptionRepository | None = None,
    ) -> None:
        self.repositories = repositories or RepositoryRepository()
        self.subscriptions = subscriptions or SubscriptionRepository()

    async def resolve(
        self, repository_id: str, principal_id: str
    ) -> EntitlementDecision:
        repository = await self.repositories.get(repository_id)
        if repository is None:
            return EntitlementDecision(False, "repository_not_found")
        return await self.resolve_for(repository, principal_id)

    async def resolve_for(
        self, repository: Repository, principal_id: str
    ) -> EntitlementDecision:
        """Resolve against an already loaded repository."""
        if repository.owner_id == principal_id:
            return EntitlementDecision(True, "owner")

        if not repository.is_public or not repository.gateway_enabled:
            return EntitlementDecision(False, "not_available")

        if not repository.is_paid:
            subscription = await self.subscriptions.get_or_create_free(
                repository.id, principal_id
            )
            return EntitlementDecision(True, "free", subscription.id)

        subscription = await self.subscriptions.get_for_subscriber(
            repository.id, principal_id
        )
        if subscription is None:
            return EntitlementDecision(False, "no_subscription")
        if not subscription_grants_access(subscription):
            logger.info(
                "entitlement_subscription_inactive",
                repository_id=repository.id,
                subscription_id=subscription.id,
                status=subscription.status,
            )
            return EntitlementDecision(False, "subscription_inactive", subscription.id)
        return EntitlementDecision(True, "subscribed", subscription.id)

    async def verify_subscription(
        self, subscription_id: str, repository_id: str, principal_id: str
    ) -> bool:
        """Re-check a subscription linked to a token.

        The subscription must still belong to the same repository and
        subscriber.
        """
        subscription = await self.subscriptions.get(subscription_id)
        if subscription is None:
            return False
        if (
            subscription.repository_id != repository_id
            or subscription.subscriber_id != principal_id
        ):
            return False
        return subscription_grants_access(subscription)
