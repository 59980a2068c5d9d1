"""Subscription repository for database operations."""

from datetime import UTC, datetime

import structlog
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from knowledge_gateway.db.engine import get_session
from knowledge_gateway.db.models import Subscription, SubscriptionStatus


logger = structlog.get_logger(__name__)


class SubscriptionRepository:
    """Repository for subscriber entitlements."""

    async def get(self, subscription_id: str) -> Subscription | None:
        async with get_session() as session:
            return await session.get(Subscription, subscription_id)

    async def get_for_subscriber(
        self, repository_id: str, subscriber_id: str
    ) -> Subscription | None:
        """Get the subscription for a (repository, subscriber) pair."""
        async with get_session() as session:
            result = await session.execute(
                select(Subscription).where(
                    Subscription.repository_id == repository_id,
                    Subscription.subscriber_id == subscriber_id,
                )
            )
            return result.scalar_one_or_none()

    async def create(
        self,
        repository_id: str,
        subscriber_id: str,
        *,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        current_period_end: datetime | None = None,
    ) -> Subscription:
        """Insert a subscription; raises IntegrityError if the pair exists."""
        async with get_session() as session:
            subscription = Subscription(
                repository_id=repository_id,
                subscriber_id=subscriber_id,
                status=status,
                current_period_start=datetime.now(UTC),
                current_period_end=current_period_end,
            )
            session.add(subscription)
            await session.commit()
            await session.refresh(subscription)
            return subscription

    async def get_or_create_free(
        self, repository_id: str, subscriber_id: str
    ) -> Subscription:
        """Return the pair's subscription, creating an active one if absent.

        Concurrent creators race on the unique constraint; the loser fetches
        the winner's row.
        """
        existing = await self.get_for_subscriber(repository_id, subscriber_id)
        if existing is not None:
            return existing
        try:
            subscription = await self.create(repository_id, subscriber_id)
            logger.info(
                "free_subscription_created",
                repository_id=repository_id,
                subscriber_id=subscriber_id,
            )
            return subscription
        except IntegrityError:
            logger.debug(
                "free_subscription_exists",
                repository_id=repository_id,
                subscriber_id=subscriber_id,
            )
        existing = await self.get_for_subscriber(repository_id, subscriber_id)
        if existing is None:
            raise RuntimeError("Subscription vanished after unique-constraint conflict")
        return existing

    async def upsert_for_subscriber(
        self,
        repository_id: str,
        subscriber_id: str,
        *,
        status: SubscriptionStatus,
        external_subscription_id: str | None = None,
        external_customer_id: str | None = None,
        current_period_start: datetime | None = None,
        current_period_end: datetime | None = None,
    ) -> Subscription:
        """Create or update the (repository, subscriber) subscription."""
        async with get_session() as session:
            result = await session.execute(
                select(Subscription).where(
                    Subscription.repository_id == repository_id,
                    Subscription.subscriber_id == subscriber_id,
                )
            )
            subscription = result.scalar_one_or_none()
            if subscription is None:
                subscription = Subscription(
                    repository_id=repository_id, subscriber_id=subscriber_id
                )
            subscription.status = status
            subscription.canceled_at = None
            subscription.updated_at = datetime.now(UTC)
            if external_subscription_id is not None:
                subscription.external_subscription_id = external_subscription_id
            if external_customer_id is not None:
                subscription.external_customer_id = external_customer_id
            if current_period_start is not None:
                subscription.current_period_start = current_period_start
            if current_period_end is not None:
                subscription.current_period_end = current_period_end
            session.add(subscription)
            await session.commit()
            await session.refresh(subscription)
            return subscription

    async def update_by_external_id(
        self,
        external_subscription_id: str,
        *,
        status: SubscriptionStatus,
        current_period_start: datetime | None = None,
        current_period_end: datetime | None = None,
        canceled_at: datetime | None = None,
    ) -> Subscription | None:
        """Apply a billing status change. Returns None for unknown ids."""
        async with get_session() as session:
            result = await session.execute(
                select(Subscription).where(
                    Subscription.external_subscription_id == external_subscription_id
                )
            )
            subscription = result.scalar_one_or_none()
            if subscription is None:
                return None
            subscription.status = status
            subscription.updated_at = datetime.now(UTC)
            if current_period_start is not None:
                subscription.current_period_start = current_period_start
            if current_period_end is not None:
                subscription.current_period_end = current_period_end
            if canceled_at is not None:
                subscription.canceled_at = canceled_at
            session.add(subscription)
            await session.commit()
            await session.refresh(subscription)
            return subscription
