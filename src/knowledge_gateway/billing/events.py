"""Billing processor events.

The billing processor owns payment state; these events are how subscription
status changes reach the gateway. Payloads are signed with a shared secret
(``X-Billing-Signature: sha256=<hex>`` over the raw body).
"""

import hashlib
import hmac
from datetime import UTC, datetime
from typing import Any

import structlog
from pydantic import BaseModel, Field

from knowledge_gateway.db.models import SubscriptionStatus
from knowledge_gateway.db.repositories import SubscriptionRepository
from knowledge_gateway.exceptions import ValidationError


logger = structlog.get_logger(__name__)

SIGNATURE_PREFIX = "sha256="

# Processor status vocabulary -> local status
_STATUS_MAP: dict[str, SubscriptionStatus] = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.TRIALING,
    "past_due": SubscriptionStatus.PAST_DUE,
    "unpaid": SubscriptionStatus.PAST_DUE,
    "incomplete": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELED,
    "incomplete_expired": SubscriptionStatus.EXPIRED,
    "expired": SubscriptionStatus.EXPIRED,
}


def map_status(value: str) -> SubscriptionStatus:
    return _STATUS_MAP.get(value, SubscriptionStatus.EXPIRED)


def sign_payload(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(body: bytes, signature: str | None, secret: str) -> bool:
    if not signature or not signature.startswith(SIGNATURE_PREFIX):
        return False
    return hmac.compare_digest(sign_payload(body, secret), signature)


def _from_epoch(value: int | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(value, UTC)
    except (OverflowError, OSError) as e:
        raise ValueError(f"timestamp out of range: {value}") from e


class BillingEvent(BaseModel):
    type: str
    data: dict[str, Any] = Field(default_factory=dict)


class CheckoutCompleted(BaseModel):
    repository_id: str
    subscriber_id: str
    subscription_id: str
    customer_id: str | None = None
    status: str = "active"
    current_period_start: int | None = None
    current_period_end: int | None = None


class SubscriptionChanged(BaseModel):
    subscription_id: str
    status: str = "active"
    current_period_start: int | None = None
    current_period_end: int | None = None
    canceled_at: int | None = None


class SubscriptionReference(BaseModel):
    subscription_id: str


class BillingEventHandler:
    """Applies billing events to subscription records."""

    def __init__(self, subscriptions: SubscriptionRepository | None = None) -> None:
        self.subscriptions = subscriptions or SubscriptionRepository()

    async def handle(self, event: BillingEvent) -> bool:
        """Apply ``event``. Returns False for event types that are ignored.

        Raises:
            ValidationError: the event data does not match its type
        """
        try:
            if event.type == "checkout.completed":
                await self._checkout_completed(CheckoutCompleted(**event.data))
            elif event.type == "subscription.updated":
                await self._subscription_updated(SubscriptionChanged(**event.data))
            elif event.type == "subscription.deleted":
                ref = SubscriptionReference(**event.data)
                await self._set_status(
                    ref.subscription_id,
                    SubscriptionStatus.EXPIRED,
                    canceled_at=datetime.now(UTC),
                )
            elif event.type == "invoice.payment_failed":
                ref = SubscriptionReference(**event.data)
                await self._set_status(ref.subscription_id, SubscriptionStatus.PAST_DUE)
            else:
                logger.info("billing_event_ignored", event_type=event.type)
                return False
        except ValueError as e:
            raise ValidationError(f"Invalid {event.type} event: {e}") from e
        return True

    async def _checkout_completed(self, data: CheckoutCompleted) -> None:
        subscription = await self.subscriptions.upsert_for_subscriber(
            data.repository_id,
            data.subscriber_id,
            status=map_status(data.status),
            external_subscription_id=data.subscription_id,
            external_customer_id=data.customer_id,
            current_period_start=_from_epoch(data.current_period_start),
            current_period_end=_from_epoch(data.current_period_end),
        )
        logger.info(
            "billing_subscription_created",
            subscription_id=subscription.id,
            repository_id=data.repository_id,
            status=subscription.status,
        )

    async def _subscription_updated(self, data: SubscriptionChanged) -> None:
        await self._set_status(
            data.subscription_id,
            map_status(data.status),
            current_period_start=_from_epoch(data.current_period_start),
            current_period_end=_from_epoch(data.current_period_end),
            canceled_at=_from_epoch(data.canceled_at),
        )

    async def _set_status(
        self,
        external_subscription_id: str,
        status: SubscriptionStatus,
        **changes: datetime | None,
    ) -> None:
        subscription = await self.subscriptions.update_by_external_id(
            external_subscription_id, status=status, **changes
        )
        if subscription is None:
            logger.warning(
                "billing_subscription_unknown",
                external_subscription_id=external_subscription_id,
            )
            return
        logger.info(
            "billing_subscription_status_changed",
            subscription_id=subscription.id,
            status=status,
        )
