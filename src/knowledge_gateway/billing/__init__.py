"""Billing processor integration."""

from knowledge_gateway.billing.events import (
    BillingEvent,
    BillingEventHandler,
    map_status,
    sign_payload,
    verify_signature,
)


__all__ = [
    "BillingEvent",
    "BillingEventHandler",
    "map_status",
    "sign_payload",
    "verify_signature",
]
