"""Entitlement resolution for repository access."""

from knowledge_gateway.entitlements.resolver import (
    EntitlementDecision,
    EntitlementResolver,
    subscription_grants_access,
)


__all__ = ["EntitlementDecision", "EntitlementResolver", "subscription_grants_access"]
