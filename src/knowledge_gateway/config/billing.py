"""Billing event ingress configuration."""

from pydantic import BaseModel, Field


class BillingSettings(BaseModel):
    """Settings for the signed billing webhook."""

    webhook_secret: str | None = Field(
        default=None,
        description="HMAC secret shared with the billing processor (webhook disabled when unset)",
    )
