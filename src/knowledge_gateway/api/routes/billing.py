"""Billing processor webhook."""

import orjson
import pydantic
from fastapi import APIRouter, Request
from structlog import get_logger

from knowledge_gateway.api.dependencies import BillingHandlerDep, SettingsDep
from knowledge_gateway.billing import BillingEvent, verify_signature
from knowledge_gateway.exceptions import ServiceUnavailableError, ValidationError


logger = get_logger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])

SIGNATURE_HEADER = "x-billing-signature"


@router.post("/events")
async def billing_events(
    request: Request, settings: SettingsDep, handler: BillingHandlerDep
) -> dict[str, bool]:
    """Apply a signed subscription lifecycle event."""
    secret = settings.billing.webhook_secret
    if not secret:
        raise ServiceUnavailableError("Billing events are not configured")

    body = await request.body()
    if not verify_signature(body, request.headers.get(SIGNATURE_HEADER), secret):
        logger.warning("billing_signature_invalid")
        raise ValidationError("Invalid billing event signature")

    try:
        event = BillingEvent.model_validate(orjson.loads(body))
    except (orjson.JSONDecodeError, pydantic.ValidationError) as e:
        raise ValidationError("Malformed billing event") from e

    handled = await handler.handle(event)
    logger.info("billing_event_received", event_type=event.type, handled=handled)
    return {"received": True}
