"""One-step install tokens for subscribers."""

import orjson
import pydantic
from fastapi import APIRouter, Request
from starlette import status

from knowledge_gateway.api.dependencies import InstallServiceDep, Principal
from knowledge_gateway.exceptions import ValidationError
from knowledge_gateway.oauth.models import InstallToken, InstallTokenCreate


router = APIRouter(tags=["install"])


@router.post(
    "/repositories/{slug}/install-token",
    status_code=status.HTTP_201_CREATED,
    response_model=InstallToken,
)
async def create_install_token(
    slug: str,
    request: Request,
    principal_id: Principal,
    service: InstallServiceDep,
) -> InstallToken:
    """Mint a long-lived access token for an entitled subscriber.

    The body is optional; ``client_type`` defaults to ``claude-desktop``.
    """
    body = await request.body()
    try:
        payload = (
            InstallTokenCreate.model_validate(orjson.loads(body))
            if body
            else InstallTokenCreate()
        )
    except (orjson.JSONDecodeError, pydantic.ValidationError) as e:
        raise ValidationError("Invalid install token request") from e
    return await service.create(slug, principal_id, payload.client_type)
