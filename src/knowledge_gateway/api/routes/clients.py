"""Client registration and management for repository owners."""

import orjson
import pydantic
from fastapi import APIRouter, Request
from fastapi.responses import Response
from starlette import status

from knowledge_gateway.api.dependencies import ClientServiceDep, Principal
from knowledge_gateway.exceptions import OAuthErrorCode, OAuthProtocolError
from knowledge_gateway.oauth.models import ClientCreate, ClientInfo, ClientRegistration


router = APIRouter(prefix="/clients", tags=["clients"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ClientRegistration)
async def register_client(
    request: Request, principal_id: Principal, service: ClientServiceDep
) -> ClientRegistration:
    """Register a client for a repository the caller owns.

    The client secret is only ever returned by this call.
    """
    try:
        payload = ClientCreate.model_validate(orjson.loads(await request.body()))
    except (orjson.JSONDecodeError, pydantic.ValidationError) as e:
        raise OAuthProtocolError(
            OAuthErrorCode.INVALID_REQUEST,
            "repository_id and name are required",
        ) from e
    return await service.register(principal_id, payload)


@router.get("", response_model=list[ClientInfo])
async def list_clients(
    principal_id: Principal,
    service: ClientServiceDep,
    repository_id: str | None = None,
) -> list[ClientInfo]:
    return await service.list_clients(principal_id, repository_id)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_client(
    client_id: str, principal_id: Principal, service: ClientServiceDep
) -> Response:
    await service.revoke(principal_id, client_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
