"""OAuth 2.1 authorization server endpoints."""

from typing import Any
from urllib.parse import quote, urlencode

import orjson
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from starlette import status
from structlog import get_logger

from knowledge_gateway.api.dependencies import (
    AuthorizationServiceDep,
    OptionalPrincipal,
    RevocationServiceDep,
    SettingsDep,
    TokenServiceDep,
)
from knowledge_gateway.api.middleware.errors import NO_STORE_HEADERS
from knowledge_gateway.auth.redirects import is_absolute_url
from knowledge_gateway.exceptions import OAuthErrorCode, OAuthProtocolError
from knowledge_gateway.oauth import AuthorizationRequest


logger = get_logger(__name__)

router = APIRouter(tags=["oauth"])

AUTHORIZE_PARAMS = (
    "client_id",
    "redirect_uri",
    "response_type",
    "scope",
    "state",
    "code_challenge",
    "code_challenge_method",
)


async def read_params(request: Request) -> dict[str, str]:
    """Read a form-encoded or JSON request body into a flat dict.

    Raises:
        OAuthProtocolError: the body is neither a form nor a JSON object
    """
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type in ("application/x-www-form-urlencoded", "multipart/form-data"):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    if content_type == "application/json":
        try:
            body = orjson.loads(await request.body())
        except orjson.JSONDecodeError as e:
            raise OAuthProtocolError(
                OAuthErrorCode.INVALID_REQUEST, "Request body is not valid JSON"
            ) from e
        if not isinstance(body, dict):
            raise OAuthProtocolError(
                OAuthErrorCode.INVALID_REQUEST, "Request body must be a JSON object"
            )
        return {key: str(value) for key, value in body.items() if value is not None}

    raise OAuthProtocolError(
        OAuthErrorCode.INVALID_REQUEST,
        "Content-Type must be application/x-www-form-urlencoded or application/json",
    )


def _authorization_request(params: Any) -> AuthorizationRequest:
    return AuthorizationRequest(**{name: params.get(name) for name in AUTHORIZE_PARAMS})


@router.get("/authorize")
async def authorize(
    request: Request,
    service: AuthorizationServiceDep,
    settings: SettingsDep,
    principal_id: OptionalPrincipal,
) -> Response:
    """Authorization endpoint.

    Anonymous users are sent to the login page with a ``returnTo`` pointing
    back here; signed-in owners get a code at their redirect URI.
    """
    auth_request = _authorization_request(request.query_params)
    service.validate_request(auth_request)

    if principal_id is None:
        return_to = quote(str(request.url), safe="")
        return RedirectResponse(
            f"{settings.server.login_url}?returnTo={return_to}",
            status_code=status.HTTP_302_FOUND,
        )

    location = await service.authorize(auth_request, principal_id)
    return RedirectResponse(location, status_code=status.HTTP_302_FOUND)


@router.post("/authorize")
async def authorize_consent(request: Request) -> Response:
    """Consent form submission.

    ``approve=true`` resumes the flow at ``GET /authorize`` with the same
    parameters; anything else denies access.
    """
    form = await request.form()
    params = {key: value for key, value in form.items() if isinstance(value, str)}

    if params.get("approve") != "true":
        redirect_uri = params.get("redirect_uri")
        raise OAuthProtocolError(
            OAuthErrorCode.ACCESS_DENIED,
            "The user denied the authorization request",
            redirect_uri=redirect_uri if redirect_uri and is_absolute_url(redirect_uri) else None,
            state=params.get("state"),
            status_code=status.HTTP_403_FORBIDDEN,
        )

    query = urlencode({name: params[name] for name in AUTHORIZE_PARAMS if params.get(name)})
    return RedirectResponse(f"/authorize?{query}", status_code=status.HTTP_302_FOUND)


@router.post("/token")
async def token(request: Request, service: TokenServiceDep) -> JSONResponse:
    """Token endpoint for the authorization_code and refresh_token grants."""
    params = await read_params(request)
    grant_type = params.get("grant_type")

    if grant_type == "authorization_code":
        result = await service.exchange_code(
            code=params.get("code"),
            redirect_uri=params.get("redirect_uri"),
            client_id=params.get("client_id"),
            code_verifier=params.get("code_verifier"),
            client_secret=params.get("client_secret"),
        )
    elif grant_type == "refresh_token":
        result = await service.refresh(
            refresh_token=params.get("refresh_token"),
            client_id=params.get("client_id"),
        )
    elif not grant_type:
        raise OAuthProtocolError(OAuthErrorCode.INVALID_REQUEST, "grant_type is required")
    else:
        raise OAuthProtocolError(
            OAuthErrorCode.UNSUPPORTED_GRANT_TYPE,
            f"Unsupported grant_type: {grant_type}",
        )

    return JSONResponse(result.model_dump(exclude_none=True), headers=NO_STORE_HEADERS)


@router.post("/revoke")
async def revoke(request: Request, service: RevocationServiceDep) -> Response:
    """Token revocation (RFC 7009). Answers 200 whether or not the token existed."""
    params = await read_params(request)
    await service.revoke(params.get("token"), params.get("token_type_hint"))
    return Response(status_code=status.HTTP_200_OK, headers=NO_STORE_HEADERS)
