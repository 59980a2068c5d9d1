"""MCP protocol gateway endpoints.

Every failure on ``POST /mcp/{slug}`` is answered with a JSON-RPC error
envelope. Authentication, entitlement and rate-limit failures use
``GATEWAY_ERROR`` with the matching HTTP status so clients can tell a
protocol error from an access problem.
"""

import time
import uuid
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from starlette import status
from starlette.background import BackgroundTask
from structlog import get_logger

from knowledge_gateway.api.dependencies import (
    AuthenticatorDep,
    DispatcherDep,
    RateLimiterDep,
    RequestLogWriterDep,
    SettingsDep,
)
from knowledge_gateway.db.models import Repository
from knowledge_gateway.exceptions import GatewayError, RateLimitError
from knowledge_gateway.gateway import (
    CallContext,
    GatewayAuthenticator,
    JsonRpcError,
    JsonRpcRequest,
    RequestLogEntry,
    keepalive_stream,
    parse_request,
)
from knowledge_gateway.gateway.protocol import GATEWAY_ERROR, INTERNAL_ERROR, error_response
from knowledge_gateway.gateway.streaming import STREAM_HEADERS
from knowledge_gateway.ratelimit import RateLimiter


logger = get_logger(__name__)

router = APIRouter(prefix="/mcp", tags=["gateway"])

SESSION_HEADER = "Mcp-Session-Id"


def _search_query(rpc: JsonRpcRequest | None) -> str | None:
    if rpc is None or rpc.method != "tools/call" or rpc.params.get("name") != "search":
        return None
    arguments = rpc.params.get("arguments")
    if isinstance(arguments, dict) and isinstance(arguments.get("query"), str):
        return arguments["query"]
    return None


def _gateway_error_response(
    exc: GatewayError, headers: dict[str, str] | None = None
) -> JSONResponse:
    response_headers = dict(headers or {})
    if isinstance(exc, RateLimitError):
        response_headers.update(exc.headers)
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        response_headers["WWW-Authenticate"] = "Bearer"
    return JSONResponse(
        error_response(None, JsonRpcError(GATEWAY_ERROR, exc.message)),
        status_code=exc.status_code,
        headers=response_headers,
    )


async def _unmetered_headers(
    limiter: RateLimiter | None, repository: Repository | None
) -> dict[str, str]:
    if limiter is None:
        return {}
    info = await limiter.peek(repository.id if repository else None)
    return info.headers()


async def _authenticate(
    authenticator: GatewayAuthenticator, request: Request, slug: str
) -> tuple[Repository, CallContext]:
    token = authenticator.bearer_token(request.headers.get("authorization"))
    repository = await authenticator.resolve_repository(slug)
    return repository, await authenticator.authenticate(repository, token)


@router.post("/{slug}", response_model=None)
async def gateway_call(
    slug: str,
    request: Request,
    authenticator: AuthenticatorDep,
    dispatcher: DispatcherDep,
    limiter: RateLimiterDep,
    log_writer: RequestLogWriterDep,
) -> JSONResponse:
    """Handle one JSON-RPC request from an assistant client."""
    started = time.perf_counter()
    repository: Repository | None = None
    context: CallContext | None = None
    rpc: JsonRpcRequest | None = None
    rate_headers: dict[str, str] = {}

    try:
        token = authenticator.bearer_token(request.headers.get("authorization"))
        repository = await authenticator.resolve_repository(slug)
        context = await authenticator.authenticate(repository, token)

        if limiter is not None:
            rate = await limiter.check(repository.id, context.client_id)
            rate_headers = rate.headers()
            if not rate.allowed:
                raise RateLimitError(headers=rate_headers)

        rpc = parse_request(await request.body())
        payload: dict[str, Any] = await dispatcher.dispatch(rpc, context)
        response = JSONResponse(payload, headers=rate_headers)
    except JsonRpcError as e:
        payload = error_response(None, e)
        response = JSONResponse(
            payload, status_code=status.HTTP_400_BAD_REQUEST, headers=rate_headers
        )
    except GatewayError as e:
        logger.info(
            "gateway_call_rejected",
            slug=slug,
            error_type=str(e.error_type),
            status_code=e.status_code,
        )
        if not rate_headers:
            rate_headers = await _unmetered_headers(limiter, repository)
        response = _gateway_error_response(e, rate_headers)
        payload = error_response(None, JsonRpcError(GATEWAY_ERROR, e.message))
    except Exception as e:
        logger.error(
            "gateway_call_failed",
            slug=slug,
            method=rpc.method if rpc else None,
            error=str(e),
            exc_info=True,
        )
        payload = error_response(
            rpc.id if rpc else None, JsonRpcError(INTERNAL_ERROR, "Internal error")
        )
        response = JSONResponse(
            payload, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, headers=rate_headers
        )

    if repository is not None:
        error = payload.get("error")
        entry = RequestLogEntry(
            repository_id=repository.id,
            client_id=context.client_id if context else None,
            method=rpc.method if rpc else "unknown",
            query=_search_query(rpc),
            duration_ms=int((time.perf_counter() - started) * 1000),
            status_code=response.status_code,
            error_message=error["message"] if error else None,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
        response.background = BackgroundTask(log_writer.write, entry)

    return response


@router.get("/{slug}", response_model=None)
async def gateway_stream(
    slug: str,
    request: Request,
    settings: SettingsDep,
    authenticator: AuthenticatorDep,
    dispatcher: DispatcherDep,
    limiter: RateLimiterDep,
) -> Response:
    """Server metadata, or an SSE stream when the client accepts one."""
    if "text/event-stream" not in request.headers.get("accept", ""):
        try:
            repository = await authenticator.resolve_repository(slug)
        except GatewayError as e:
            return _gateway_error_response(e, await _unmetered_headers(limiter, None))
        return JSONResponse(
            dispatcher.server_metadata(repository),
            headers=await _unmetered_headers(limiter, repository),
        )

    try:
        repository, _ = await _authenticate(authenticator, request, slug)
    except GatewayError as e:
        return _gateway_error_response(e, await _unmetered_headers(limiter, None))

    session_id = str(uuid.uuid4())
    logger.info("gateway_stream_started", repository_id=repository.id, session_id=session_id)
    return StreamingResponse(
        keepalive_stream(
            session_id,
            interval=settings.gateway.keepalive_interval,
            shutdown=request.app.state.shutdown_event,
            is_disconnected=request.is_disconnected,
        ),
        media_type="text/event-stream",
        headers={**STREAM_HEADERS, SESSION_HEADER: session_id},
    )


@router.delete("/{slug}", status_code=status.HTTP_204_NO_CONTENT)
async def gateway_close(slug: str) -> Response:
    """Session close. Sessions hold no server state, so this is acknowledged only."""
    return Response(status_code=status.HTTP_204_NO_CONTENT)
