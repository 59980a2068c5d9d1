"""Error handling for the knowledge gateway API.

OAuth protocol errors are rendered the way RFC 6749 requires: as a redirect
to the client when its redirect URI has been validated, otherwise as an
``{"error", "error_description"}`` JSON body. Every other GatewayError uses
its own ``error_type`` and ``status_code``.
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException
from structlog import get_logger

from knowledge_gateway.auth.redirects import append_query
from knowledge_gateway.exceptions import GatewayError, OAuthProtocolError, RateLimitError


logger = get_logger(__name__)

NO_STORE_HEADERS = {"Cache-Control": "no-store", "Pragma": "no-cache"}


def _store_status_code(request: Request, status_code: int) -> None:
    """Store status code in request state for access logging."""
    context = getattr(request.state, "context", None)
    if context is not None:
        context.metadata["status_code"] = status_code


def _get_client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _build_error_response(
    status_code: int,
    error_type: str,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content={"error": {"type": error_type, "message": message}},
        headers=headers,
    )


def oauth_error_response(exc: OAuthProtocolError) -> Response:
    if exc.redirect_uri:
        location = append_query(
            exc.redirect_uri,
            {
                "error": str(exc.code),
                "error_description": exc.description,
                "state": exc.state,
            },
        )
        return RedirectResponse(location, status_code=status.HTTP_302_FOUND)

    headers = dict(NO_STORE_HEADERS)
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers["WWW-Authenticate"] = 'Basic realm="oauth"'
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.code), "error_description": exc.description},
        headers=headers,
    )


def setup_error_handlers(app: FastAPI) -> None:
    """Setup error handlers for the FastAPI application."""
    logger.debug("error_handlers_setup_start")

    @app.exception_handler(OAuthProtocolError)
    async def oauth_error_handler(request: Request, exc: OAuthProtocolError) -> Response:
        response = oauth_error_response(exc)
        _store_status_code(request, response.status_code)
        logger.warning(
            "oauth_error",
            error=str(exc.code),
            description=exc.description,
            redirected=exc.redirect_uri is not None,
            request_method=request.method,
            request_url=request.url.path,
        )
        return response

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        """Handle all GatewayError subclasses using their built-in attributes."""
        _store_status_code(request, exc.status_code)

        log_kwargs = {
            "error_type": str(exc.error_type),
            "error_message": exc.message,
            "status_code": exc.status_code,
            "request_method": request.method,
            "request_url": request.url.path,
        }
        if exc.status_code in (401, 403, 429):
            log_kwargs["client_ip"] = _get_client_ip(request)

        if exc.status_code >= 500:
            logger.error(type(exc).__name__, **log_kwargs)
        else:
            logger.info(type(exc).__name__, **log_kwargs)

        headers: dict[str, str] = {}
        if isinstance(exc, RateLimitError):
            headers.update(exc.headers)
        if exc.status_code == status.HTTP_401_UNAUTHORIZED:
            headers["WWW-Authenticate"] = "Bearer"
        return _build_error_response(
            exc.status_code, str(exc.error_type), exc.message, headers or None
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """Handle FastAPI HTTP exceptions."""
        _store_status_code(request, exc.status_code)
        log_kwargs = {
            "error_type": f"http_{exc.status_code}",
            "error_message": exc.detail,
            "status_code": exc.status_code,
            "request_method": request.method,
            "request_url": request.url.path,
        }
        if exc.status_code == 404:
            logger.debug("HTTP 404", **log_kwargs)
        elif exc.status_code == 401:
            logger.warning("HTTP 401", **log_kwargs)
        else:
            logger.error("HTTP exception", **log_kwargs)

        return _build_error_response(exc.status_code, "http_error", str(exc.detail))

    @app.exception_handler(StarletteHTTPException)
    async def starlette_http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle Starlette HTTP exceptions (unknown routes, bad methods)."""
        _store_status_code(request, exc.status_code)
        if exc.status_code == 404:
            logger.debug("Starlette HTTP 404", request_url=request.url.path)
        else:
            logger.warning(
                "Starlette HTTP exception",
                status_code=exc.status_code,
                error_message=exc.detail,
                request_url=request.url.path,
            )
        return _build_error_response(exc.status_code, "http_error", str(exc.detail))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle all other unhandled exceptions."""
        _store_status_code(request, status.HTTP_500_INTERNAL_SERVER_ERROR)
        logger.error(
            "Unhandled exception",
            error_type="unhandled_exception",
            error_message=str(exc),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_method=request.method,
            request_url=request.url.path,
            exc_info=True,
        )
        return _build_error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_server_error",
            "An internal server error occurred",
        )

    logger.debug("error_handlers_setup_completed")
