"""Access logging middleware for structured HTTP request/response logging."""

import asyncio
import time
from typing import Any

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint


logger = structlog.get_logger(__name__)


def _extract_rate_limit_info(response: Response) -> dict[str, Any]:
    return {
        name.lower().replace("-", "_"): value
        for name, value in response.headers.items()
        if name.lower().startswith("x-ratelimit-")
    }


def _update_context_metadata(request: Request, status_code: int) -> None:
    context = getattr(request.state, "context", None)
    if context is not None:
        context.metadata["status_code"] = status_code


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Logs one ``request_complete`` event per request.

    Query strings are never logged: the OAuth endpoints carry codes and
    state values there.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()
        response: Response | None = None
        error_message: str | None = None

        try:
            response = await call_next(request)
        except (Exception, asyncio.CancelledError) as e:
            error_message = str(e)
            raise
        finally:
            self._log_request(request, response, start_time, error_message)

        return response

    def _log_request(
        self,
        request: Request,
        response: Response | None,
        start_time: float,
        error_message: str | None,
    ) -> None:
        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        client_ip = request.client.host if request.client else "unknown"

        if response is None:
            logger.error(
                "request_error",
                method=request.method,
                path=request.url.path,
                client_ip=client_ip,
                duration_ms=duration_ms,
                error_message=error_message or "No response generated",
            )
            return

        _update_context_metadata(request, response.status_code)
        logger.info(
            "request_complete",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            client_ip=client_ip,
            user_agent=request.headers.get("user-agent", "unknown"),
            **_extract_rate_limit_info(response),
        )
