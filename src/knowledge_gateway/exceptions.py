"""Consolidated exception hierarchy for the knowledge gateway.

All exceptions use proper exception chaining with the `from` keyword.
Error types use StrEnum for type safety and autocompletion.
"""

from enum import StrEnum
from typing import Any

from starlette import status


class ErrorType(StrEnum):
    """Error type codes for API responses."""

    INVALID_REQUEST = "invalid_request_error"
    AUTHENTICATION = "authentication_error"
    PERMISSION = "permission_error"
    NOT_FOUND = "not_found_error"
    RATE_LIMIT = "rate_limit_error"
    SERVICE_UNAVAILABLE = "service_unavailable_error"
    INTERNAL_SERVER = "internal_server_error"
    OAUTH = "oauth_error"


class OAuthErrorCode(StrEnum):
    """Error codes defined by RFC 6749 and RFC 7009."""

    INVALID_REQUEST = "invalid_request"
    INVALID_CLIENT = "invalid_client"
    INVALID_GRANT = "invalid_grant"
    UNAUTHORIZED_CLIENT = "unauthorized_client"
    UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"
    UNSUPPORTED_RESPONSE_TYPE = "unsupported_response_type"
    INVALID_SCOPE = "invalid_scope"
    ACCESS_DENIED = "access_denied"
    SERVER_ERROR = "server_error"
    TEMPORARILY_UNAVAILABLE = "temporarily_unavailable"


# ============================================================================
# Base Exceptions
# ============================================================================


class GatewayError(Exception):
    """Base exception for all knowledge gateway errors.

    Supports HTTP status codes and structured error details.
    """

    def __init__(
        self,
        message: str,
        *,
        error_type: ErrorType | str = ErrorType.INTERNAL_SERVER,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if isinstance(error_type, str) and not isinstance(error_type, ErrorType):
            try:
                self.error_type = ErrorType(error_type)
            except ValueError:
                self.error_type = error_type  # type: ignore[assignment]
        else:
            self.error_type = error_type
        self.status_code = status_code
        self.details = details or {}


# ============================================================================
# API Errors (Client-facing)
# ============================================================================


class ValidationError(GatewayError):
    """Validation error (400)."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message,
            error_type=ErrorType.INVALID_REQUEST,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class AuthenticationError(GatewayError):
    """Authentication error (401)."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(
            message,
            error_type=ErrorType.AUTHENTICATION,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class AuthenticationRequiredError(AuthenticationError):
    """Authentication is required but not provided."""

    pass


class InvalidTokenError(AuthenticationError):
    """Invalid, expired or revoked token."""

    pass


class InsufficientPermissionsError(GatewayError):
    """Insufficient permissions for the requested operation (403)."""

    def __init__(self, message: str = "Permission denied") -> None:
        super().__init__(
            message,
            error_type=ErrorType.PERMISSION,
            status_code=status.HTTP_403_FORBIDDEN,
        )


class NotFoundError(GatewayError):
    """Not found error (404)."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(
            message,
            error_type=ErrorType.NOT_FOUND,
            status_code=status.HTTP_404_NOT_FOUND,
        )


class RepositoryNotFoundError(NotFoundError):
    """Repository not found or not served by the gateway (404)."""

    def __init__(self, slug: str) -> None:
        super().__init__(f"Repository '{slug}' not found")


class RateLimitError(GatewayError):
    """Rate limit error (429).

    Carries the response headers produced by the limiter so handlers can
    attach them to the rejection.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(
            message,
            error_type=ErrorType.RATE_LIMIT,
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        )
        self.headers = headers or {}


class ServiceUnavailableError(GatewayError):
    """Service unavailable error (503)."""

    def __init__(self, message: str = "Service temporarily unavailable") -> None:
        super().__init__(
            message,
            error_type=ErrorType.SERVICE_UNAVAILABLE,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )


# ============================================================================
# OAuth Errors
# ============================================================================


class OAuthProtocolError(GatewayError):
    """OAuth error rendered as an RFC 6749 error response.

    When ``redirect_uri`` is set the error is delivered to the client by
    redirect (with ``state`` echoed back), otherwise as a JSON body.
    """

    def __init__(
        self,
        code: OAuthErrorCode,
        description: str,
        *,
        redirect_uri: str | None = None,
        state: str | None = None,
        status_code: int = status.HTTP_400_BAD_REQUEST,
    ) -> None:
        super().__init__(
            description,
            error_type=ErrorType.OAUTH,
            status_code=status_code,
            details={"error": str(code)},
        )
        self.code = code
        self.description = description
        self.redirect_uri = redirect_uri
        self.state = state


class InvalidClientError(OAuthProtocolError):
    """Client authentication failed (401)."""

    def __init__(self, description: str = "Invalid client") -> None:
        super().__init__(
            OAuthErrorCode.INVALID_CLIENT,
            description,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class InvalidGrantError(OAuthProtocolError):
    """Authorization grant or refresh token is invalid (400)."""

    def __init__(self, description: str) -> None:
        super().__init__(OAuthErrorCode.INVALID_GRANT, description)


# ============================================================================
# Collaborator Errors
# ============================================================================


class SearchBackendError(GatewayError):
    """The search collaborator failed to answer a query."""

    def __init__(self, message: str = "Search backend request failed") -> None:
        super().__init__(
            message,
            error_type=ErrorType.SERVICE_UNAVAILABLE,
            status_code=status.HTTP_502_BAD_GATEWAY,
        )


class CounterStoreError(GatewayError):
    """The rate-limit counter store could not be reached."""

    def __init__(self, message: str = "Counter store unavailable") -> None:
        super().__init__(
            message,
            error_type=ErrorType.SERVICE_UNAVAILABLE,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )


__all__ = [
    # Error types
    "ErrorType",
    "OAuthErrorCode",
    # Base
    "GatewayError",
    # API errors
    "ValidationError",
    "AuthenticationError",
    "AuthenticationRequiredError",
    "InvalidTokenError",
    "InsufficientPermissionsError",
    "NotFoundError",
    "RepositoryNotFoundError",
    "RateLimitError",
    "ServiceUnavailableError",
    # OAuth
    "OAuthProtocolError",
    "InvalidClientError",
    "InvalidGrantError",
    # Collaborators
    "SearchBackendError",
    "CounterStoreError",
]
