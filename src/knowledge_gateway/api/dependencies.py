"""FastAPI dependencies for services attached to ``app.state``."""

from typing import Annotated, Any

from fastapi import Depends, Request
from structlog import get_logger

from knowledge_gateway.auth import SessionTokenHandler, extract_bearer_token
from knowledge_gateway.billing import BillingEventHandler
from knowledge_gateway.config.settings import Settings
from knowledge_gateway.exceptions import (
    AuthenticationRequiredError,
    ServiceUnavailableError,
)
from knowledge_gateway.gateway import GatewayAuthenticator, MCPDispatcher, RequestLogWriter
from knowledge_gateway.oauth import (
    AuthorizationService,
    ClientService,
    InstallTokenService,
    RevocationService,
    TokenService,
)
from knowledge_gateway.ratelimit import RateLimiter


logger = get_logger(__name__)


def _state(request: Request, name: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise ServiceUnavailableError(f"{name.replace('_', ' ')} not initialized")
    return value


def get_app_settings(request: Request) -> Settings:
    return _state(request, "settings")  # type: ignore[no-any-return]


def get_authorization_service(request: Request) -> AuthorizationService:
    return _state(request, "authorization_service")  # type: ignore[no-any-return]


def get_token_service(request: Request) -> TokenService:
    return _state(request, "token_service")  # type: ignore[no-any-return]


def get_revocation_service(request: Request) -> RevocationService:
    return _state(request, "revocation_service")  # type: ignore[no-any-return]


def get_client_service(request: Request) -> ClientService:
    return _state(request, "client_service")  # type: ignore[no-any-return]


def get_install_service(request: Request) -> InstallTokenService:
    return _state(request, "install_service")  # type: ignore[no-any-return]


def get_dispatcher(request: Request) -> MCPDispatcher:
    return _state(request, "dispatcher")  # type: ignore[no-any-return]


def get_gateway_authenticator(request: Request) -> GatewayAuthenticator:
    return _state(request, "gateway_authenticator")  # type: ignore[no-any-return]


def get_request_log_writer(request: Request) -> RequestLogWriter:
    return _state(request, "request_log_writer")  # type: ignore[no-any-return]


def get_billing_handler(request: Request) -> BillingEventHandler:
    return _state(request, "billing_handler")  # type: ignore[no-any-return]


def get_rate_limiter(request: Request) -> RateLimiter | None:
    """The limiter, or None when rate limiting is disabled."""
    return getattr(request.app.state, "rate_limiter", None)


def get_optional_principal(request: Request) -> str | None:
    """Principal id from the session cookie or a bearer session token.

    Invalid or expired sessions are treated as anonymous.
    """
    handler: SessionTokenHandler = _state(request, "session_handler")
    settings = get_app_settings(request)

    token = request.cookies.get(settings.security.session_cookie_name)
    if not token:
        token = extract_bearer_token(request.headers.get("authorization"))
    if not token:
        return None

    try:
        return handler.verify(token)
    except ValueError as e:
        logger.debug("session_rejected", reason=str(e))
        return None


def require_principal(
    principal_id: Annotated[str | None, Depends(get_optional_principal)],
) -> str:
    if principal_id is None:
        raise AuthenticationRequiredError("Sign in required")
    return principal_id


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
AuthorizationServiceDep = Annotated[AuthorizationService, Depends(get_authorization_service)]
TokenServiceDep = Annotated[TokenService, Depends(get_token_service)]
RevocationServiceDep = Annotated[RevocationService, Depends(get_revocation_service)]
ClientServiceDep = Annotated[ClientService, Depends(get_client_service)]
InstallServiceDep = Annotated[InstallTokenService, Depends(get_install_service)]
DispatcherDep = Annotated[MCPDispatcher, Depends(get_dispatcher)]
AuthenticatorDep = Annotated[GatewayAuthenticator, Depends(get_gateway_authenticator)]
RequestLogWriterDep = Annotated[RequestLogWriter, Depends(get_request_log_writer)]
BillingHandlerDep = Annotated[BillingEventHandler, Depends(get_billing_handler)]
RateLimiterDep = Annotated[RateLimiter | None, Depends(get_rate_limiter)]
OptionalPrincipal = Annotated[str | None, Depends(get_optional_principal)]
Principal = Annotated[str, Depends(require_principal)]
