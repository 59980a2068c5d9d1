"""Startup and shutdown functions for the application lifecycle.

Each function attaches its services to ``app.state`` where the route
dependencies in :mod:`knowledge_gateway.api.dependencies` look them up.
"""

import asyncio

from fastapi import FastAPI
from structlog import get_logger

from knowledge_gateway.auth import SessionTokenHandler, TokenCodec
from knowledge_gateway.billing import BillingEventHandler
from knowledge_gateway.config.settings import Settings
from knowledge_gateway.db import close_db, init_db
from knowledge_gateway.entitlements import EntitlementResolver
from knowledge_gateway.gateway import (
    GatewayAuthenticator,
    MCPDispatcher,
    RequestLogWriter,
    ToolExecutor,
)
from knowledge_gateway.oauth import (
    AuthorizationService,
    ClientService,
    InstallTokenService,
    RevocationService,
    TokenService,
)
from knowledge_gateway.ratelimit import InMemoryCounterStore, RateLimiter
from knowledge_gateway.services import DatabaseSourceCatalog, HttpSearchBackend


logger = get_logger(__name__)


async def initialize_database_startup(app: FastAPI, settings: Settings) -> None:
    """Create the SQLite schema if needed and open the engine."""
    await init_db(settings.database.path)
    logger.debug("database_initialized", path=str(settings.database.path))


async def shutdown_database(app: FastAPI) -> None:
    await close_db()
    logger.debug("database_closed")


async def initialize_credential_services(app: FastAPI, settings: Settings) -> None:
    """Build the token codec, session handler and OAuth services."""
    codec = TokenCodec(settings.security.token_pepper)
    resolver = EntitlementResolver()

    app.state.token_codec = codec
    app.state.session_handler = SessionTokenHandler(settings.security.session_secret)
    app.state.entitlement_resolver = resolver
    app.state.authorization_service = AuthorizationService(codec, settings.oauth)
    app.state.token_service = TokenService(codec, settings.oauth, resolver)
    app.state.revocation_service = RevocationService(codec)
    app.state.client_service = ClientService(codec, settings.issuer)
    app.state.install_service = InstallTokenService(
        codec, settings.oauth, settings.issuer, resolver
    )
    logger.debug("credential_services_initialized", issuer=settings.issuer)


async def initialize_rate_limiter(app: FastAPI, settings: Settings) -> None:
    config = settings.rate_limit
    if not config.enabled:
        app.state.rate_limiter = None
        logger.info("rate_limiter_disabled")
        return

    store = InMemoryCounterStore(
        ttl_seconds=config.window_seconds, maxsize=config.max_tracked_keys
    )
    app.state.rate_limiter = RateLimiter(
        store,
        repository_limit=config.repository_limit,
        client_limit=config.client_limit,
        window_seconds=config.window_seconds,
    )
    logger.debug(
        "rate_limiter_initialized",
        repository_limit=config.repository_limit,
        client_limit=config.client_limit,
        window_seconds=config.window_seconds,
    )


async def initialize_gateway(app: FastAPI, settings: Settings) -> None:
    """Build the MCP dispatcher and its collaborators."""
    search_backend = HttpSearchBackend(
        settings.search.url,
        api_key=settings.search.api_key,
        timeout=settings.search.timeout,
    )
    tools = ToolExecutor(
        search_backend,
        DatabaseSourceCatalog(),
        default_limit=settings.gateway.search_default_limit,
        max_limit=settings.gateway.search_max_limit,
    )

    app.state.search_backend = search_backend
    app.state.dispatcher = MCPDispatcher(tools, settings.gateway)
    app.state.gateway_authenticator = GatewayAuthenticator(
        app.state.token_codec, app.state.entitlement_resolver
    )
    app.state.request_log_writer = RequestLogWriter()
    app.state.shutdown_event = asyncio.Event()

    if not settings.search.url:
        logger.warning(
            "search_backend_not_configured",
            message="The search tool will fail until search.url is set",
        )


async def shutdown_gateway(app: FastAPI) -> None:
    """Close open event streams and the search backend client."""
    shutdown_event: asyncio.Event | None = getattr(app.state, "shutdown_event", None)
    if shutdown_event is not None:
        shutdown_event.set()

    search_backend: HttpSearchBackend | None = getattr(app.state, "search_backend", None)
    if search_backend is not None:
        await search_backend.aclose()


async def initialize_billing(app: FastAPI, settings: Settings) -> None:
    app.state.billing_handler = BillingEventHandler()
    if not settings.billing.webhook_secret:
        logger.info("billing_events_disabled", reason="no webhook secret configured")
