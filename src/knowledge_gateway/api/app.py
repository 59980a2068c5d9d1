"""FastAPI application factory for the knowledge gateway."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from structlog import get_logger

from knowledge_gateway import __version__
from knowledge_gateway.api.lifecycle import (
    LifecycleComponent,
    execute_shutdown_sequence,
    execute_startup_sequence,
    log_server_start,
)
from knowledge_gateway.api.middleware import (
    AccessLogMiddleware,
    RequestIDMiddleware,
    setup_cors_middleware,
    setup_error_handlers,
)
from knowledge_gateway.api.routes.billing import router as billing_router
from knowledge_gateway.api.routes.clients import router as clients_router
from knowledge_gateway.api.routes.gateway import router as gateway_router
from knowledge_gateway.api.routes.health import router as health_router
from knowledge_gateway.api.routes.install import router as install_router
from knowledge_gateway.api.routes.oauth import router as oauth_router
from knowledge_gateway.api.routes.well_known import router as well_known_router
from knowledge_gateway.api.startup import (
    initialize_billing,
    initialize_credential_services,
    initialize_database_startup,
    initialize_gateway,
    initialize_rate_limiter,
    shutdown_database,
    shutdown_gateway,
)
from knowledge_gateway.config.settings import Settings, get_settings
from knowledge_gateway.core.logging import setup_logging


logger = get_logger(__name__)


# Started in order, stopped in reverse order
LIFECYCLE_COMPONENTS: list[LifecycleComponent] = [
    {
        "name": "Database",
        "startup": initialize_database_startup,
        "shutdown": shutdown_database,
    },
    {
        "name": "Credential Services",
        "startup": initialize_credential_services,
        "shutdown": None,
    },
    {
        "name": "Rate Limiter",
        "startup": initialize_rate_limiter,
        "shutdown": None,
    },
    {
        "name": "Gateway",
        "startup": initialize_gateway,
        "shutdown": shutdown_gateway,
    },
    {
        "name": "Billing",
        "startup": initialize_billing,
        "shutdown": None,
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager using component-based approach."""
    settings: Settings = app.state.settings

    log_server_start(settings)
    await execute_startup_sequence(LIFECYCLE_COMPONENTS, app, settings)

    yield

    logger.debug("server_stop")
    await execute_shutdown_sequence(LIFECYCLE_COMPONENTS, app)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override. If None, uses get_settings().
    """
    if settings is None:
        settings = get_settings()

    # Needed in reload mode, where the app is re-imported by the worker
    if not structlog.is_configured():
        setup_logging(
            json_logs=settings.server.json_logs,
            log_level_name=settings.server.log_level,
            log_file=settings.server.log_file,
        )

    app = FastAPI(
        title="Knowledge Gateway",
        description="OAuth 2.1 authorization server and MCP gateway for knowledge repositories",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    setup_error_handlers(app)

    # Middleware runs in reverse order of registration
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)
    setup_cors_middleware(app, settings)

    app.include_router(health_router)
    app.include_router(well_known_router)
    app.include_router(oauth_router)
    app.include_router(clients_router)
    app.include_router(install_router)
    app.include_router(billing_router)
    app.include_router(gateway_router)

    return app


def get_app() -> FastAPI:
    """Application factory for ``uvicorn --factory``."""
    return create_app()
