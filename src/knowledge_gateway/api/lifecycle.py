"""Application lifecycle management helpers."""

from collections.abc import Awaitable, Callable

from fastapi import FastAPI
from structlog import get_logger
from typing_extensions import TypedDict

from knowledge_gateway.config.settings import Settings


logger = get_logger(__name__)


class LifecycleComponent(TypedDict):
    name: str
    startup: Callable[[FastAPI, Settings], Awaitable[None]] | None
    shutdown: Callable[[FastAPI], Awaitable[None]] | None


def _event_name(component_name: str, suffix: str) -> str:
    return f"{component_name.lower().replace(' ', '_')}_{suffix}"


async def run_startup_component(
    component: LifecycleComponent,
    app: FastAPI,
    settings: Settings,
) -> None:
    """Execute a single startup component.

    Startup failures are logged and re-raised: a gateway without its
    database or credential services must not accept traffic.
    """
    if not component["startup"]:
        return

    component_name = component["name"]
    try:
        logger.debug(_event_name(component_name, "starting"))
        await component["startup"](app, settings)
    except (OSError, RuntimeError, ValueError) as e:
        logger.error(
            _event_name(component_name, "startup_failed"),
            error=str(e),
            component=component_name,
        )
        raise


async def run_shutdown_component(component: LifecycleComponent, app: FastAPI) -> None:
    """Execute a single shutdown component with error handling."""
    if not component["shutdown"]:
        return

    component_name = component["name"]
    try:
        logger.debug(_event_name(component_name, "stopping"))
        await component["shutdown"](app)
    except (OSError, RuntimeError) as e:
        logger.error(
            _event_name(component_name, "shutdown_failed"),
            error=str(e),
            component=component_name,
        )


async def execute_startup_sequence(
    components: list[LifecycleComponent],
    app: FastAPI,
    settings: Settings,
) -> None:
    """Execute all startup components in order."""
    for component in components:
        await run_startup_component(component, app, settings)


async def execute_shutdown_sequence(
    components: list[LifecycleComponent],
    app: FastAPI,
) -> None:
    """Execute all shutdown components in reverse order."""
    for component in reversed(components):
        await run_shutdown_component(component, app)


def log_server_start(settings: Settings) -> None:
    logger.info(
        "server_start",
        host=settings.server.host,
        port=settings.server.port,
        issuer=settings.issuer,
    )
    logger.debug(
        "server_configured",
        database=str(settings.database.path),
        rate_limit_enabled=settings.rate_limit.enabled,
        search_configured=bool(settings.search.url),
        billing_configured=bool(settings.billing.webhook_secret),
    )
