"""``kb-gateway serve``: run the API server with uvicorn."""

from pathlib import Path
from typing import Annotated

import typer
import uvicorn
from rich.console import Console

from knowledge_gateway.cli.helpers import load_settings


console = Console()


def serve(
    host: Annotated[
        str | None, typer.Option("--host", help="Bind address (overrides config)")
    ] = None,
    port: Annotated[
        int | None, typer.Option("--port", "-p", help="Port (overrides config)")
    ] = None,
    reload: Annotated[
        bool, typer.Option("--reload", help="Reload on source changes (development)")
    ] = False,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to a TOML configuration file"),
    ] = None,
) -> None:
    """Start the authorization server and MCP gateway."""
    settings = load_settings(config)
    bind_host = host or settings.server.host
    bind_port = port or settings.server.port

    console.print(f"[bold cyan]Knowledge gateway[/bold cyan] on http://{bind_host}:{bind_port}")
    console.print(f"Issuer: {settings.issuer}")
    if settings.security.session_secret_generated:
        console.print(
            "[yellow]KBGW_SESSION_SECRET is not set; sessions issued by "
            "`kb-gateway session issue` will not be accepted.[/yellow]"
        )

    uvicorn.run(
        "knowledge_gateway.api.app:get_app",
        factory=True,
        host=bind_host,
        port=bind_port,
        reload=reload or settings.server.reload,
        log_level=settings.server.log_level.lower(),
        # structlog's AccessLogMiddleware already logs every request
        access_log=False,
    )
