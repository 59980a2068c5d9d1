"""``kb-gateway session``: principal session tokens."""

from datetime import timedelta
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from knowledge_gateway.auth import SessionTokenHandler
from knowledge_gateway.cli.helpers import load_settings


app = typer.Typer(name="session", help="Principal session tokens", no_args_is_help=True)

console = Console()


@app.command(name="issue")
def issue_session(
    principal: Annotated[
        str, typer.Option("--principal", "-u", help="Principal (user) id to sign in as")
    ],
    hours: Annotated[
        int | None,
        typer.Option("--hours", help="Lifetime in hours (default: security.session_ttl_hours)"),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to a TOML configuration file"),
    ] = None,
) -> None:
    """Mint a session token for calling the client and install-token APIs.

    Send it as ``Authorization: Bearer <token>`` or in the session cookie.
    """
    settings = load_settings(config)
    if settings.security.session_secret_generated:
        console.print(
            "[red]KBGW_SESSION_SECRET is not set.[/red] "
            "A token signed with a generated secret cannot be verified by the server."
        )
        raise typer.Exit(1)

    ttl = timedelta(hours=hours or settings.security.session_ttl_hours)
    token = SessionTokenHandler(settings.security.session_secret).issue(principal, ttl)
    console.print(token, soft_wrap=True, highlight=False)
