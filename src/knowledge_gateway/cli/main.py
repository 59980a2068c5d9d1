"""Entry point for the ``kb-gateway`` command."""

from typing import Annotated

import typer
from rich.console import Console

from knowledge_gateway import __version__
from knowledge_gateway.cli.commands.db import app as db_app
from knowledge_gateway.cli.commands.repos import app as repos_app
from knowledge_gateway.cli.commands.serve import serve
from knowledge_gateway.cli.commands.session import app as session_app


app = typer.Typer(
    name="kb-gateway",
    help="OAuth 2.1 authorization server and MCP gateway for knowledge repositories",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"kb-gateway {__version__}")
        raise typer.Exit()


@app.callback()
def app_main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """Knowledge gateway server and operator tools."""


app.command(name="serve")(serve)
app.add_typer(session_app, name="session")
app.add_typer(repos_app, name="repos")
app.add_typer(db_app, name="db")


def main() -> None:
    app()
