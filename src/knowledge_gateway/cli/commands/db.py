"""``kb-gateway db``: database maintenance."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from knowledge_gateway.cli.helpers import run_with_database
from knowledge_gateway.db.repositories import (
    AuthorizationCodeRepository,
    RequestLogRepository,
    TokenRepository,
)


app = typer.Typer(name="db", help="Database maintenance", no_args_is_help=True)

console = Console()


@app.command(name="prune")
def prune(
    log_days: Annotated[
        int,
        typer.Option("--log-days", min=1, help="Keep request log entries for this many days"),
    ] = 30,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to a TOML configuration file"),
    ] = None,
) -> None:
    """Delete expired codes, dead token pairs and old request log entries."""

    async def run() -> dict[str, int]:
        return {
            "authorization codes": await AuthorizationCodeRepository().cleanup_expired(),
            "tokens": await TokenRepository().cleanup_expired(),
            "request log entries": await RequestLogRepository().cleanup_older_than(log_days),
        }

    counts = run_with_database(config, run)

    table = Table(title="Pruned")
    table.add_column("Record")
    table.add_column("Deleted", justify="right")
    for record, count in counts.items():
        table.add_row(record, str(count))
    console.print(table)
