"""``kb-gateway repos``: operator management of repositories."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import IntegrityError

from knowledge_gateway.cli.helpers import run_with_database
from knowledge_gateway.db.models import PricingModel, Repository, RequestLog, Visibility
from knowledge_gateway.db.repositories import RepositoryRepository, RequestLogRepository


app = typer.Typer(name="repos", help="Manage knowledge repositories", no_args_is_help=True)

console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to a TOML configuration file"),
]


def _print_repository(repository: Repository) -> None:
    console.print(f"[bold]ID:[/bold] {repository.id}")
    console.print(f"[bold]Slug:[/bold] {repository.slug}")
    console.print(f"[bold]Owner:[/bold] {repository.owner_id}")
    console.print(
        f"[bold]Visibility:[/bold] {repository.visibility}  "
        f"[bold]Pricing:[/bold] {repository.pricing_model}  "
        f"[bold]Gateway:[/bold] {'enabled' if repository.gateway_enabled else 'disabled'}"
    )


@app.command(name="add")
def add_repository(
    slug: Annotated[str, typer.Argument(help="URL slug used in /mcp/{slug}")],
    owner: Annotated[str, typer.Option("--owner", "-o", help="Owner principal id")],
    name: Annotated[str | None, typer.Option("--name", help="Display name")] = None,
    description: Annotated[str | None, typer.Option("--description", "-d")] = None,
    public: Annotated[bool, typer.Option("--public", help="Make the repository public")] = False,
    price_cents: Annotated[
        int | None,
        typer.Option("--price-cents", help="Monthly price; makes the repository paid"),
    ] = None,
    enable: Annotated[bool, typer.Option("--enable", help="Enable MCP access")] = False,
    config: ConfigOption = None,
) -> None:
    """Create a repository."""
    repositories = RepositoryRepository()

    async def create() -> Repository:
        return await repositories.create(
            owner_id=owner,
            name=name or slug,
            slug=slug,
            description=description,
            visibility=Visibility.PUBLIC if public else Visibility.PRIVATE,
            pricing_model=PricingModel.PAID if price_cents else PricingModel.FREE,
            price_cents=price_cents,
            gateway_enabled=enable,
        )

    try:
        repository = run_with_database(config, create)
    except IntegrityError as e:
        console.print(f"[red]A repository with slug '{slug}' already exists.[/red]")
        raise typer.Exit(1) from e

    console.print("[green]Repository created.[/green]")
    _print_repository(repository)


@app.command(name="list")
def list_repositories(
    owner: Annotated[str | None, typer.Option("--owner", "-o", help="Filter by owner")] = None,
    config: ConfigOption = None,
) -> None:
    """List repositories."""
    repositories = run_with_database(config, lambda: RepositoryRepository().list_all(owner))

    if not repositories:
        console.print("[yellow]No repositories found.[/yellow]")
        return

    table = Table(title="Repositories")
    table.add_column("Slug", style="cyan")
    table.add_column("Name")
    table.add_column("Owner", style="green")
    table.add_column("Visibility")
    table.add_column("Pricing")
    table.add_column("Gateway")

    for repository in repositories:
        pricing = (
            f"${(repository.price_cents or 0) / 100:.2f}" if repository.is_paid else "free"
        )
        gateway = (
            "[green]enabled[/green]" if repository.gateway_enabled else "[red]disabled[/red]"
        )
        table.add_row(
            repository.slug,
            repository.name,
            repository.owner_id,
            str(repository.visibility),
            pricing,
            gateway,
        )

    console.print(table)


@app.command(name="enable")
def enable_repository(
    slug: Annotated[str, typer.Argument(help="Repository slug")],
    disable: Annotated[
        bool, typer.Option("--disable", help="Disable MCP access instead")
    ] = False,
    config: ConfigOption = None,
) -> None:
    """Enable (or disable) MCP access for a repository."""
    repository = run_with_database(
        config, lambda: RepositoryRepository().set_gateway_enabled(slug, not disable)
    )
    if repository is None:
        console.print(f"[red]Repository '{slug}' not found.[/red]")
        raise typer.Exit(1)

    state = "disabled" if disable else "enabled"
    console.print(f"[green]MCP access {state} for '{slug}'.[/green]")


@app.command(name="remove")
def remove_repository(
    slug: Annotated[str, typer.Argument(help="Repository slug")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
    config: ConfigOption = None,
) -> None:
    """Delete a repository with its clients, tokens and subscriptions."""
    if not yes:
        typer.confirm(f"Delete repository '{slug}' and everything issued for it?", abort=True)

    repositories = RepositoryRepository()

    async def remove() -> bool:
        repository = await repositories.get_by_slug(slug)
        if repository is None:
            return False
        return await repositories.delete(repository.id)

    if not run_with_database(config, remove):
        console.print(f"[red]Repository '{slug}' not found.[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Repository '{slug}' deleted.[/green]")


@app.command(name="logs")
def show_logs(
    slug: Annotated[str, typer.Argument(help="Repository slug")],
    limit: Annotated[int, typer.Option("--limit", "-n", min=1, help="Number of entries")] = 20,
    config: ConfigOption = None,
) -> None:
    """Show the most recent gateway calls for a repository."""

    async def fetch() -> list[RequestLog] | None:
        repository = await RepositoryRepository().get_by_slug(slug)
        if repository is None:
            return None
        return await RequestLogRepository().list_recent(repository.id, limit)

    entries = run_with_database(config, fetch)
    if entries is None:
        console.print(f"[red]Repository '{slug}' not found.[/red]")
        raise typer.Exit(1)
    if not entries:
        console.print(f"[yellow]No gateway calls recorded for '{slug}'.[/yellow]")
        return

    table = Table(title=f"Recent calls: {slug}")
    table.add_column("Time", style="dim")
    table.add_column("Method", style="cyan")
    table.add_column("Status", justify="right")
    table.add_column("ms", justify="right")
    table.add_column("Client")
    table.add_column("Query / Error")

    for entry in entries:
        status_style = "green" if entry.status_code < 400 else "red"
        table.add_row(
            entry.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            entry.method,
            f"[{status_style}]{entry.status_code}[/{status_style}]",
            str(entry.duration_ms),
            entry.client_id or "-",
            entry.error_message or entry.query or "",
        )

    console.print(table)
