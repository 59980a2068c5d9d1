"""Settings and database helpers shared by CLI commands."""

import asyncio
import os
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import typer
from rich.console import Console

from knowledge_gateway.config import ConfigurationError, Settings, get_settings
from knowledge_gateway.db import close_db, init_db


console = Console()

T = TypeVar("T")


def load_settings(config: Path | None) -> Settings:
    """Load settings, exiting with a readable message on failure."""
    if config is not None:
        # Picked up again by get_settings() inside uvicorn workers
        os.environ["CONFIG_FILE"] = str(config)
    try:
        return get_settings(config)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e


def run_with_database(config: Path | None, operation: Callable[[], Awaitable[T]]) -> T:
    """Run ``operation`` against the configured database and close it afterwards."""
    settings = load_settings(config)

    async def runner() -> T:
        await init_db(settings.database.path)
        try:
            return await operation()
        finally:
            await close_db()

    return asyncio.run(runner())
