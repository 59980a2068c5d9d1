"""Database configuration."""

from pathlib import Path

from pydantic import BaseModel, Field

from knowledge_gateway.core.system import get_gateway_data_dir


class DatabaseSettings(BaseModel):
    """Location of the SQLite credential store."""

    path: Path = Field(
        default_factory=lambda: get_gateway_data_dir() / "knowledge_gateway.db",
        description="SQLite database file",
    )
