"""Async SQLite engine for the credential store."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from knowledge_gateway.core.system import get_gateway_data_dir


DEFAULT_DB_PATH = get_gateway_data_dir() / "knowledge_gateway.db"

# Set by init_db() during application startup
_engine: AsyncEngine | None = None
_async_session_maker: async_sessionmaker[AsyncSession] | None = None


def _sqlite_url(path: Path | None) -> str:
    database = path or DEFAULT_DB_PATH
    database.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite+aiosqlite:///{database}"


async def init_db(path: Path | None = None) -> None:
    """Open the database at ``path`` and create any missing tables.

    Calling it again replaces the previous engine.
    """
    global _engine, _async_session_maker

    # Register table metadata before create_all
    from knowledge_gateway.db import models  # noqa: F401

    if _engine is not None:
        await _engine.dispose()

    _engine = create_async_engine(_sqlite_url(path), echo=False)
    _async_session_maker = async_sessionmaker(
        _engine, class_=AsyncSession, expire_on_commit=False
    )

    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def close_db() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _async_session_maker

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _async_session_maker = None


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Session that commits on success and rolls back on error."""
    if _async_session_maker is None:
        raise RuntimeError("init_db() has not been called")

    async with _async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
