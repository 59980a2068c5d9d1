"""Gateway request log repository."""

from datetime import UTC, datetime, timedelta

from sqlalchemy import delete
from sqlmodel import col, select

from knowledge_gateway.db.engine import get_session
from knowledge_gateway.db.models import RequestLog


class RequestLogRepository:
    """Append-only log of gateway calls."""

    async def append(self, entry: RequestLog) -> None:
        async with get_session() as session:
            session.add(entry)
            await session.commit()

    async def list_recent(self, repository_id: str, limit: int = 50) -> list[RequestLog]:
        """Most recent entries for a repository."""
        async with get_session() as session:
            result = await session.execute(
                select(RequestLog)
                .where(RequestLog.repository_id == repository_id)
                .order_by(col(RequestLog.created_at).desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def cleanup_older_than(self, days: int) -> int:
        """Delete entries older than ``days``. Returns count deleted."""
        cutoff = datetime.now(UTC) - timedelta(days=days)
        async with get_session() as session:
            result = await session.execute(
                delete(RequestLog).where(col(RequestLog.created_at) < cutoff)
            )
            await session.commit()
            return result.rowcount or 0
