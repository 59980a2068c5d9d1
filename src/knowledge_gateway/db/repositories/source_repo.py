"""Source listing for the list_sources tool."""

from sqlmodel import col, select

from knowledge_gateway.db.engine import get_session
from knowledge_gateway.db.models import Source, SourceStatus, SourceType


class SourceRepository:
    """Repository for ingested source records."""

    async def create(
        self,
        repository_id: str,
        name: str,
        *,
        type: SourceType = SourceType.FILE,
        url: str | None = None,
        file_size: int | None = None,
        mime_type: str | None = None,
        status: SourceStatus = SourceStatus.PENDING,
    ) -> Source:
        """Create a source record."""
        async with get_session() as session:
            source = Source(
                repository_id=repository_id,
                name=name,
                type=type,
                url=url,
                file_size=file_size,
                mime_type=mime_type,
                status=status,
            )
            session.add(source)
            await session.commit()
            await session.refresh(source)
            return source

    async def list_completed(self, repository_id: str) -> list[Source]:
        """Sources that finished processing, newest first."""
        async with get_session() as session:
            result = await session.execute(
                select(Source)
                .where(
                    Source.repository_id == repository_id,
                    Source.status == SourceStatus.COMPLETED,
                )
                .order_by(col(Source.created_at).desc())
            )
            return list(result.scalars().all())
