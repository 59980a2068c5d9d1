"""Source listing collaborator."""

from typing import Protocol

from knowledge_gateway.db.models import Source
from knowledge_gateway.db.repositories import SourceRepository


class SourceCatalog(Protocol):
    async def list_sources(self, repository_id: str) -> list[Source]: ...


class DatabaseSourceCatalog:
    """Reads completed sources from the shared ``sources`` table."""

    def __init__(self, sources: SourceRepository | None = None) -> None:
        self.sources = sources or SourceRepository()

    async def list_sources(self, repository_id: str) -> list[Source]:
        return await self.sources.list_completed(repository_id)
