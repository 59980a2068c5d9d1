"""External collaborators used by the gateway tools."""

from knowledge_gateway.services.search import HttpSearchBackend, SearchBackend, SearchResult
from knowledge_gateway.services.sources import DatabaseSourceCatalog, SourceCatalog


__all__ = [
    "DatabaseSourceCatalog",
    "HttpSearchBackend",
    "SearchBackend",
    "SearchResult",
    "SourceCatalog",
]
