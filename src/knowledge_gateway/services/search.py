"""Similarity search collaborator.

Embedding and vector search live outside the gateway. The gateway sends the
query text and receives scored chunks back.
"""

from dataclasses import dataclass
from typing import Any, Protocol

import httpx
import structlog

from knowledge_gateway.exceptions import SearchBackendError, ServiceUnavailableError


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SearchResult:
    content: str
    similarity: float
    source_name: str | None = None


class SearchBackend(Protocol):
    async def search(
        self, repository_id: str, query: str, limit: int
    ) -> list[SearchResult]: ...


class HttpSearchBackend:
    """Queries a search service over HTTP.

    Request body: ``{"repository_id", "query", "limit"}``.
    Response body: ``{"results": [{"content", "similarity", "source_name"}]}``.

    Supports connection pooling by reusing an ``httpx.AsyncClient`` across
    requests; the backend owns the client unless one is passed in.
    """

    def __init__(
        self,
        url: str | None,
        *,
        api_key: str | None = None,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    async def search(self, repository_id: str, query: str, limit: int) -> list[SearchResult]:
        if not self.url:
            raise ServiceUnavailableError("Search is not configured")

        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        try:
            response = await self._client.post(
                self.url,
                json={"repository_id": repository_id, "query": query, "limit": limit},
                headers=headers,
            )
            response.raise_for_status()
            payload: dict[str, Any] = response.json()
            return [
                SearchResult(
                    content=str(item.get("content", "")),
                    similarity=float(item.get("similarity", 0.0)),
                    source_name=item.get("source_name"),
                )
                for item in payload.get("results", [])
            ]
        except httpx.HTTPStatusError as e:
            logger.error(
                "search_backend_http_error",
                status_code=e.response.status_code,
                repository_id=repository_id,
            )
            raise SearchBackendError() from e
        except httpx.HTTPError as e:
            logger.error("search_backend_failed", error=str(e), repository_id=repository_id)
            raise SearchBackendError() from e
        except (ValueError, TypeError, AttributeError) as e:
            logger.error(
                "search_backend_malformed_response", error=str(e), repository_id=repository_id
            )
            raise SearchBackendError() from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
