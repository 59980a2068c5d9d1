"""Tools exposed to assistant clients over MCP."""

from typing import Any

import structlog

from knowledge_gateway.auth.scopes import Scope
from knowledge_gateway.db.models import Repository, SourceType
from knowledge_gateway.gateway.protocol import (
    INSUFFICIENT_SCOPE,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    JsonRpcError,
)
from knowledge_gateway.services.search import SearchBackend, SearchResult
from knowledge_gateway.services.sources import SourceCatalog


logger = structlog.get_logger(__name__)

NO_RESULTS_TEXT = "No relevant information found for your query."
RESULT_SEPARATOR = "\n\n---\n\n"


def tool_catalog(default_limit: int, max_limit: int) -> list[dict[str, Any]]:
    """Static tool definitions returned by ``tools/list``."""
    return [
        {
            "name": "search",
            "description": (
                "Search the knowledge base for relevant information using semantic "
                "similarity. Returns the most relevant chunks of content matching "
                "your query."
            ),
            "inputSchema": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "What information you are looking for",
                    },
                    "limit": {
                        "type": "number",
                        "description": (
                            f"Maximum number of results to return "
                            f"(default: {default_limit}, max: {max_limit})"
                        ),
                        "minimum": 1,
                        "maximum": max_limit,
                    },
                },
                "required": ["query"],
            },
        },
        {
            "name": "list_sources",
            "description": (
                "List all data sources in the knowledge base. "
                "Shows files and URLs that have been indexed."
            ),
            "inputSchema": {"type": "object", "properties": {}, "required": []},
        },
        {
            "name": "get_info",
            "description": (
                "Get information about the knowledge base, including its name, "
                "description, and settings."
            ),
            "inputSchema": {"type": "object", "properties": {}, "required": []},
        },
    ]


TOOL_SCOPES: dict[str, Scope] = {
    "search": Scope.SEARCH,
    "list_sources": Scope.LIST_SOURCES,
    "get_info": Scope.GET_INFO,
}


def text_content(text: str) -> dict[str, Any]:
    return {"content": [{"type": "text", "text": text}]}


def format_search_results(results: list[SearchResult]) -> str:
    if not results:
        return NO_RESULTS_TEXT
    return RESULT_SEPARATOR.join(
        f"[{index}] ({result.similarity * 100:.1f}% match, "
        f"from: {result.source_name or 'unknown'})\n{result.content}"
        for index, result in enumerate(results, start=1)
    )


def format_file_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024**2:
        return f"{size / 1024:.1f} KB"
    if size < 1024**3:
        return f"{size / 1024**2:.1f} MB"
    return f"{size / 1024**3:.1f} GB"


class ToolExecutor:
    """Runs a tool call against one repository."""

    def __init__(
        self,
        search_backend: SearchBackend,
        source_catalog: SourceCatalog,
        *,
        default_limit: int = 5,
        max_limit: int = 10,
    ) -> None:
        self.search_backend = search_backend
        self.source_catalog = source_catalog
        self.default_limit = default_limit
        self.max_limit = max_limit

    def catalog(self) -> list[dict[str, Any]]:
        return tool_catalog(self.default_limit, self.max_limit)

    async def call(
        self,
        repository: Repository,
        name: Any,
        arguments: Any,
        scopes: list[str],
    ) -> dict[str, Any]:
        """Execute tool ``name``.

        Raises:
            JsonRpcError: unknown tool, bad arguments, or missing scope
        """
        if not isinstance(name, str) or not name:
            raise JsonRpcError(INVALID_PARAMS, "Missing required parameter: name")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise JsonRpcError(INVALID_PARAMS, "arguments must be an object")

        required_scope = TOOL_SCOPES.get(name)
        if required_scope is None:
            raise JsonRpcError(METHOD_NOT_FOUND, f"Tool not found: {name}")
        if required_scope not in scopes:
            raise JsonRpcError(
                INSUFFICIENT_SCOPE, f"Token lacks required scope: {required_scope}"
            )

        if name == "search":
            return await self.search(repository, arguments)
        if name == "list_sources":
            return await self.list_sources(repository)
        return self.get_info(repository)

    async def search(self, repository: Repository, arguments: dict[str, Any]) -> dict[str, Any]:
        query = arguments.get("query")
        if not isinstance(query, str) or not query.strip():
            raise JsonRpcError(INVALID_PARAMS, "Missing required parameter: query")

        limit = arguments.get("limit", self.default_limit)
        if isinstance(limit, bool) or not isinstance(limit, int | float):
            raise JsonRpcError(INVALID_PARAMS, "limit must be a number")
        limit = min(max(1, int(limit)), self.max_limit)

        results = await self.search_backend.search(repository.id, query, limit)
        logger.debug(
            "tool_search_complete",
            repository_id=repository.id,
            result_count=len(results),
            limit=limit,
        )
        return text_content(format_search_results(results))

    async def list_sources(self, repository: Repository) -> dict[str, Any]:
        sources = await self.source_catalog.list_sources(repository.id)
        if not sources:
            return text_content(
                f'No sources found in knowledge base "{repository.name}". '
                "The knowledge base appears to be empty."
            )

        files = [s for s in sources if s.type == SourceType.FILE]
        urls = [s for s in sources if s.type == SourceType.URL]
        plural = "" if len(sources) == 1 else "s"
        lines = [
            f'# Sources in "{repository.name}"',
            "",
            f"Total: {len(sources)} source{plural}",
            "",
        ]
        if files:
            lines += ["## Files", ""]
            for source in files:
                details = ""
                if source.mime_type:
                    subtype = source.mime_type.split("/")[-1].upper()
                    details += f" [{subtype}]"
                if source.file_size:
                    details += f" ({format_file_size(source.file_size)})"
                lines.append(f"- **{source.name}**{details}")
            lines.append("")
        if urls:
            lines += ["## URLs", ""]
            lines += [f"- **{source.name}**: {source.url}" for source in urls]
            lines.append("")
        return text_content("\n".join(lines))

    def get_info(self, repository: Repository) -> dict[str, Any]:
        lines = [f"# {repository.name}", ""]
        if repository.description:
            lines += [repository.description, ""]

        if repository.is_paid:
            price = f"${(repository.price_cents or 0) / 100:.2f}"
        else:
            price = "Free"
        lines += [
            "## Details",
            "",
            f"- **Visibility:** {'Public' if repository.is_public else 'Private'}",
            f"- **Pricing:** {price}",
            f"- **Created:** {repository.created_at.date().isoformat()}",
            f"- **Last Updated:** {repository.updated_at.date().isoformat()}",
            "",
            "## Available Tools",
            "",
            "- **search**: Search the knowledge base for relevant information",
            "- **list_sources**: View all indexed sources (files and URLs)",
            "- **get_info**: View this information about the knowledge base",
        ]
        return text_content("\n".join(lines))
