"""MCP method dispatch."""

from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from knowledge_gateway.config.gateway import GatewaySettings
from knowledge_gateway.db.models import Repository
from knowledge_gateway.exceptions import GatewayError
from knowledge_gateway.gateway.protocol import (
    INTERNAL_ERROR,
    METHOD_NOT_FOUND,
    JsonRpcError,
    JsonRpcRequest,
    error_response,
    success_response,
)
from knowledge_gateway.gateway.tools import ToolExecutor


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CallContext:
    """Authenticated caller of one gateway request."""

    repository: Repository
    principal_id: str
    client_id: str
    scopes: list[str]


class MCPDispatcher:
    """Routes JSON-RPC methods to their handlers."""

    def __init__(self, tools: ToolExecutor, settings: GatewaySettings) -> None:
        self.tools = tools
        self.settings = settings

    async def dispatch(self, request: JsonRpcRequest, context: CallContext) -> dict[str, Any]:
        """Produce the response envelope for ``request``.

        Collaborator failures become INTERNAL_ERROR without internal detail.
        """
        try:
            result = await self._handle(request, context)
        except JsonRpcError as e:
            return error_response(request.id, e)
        except (GatewayError, SQLAlchemyError) as e:
            logger.error(
                "gateway_tool_failed",
                method=request.method,
                repository_id=context.repository.id,
                error=str(e),
            )
            return error_response(request.id, JsonRpcError(INTERNAL_ERROR, "Internal error"))
        return success_response(request.id, result)

    async def _handle(self, request: JsonRpcRequest, context: CallContext) -> Any:
        method = request.method
        if method == "initialize":
            return self.initialize(context.repository)
        if method in ("notifications/initialized", "ping"):
            return {}
        if method == "tools/list":
            return {"tools": self.tools.catalog()}
        if method == "tools/call":
            return await self.tools.call(
                context.repository,
                request.params.get("name"),
                request.params.get("arguments"),
                context.scopes,
            )
        raise JsonRpcError(METHOD_NOT_FOUND, f"Method not found: {method}")

    def initialize(self, repository: Repository) -> dict[str, Any]:
        return {
            "protocolVersion": self.settings.protocol_version,
            "capabilities": {"tools": {}},
            "serverInfo": {
                "name": f"{self.settings.server_name}-{repository.slug}",
                "version": self.settings.server_version,
            },
            "instructions": (
                f'This server gives access to the "{repository.name}" knowledge base. '
                "Use the search tool to find relevant information, list_sources to "
                "see what has been indexed, and get_info for details about the "
                "knowledge base."
            ),
        }

    def server_metadata(self, repository: Repository) -> dict[str, Any]:
        """Unauthenticated description returned by a plain GET."""
        return {
            "name": f"{self.settings.server_name}-{repository.slug}",
            "version": self.settings.server_version,
            "protocol": "mcp",
            "protocolVersion": self.settings.protocol_version,
            "transport": ["streamable-http", "sse"],
            "capabilities": {"tools": [tool["name"] for tool in self.tools.catalog()]},
        }
