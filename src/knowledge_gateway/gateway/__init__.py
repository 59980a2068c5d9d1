"""MCP protocol gateway."""

from knowledge_gateway.gateway.authenticator import GatewayAuthenticator
from knowledge_gateway.gateway.dispatcher import CallContext, MCPDispatcher
from knowledge_gateway.gateway.protocol import JsonRpcError, JsonRpcRequest, parse_request
from knowledge_gateway.gateway.request_log import RequestLogEntry, RequestLogWriter
from knowledge_gateway.gateway.streaming import keepalive_stream
from knowledge_gateway.gateway.tools import ToolExecutor


__all__ = [
    "CallContext",
    "GatewayAuthenticator",
    "JsonRpcError",
    "JsonRpcRequest",
    "MCPDispatcher",
    "RequestLogEntry",
    "RequestLogWriter",
    "ToolExecutor",
    "keepalive_stream",
    "parse_request",
]
