"""JSON-RPC 2.0 envelopes for the MCP transport."""

from dataclasses import dataclass, field
from typing import Any

import orjson


PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
# Implementation-defined server errors (-32000 to -32099)
GATEWAY_ERROR = -32000
INSUFFICIENT_SCOPE = -32001

JsonRpcId = str | int | None


class JsonRpcError(Exception):
    """Error returned inside a JSON-RPC response envelope."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


@dataclass(frozen=True)
class JsonRpcRequest:
    method: str
    id: JsonRpcId = None
    params: dict[str, Any] = field(default_factory=dict)


def parse_request(body: bytes) -> JsonRpcRequest:
    """Parse and validate a request envelope.

    Raises:
        JsonRpcError: PARSE_ERROR for malformed JSON, INVALID_REQUEST for a
            well-formed body that is not a JSON-RPC 2.0 request
    """
    try:
        payload = orjson.loads(body)
    except orjson.JSONDecodeError as e:
        raise JsonRpcError(PARSE_ERROR, "Parse error") from e

    if not isinstance(payload, dict) or payload.get("jsonrpc") != "2.0":
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request")

    method = payload.get("method")
    if not isinstance(method, str) or not method:
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request")

    request_id = payload.get("id")
    if request_id is not None and (
        isinstance(request_id, bool) or not isinstance(request_id, str | int)
    ):
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request")

    params = payload.get("params")
    if params is None:
        params = {}
    elif not isinstance(params, dict):
        raise JsonRpcError(INVALID_PARAMS, "params must be an object")

    return JsonRpcRequest(method=method, id=request_id, params=params)


def success_response(request_id: JsonRpcId, result: Any) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def error_response(request_id: JsonRpcId, error: JsonRpcError) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": error.to_dict()}
