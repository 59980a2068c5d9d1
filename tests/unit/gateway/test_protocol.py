"""Tests for JSON-RPC envelope parsing."""

import pytest

from knowledge_gateway.gateway.protocol import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    PARSE_ERROR,
    JsonRpcError,
    error_response,
    parse_request,
    success_response,
)


class TestParseRequest:
    def test_valid_request(self) -> None:
        request = parse_request(b'{"jsonrpc": "2.0", "id": 7, "method": "tools/list"}')
        assert request.method == "tools/list"
        assert request.id == 7
        assert request.params == {}

    def test_notification_has_no_id(self) -> None:
        request = parse_request(b'{"jsonrpc": "2.0", "method": "notifications/initialized"}')
        assert request.id is None

    def test_malformed_json(self) -> None:
        with pytest.raises(JsonRpcError) as exc_info:
            parse_request(b"{not json")
        assert exc_info.value.code == PARSE_ERROR

    @pytest.mark.parametrize(
        "body",
        [
            b"[]",
            b'{"id": 1, "method": "ping"}',
            b'{"jsonrpc": "1.0", "id": 1, "method": "ping"}',
            b'{"jsonrpc": "2.0", "id": 1}',
            b'{"jsonrpc": "2.0", "id": 1, "method": ""}',
            b'{"jsonrpc": "2.0", "id": true, "method": "ping"}',
            b'{"jsonrpc": "2.0", "id": [1], "method": "ping"}',
        ],
    )
    def test_invalid_envelopes(self, body: bytes) -> None:
        with pytest.raises(JsonRpcError) as exc_info:
            parse_request(body)
        assert exc_info.value.code == INVALID_REQUEST

    def test_params_must_be_object(self) -> None:
        with pytest.raises(JsonRpcError) as exc_info:
            parse_request(b'{"jsonrpc": "2.0", "id": 1, "method": "ping", "params": [1]}')
        assert exc_info.value.code == INVALID_PARAMS


def test_response_envelopes() -> None:
    assert success_response("a", {"ok": True}) == {
        "jsonrpc": "2.0",
        "id": "a",
        "result": {"ok": True},
    }
    error = JsonRpcError(-32601, "Method not found: x", data={"hint": "y"})
    assert error_response(3, error) == {
        "jsonrpc": "2.0",
        "id": 3,
        "error": {"code": -32601, "message": "Method not found: x", "data": {"hint": "y"}},
    }
