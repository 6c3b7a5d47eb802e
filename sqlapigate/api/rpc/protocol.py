"""JSON-RPC 2.0 envelope helpers shared by both transports."""

from __future__ import annotations

import json
from typing import Any

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


def rpc_error(code: int, message: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    """Build a JSON-RPC error object; ``data`` is omitted when empty."""
    error: dict[str, Any] = {"code": code, "message": message}
    if data:
        error["data"] = data
    return error


def success_response(request_id: Any, result: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_response(request_id: Any, error: dict[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def encode_json(payload: Any) -> str:
    """Compact single-line JSON (no embedded newlines, safe for line framing)."""
    return json.dumps(payload, separators=(",", ":"), default=str)


def encode_response(response: dict[str, Any]) -> str:
    return encode_json(response)
