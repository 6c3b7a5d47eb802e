"""RPC handler for the protocol handshake."""

from __future__ import annotations

from typing import Any

from sqlapigate.api.rpc.protocol import PROTOCOL_VERSION


RpcResult = tuple[bool, Any | None, dict[str, Any] | None]


def build_initialize_result(*, server_name: str, server_version: str) -> dict[str, Any]:
    return {
        "protocolVersion": PROTOCOL_VERSION,
        "capabilities": {"tools": {}},
        "serverInfo": {"name": server_name, "version": server_version},
    }


def try_handle_lifecycle_method(
    *,
    method: str,
    server_name: str,
    server_version: str,
) -> RpcResult | None:
    """Handle initialize (params ignored). Return None when method is unrelated."""
    if method == "initialize":
        return True, build_initialize_result(server_name=server_name, server_version=server_version), None
    return None
