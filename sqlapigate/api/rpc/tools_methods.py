"""RPC handlers for tools/list and tools/call."""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from sqlapigate.api.rpc.protocol import INVALID_PARAMS, METHOD_NOT_FOUND, encode_json
from sqlapigate.tools.registry import ToolRegistry


RpcResult = tuple[bool, Any | None, dict[str, Any] | None]


def extract_tool_arguments(params: dict[str, Any]) -> Any:
    """Tool arguments live under ``arguments``; ``params`` is accepted as an alias."""
    if "arguments" in params:
        return params["arguments"]
    return params.get("params")


def wrap_tool_result(result: dict[str, Any]) -> dict[str, Any]:
    return {"content": [{"type": "text", "text": encode_json(result)}]}


async def try_handle_tools_method(
    *,
    method: str,
    params: Any,
    registry: ToolRegistry,
    call_tool: Callable[[str, dict[str, Any]], Awaitable[dict[str, Any]]],
    rpc_error: Callable[[int, str, dict[str, Any] | None], dict[str, Any]],
) -> RpcResult | None:
    """Handle tools/* methods. Return None when method is unrelated.

    Tool failures raise out of ``call_tool`` and are mapped by the caller's
    error boundary.
    """
    if method == "tools/list":
        return True, {"tools": registry.get_definitions()}, None

    if method != "tools/call":
        return None

    if not isinstance(params, dict):
        return False, None, rpc_error(INVALID_PARAMS, "Missing params", None)

    name = params.get("name")
    if not isinstance(name, str) or not name.strip():
        return False, None, rpc_error(INVALID_PARAMS, "Missing tool name", None)
    name = name.strip()

    if not registry.has(name):
        return False, None, rpc_error(METHOD_NOT_FOUND, f"Unknown tool: {name}", {"tool": name})

    arguments = extract_tool_arguments(params)
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, dict):
        return False, None, rpc_error(INVALID_PARAMS, f"Invalid {name} arguments: expected an object", None)

    result = await call_tool(name, arguments)
    return True, wrap_tool_result(result), None
