"""Dispatch core shared by the stdio and HTTP transports.

One envelope in, exactly one envelope out. Every failure other than task
cancellation is converted to an RPC error at this boundary so a bad
request can never take down the long-lived process.
"""

from __future__ import annotations

import inspect
import json
from typing import Any, Awaitable, Callable, Iterable

import pydantic
from loguru import logger

from sqlapigate import SERVER_NAME, __version__
from sqlapigate.api.rpc.error_boundary import (
    RpcResult,
    gateway_error_result,
    unhandled_exception_result,
    unknown_method_result,
)
from sqlapigate.api.rpc.lifecycle_methods import try_handle_lifecycle_method
from sqlapigate.api.rpc.protocol import (
    INVALID_REQUEST,
    PARSE_ERROR,
    error_response,
    rpc_error,
    success_response,
)
from sqlapigate.api.rpc.tools_methods import try_handle_tools_method
from sqlapigate.tools.registry import ToolDefinition
from sqlapigate.utils.exceptions import GatewayError, ToolNotFoundError, ValidationError

HandlerResult = RpcResult | None
DispatchHandler = Callable[[], Awaitable[HandlerResult] | HandlerResult]


async def run_handler_pipeline(handlers: Iterable[DispatchHandler]) -> HandlerResult:
    """Try each method handler in order; the first non-None result wins."""
    for handler in handlers:
        outcome = handler()
        result = await outcome if inspect.isawaitable(outcome) else outcome
        if result is not None:
            return result
    return None


def validate_tool_arguments(tool: ToolDefinition, arguments: dict[str, Any]) -> Any:
    """Re-deserialize an untyped argument bag into the tool's parameter model."""
    try:
        return tool.params_model.model_validate(arguments)
    except pydantic.ValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        summary = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}" for err in errors
        )
        raise ValidationError(f"Invalid {tool.name} arguments: {summary}", errors=errors) from e


class McpDispatcher:
    """Routes initialize / tools/list / tools/call against a shared runtime."""

    def __init__(self, runtime: Any):
        self.runtime = runtime
        self.registry = runtime.registry

    async def handle_line(self, line: str) -> dict[str, Any] | None:
        """Parse one framed request; malformed JSON yields a parse error with a null id."""
        try:
            message = json.loads(line)
        except ValueError as e:
            logger.warning("JSON parse error: {}", e)
            return error_response(None, rpc_error(PARSE_ERROR, f"JSON parse error: {e}"))
        return await self.handle_message(message)

    async def handle_message(self, message: Any) -> dict[str, Any] | None:
        """Handle one decoded envelope. Returns None only for notifications."""
        if not isinstance(message, dict):
            return error_response(None, rpc_error(INVALID_REQUEST, "Invalid Request: expected a JSON object"))

        request_id = message.get("id")
        method = message.get("method")
        if not isinstance(method, str) or not method:
            return error_response(request_id, rpc_error(INVALID_REQUEST, "Invalid Request: missing method"))

        # Notifications (no id) from protocol clients, e.g. notifications/initialized.
        if "id" not in message and method.startswith("notifications/"):
            logger.debug("Notification received: {}", method)
            return None

        logger.debug("Received request: method={} id={}", method, request_id)
        ok, payload, error = await self.dispatch(method, message.get("params"))
        if ok:
            return success_response(request_id, payload)
        return error_response(request_id, error)

    async def dispatch(self, method: str, params: Any) -> RpcResult:
        try:
            result = await run_handler_pipeline(
                (
                    lambda: try_handle_lifecycle_method(
                        method=method,
                        server_name=SERVER_NAME,
                        server_version=__version__,
                    ),
                    lambda: try_handle_tools_method(
                        method=method,
                        params=params,
                        registry=self.registry,
                        call_tool=self.call_tool,
                        rpc_error=rpc_error,
                    ),
                )
            )
        except GatewayError as exc:
            return gateway_error_result(method=method, exc=exc, log_warning=logger.warning, rpc_error=rpc_error)
        except Exception as exc:
            return unhandled_exception_result(
                method=method, exc=exc, log_exception=logger.exception, rpc_error=rpc_error
            )
        if result is None:
            logger.info("Unknown RPC method: {}", method)
            return unknown_method_result(method=method, rpc_error=rpc_error)
        return result

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Validate and invoke a tool; returns the raw result shape. Raises GatewayError."""
        tool = self.registry.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        params = validate_tool_arguments(tool, arguments)
        logger.info("Calling tool: {}", name)
        result = await tool.invoke(self.runtime, params)
        return result.model_dump(by_alias=True)
