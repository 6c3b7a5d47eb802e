"""Common RPC error-boundary helpers for dispatch."""

from __future__ import annotations

from typing import Any, Callable

from sqlapigate.api.rpc.protocol import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND
from sqlapigate.utils.exceptions import (
    ErrorCategory,
    GatewayError,
    classify_exception,
    sanitize_error_message,
)


RpcResult = tuple[bool, Any | None, dict[str, Any] | None]

_CATEGORY_TO_RPC_CODE = {
    ErrorCategory.VALIDATION: INVALID_PARAMS,
    ErrorCategory.NOT_FOUND: METHOD_NOT_FOUND,
}


def unknown_method_result(
    *,
    method: str,
    rpc_error: Callable[[int, str, dict[str, Any] | None], dict[str, Any]],
) -> RpcResult:
    """Build standardized unknown-method response."""
    return False, None, rpc_error(METHOD_NOT_FOUND, f"Method '{method}' not found", None)


def gateway_error_result(
    *,
    method: str,
    exc: GatewayError,
    log_warning: Callable[..., None],
    rpc_error: Callable[[int, str, dict[str, Any] | None], dict[str, Any]],
) -> RpcResult:
    """Map GatewayError to an RPC error by category; message is the failure description."""
    message = sanitize_error_message(exc.message)
    log_warning("RPC method {} failed with {}: {}", method, exc.code, message)
    code = _CATEGORY_TO_RPC_CODE.get(exc.category, INTERNAL_ERROR)
    data = {"error": exc.code, "category": exc.category.value, **exc.details}
    return False, None, rpc_error(code, message, data)


def unhandled_exception_result(
    *,
    method: str,
    exc: Exception,
    log_exception: Callable[..., None],
    rpc_error: Callable[[int, str, dict[str, Any] | None], dict[str, Any]],
) -> RpcResult:
    """Map unexpected exceptions to standardized internal-error responses."""
    code, category = classify_exception(exc)
    sanitized = sanitize_error_message(str(exc) or type(exc).__name__)
    log_exception("RPC method {} failed with [{}]: {}", method, code, sanitized)
    return False, None, rpc_error(
        INTERNAL_ERROR,
        f"Internal error: {sanitized}",
        {"error": code, "category": category.value},
    )


def classify_http_status(exc: Exception) -> int:
    """Map exception to appropriate HTTP status code."""
    category_to_status = {
        ErrorCategory.VALIDATION: 400,
        ErrorCategory.NOT_FOUND: 404,
        ErrorCategory.PERMISSION: 403,
        ErrorCategory.TIMEOUT: 504,
        ErrorCategory.EXECUTION: 502,
        ErrorCategory.FATAL: 500,
    }
    if isinstance(exc, GatewayError):
        return category_to_status.get(exc.category, 500)

    _, category = classify_exception(exc)
    if category is ErrorCategory.VALIDATION:
        return 400
    if category is ErrorCategory.TIMEOUT:
        return 504
    return 500
