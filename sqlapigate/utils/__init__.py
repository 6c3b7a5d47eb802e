"""Utility functions for sqlapigate."""

from sqlapigate.utils.exceptions import (
    GatewayError,
    ValidationError,
    ToolNotFoundError,
    InvalidUrlError,
    HostNotAllowedError,
    EmptyStatementError,
    NotReadOnlyError,
    BlockedKeywordError,
    OperationTimeoutError,
    ExecutionError,
    ErrorCategory,
    classify_exception,
    sanitize_error_message,
    scrub_values,
)

__all__ = [
    "GatewayError",
    "ValidationError",
    "ToolNotFoundError",
    "InvalidUrlError",
    "HostNotAllowedError",
    "EmptyStatementError",
    "NotReadOnlyError",
    "BlockedKeywordError",
    "OperationTimeoutError",
    "ExecutionError",
    "ErrorCategory",
    "classify_exception",
    "sanitize_error_message",
    "scrub_values",
]
