"""
Exception hierarchy and error handling utilities for sqlapigate.

Provides:
- Gateway exception classes with stable error codes
- Error categorization (validation, policy, timeout, execution)
- Safe error message formatting (no credential leak)
"""

from __future__ import annotations

import asyncio
import json
import re
from enum import Enum
from typing import Any, Iterable


class ErrorCategory(Enum):
    """Error categories for classification."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    TIMEOUT = "timeout"
    EXECUTION = "execution"
    FATAL = "fatal"


class GatewayError(Exception):
    """Base exception for all sqlapigate errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return self.message


class ValidationError(GatewayError):
    """Tool arguments do not match the tool's parameter shape."""

    def __init__(self, message: str, field: str | None = None, errors: list[dict[str, Any]] | None = None):
        details: dict[str, Any] = {}
        if field:
            details["field"] = field
        if errors:
            details["errors"] = errors
        super().__init__(message, code="INVALID_PARAMS", category=ErrorCategory.VALIDATION, details=details)


class ToolNotFoundError(GatewayError):
    """Requested tool is not part of the fixed registry."""

    def __init__(self, tool_name: str):
        super().__init__(
            f"Unknown tool: {tool_name}",
            code="TOOL_NOT_FOUND",
            category=ErrorCategory.NOT_FOUND,
            details={"tool_name": tool_name},
        )


class InvalidUrlError(GatewayError):
    """URL is missing or not an absolute http(s) URL."""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_URL", category=ErrorCategory.VALIDATION)


class HostNotAllowedError(GatewayError):
    """Outbound host is not in the allowlist."""

    def __init__(self, host: str, allowed_hosts: Iterable[str]):
        allowed = list(allowed_hosts)
        super().__init__(
            f"Host '{host}' is not in the allowed hosts list. "
            f"Allowed hosts: {', '.join(allowed)}",
            code="HOST_NOT_ALLOWED",
            category=ErrorCategory.PERMISSION,
            details={"host": host},
        )


class EmptyStatementError(GatewayError):
    """SQL text is empty or whitespace."""

    def __init__(self, message: str):
        super().__init__(message, code="EMPTY_STATEMENT", category=ErrorCategory.VALIDATION)


NOT_READ_ONLY_MESSAGE = "sql.query only accepts SELECT statements. Use sql.execute for INSERT/UPDATE/DELETE."
BLOCKED_KEYWORD_MESSAGE = "DDL operations (DROP, TRUNCATE, ALTER, CREATE, etc.) are not allowed."


class NotReadOnlyError(GatewayError):
    """sql.query received a statement that does not classify as read-only."""

    def __init__(self) -> None:
        super().__init__(
            NOT_READ_ONLY_MESSAGE,
            code="NOT_READ_ONLY",
            category=ErrorCategory.PERMISSION,
        )


class BlockedKeywordError(GatewayError):
    """Statement contains a keyword blocked by the DDL policy."""

    def __init__(self, keyword: str, hint: str | None = None, related_code: str | None = None):
        details = {"keyword": keyword}
        if related_code:
            details["related_error"] = related_code
        super().__init__(
            f"{BLOCKED_KEYWORD_MESSAGE} {hint}" if hint else BLOCKED_KEYWORD_MESSAGE,
            code="BLOCKED_KEYWORD",
            category=ErrorCategory.PERMISSION,
            details=details,
        )


class OperationTimeoutError(GatewayError):
    """Per-request timeout elapsed before the operation completed."""

    def __init__(self, operation: str, timeout_seconds: float, message: str | None = None):
        super().__init__(
            message or f"Operation '{operation}' timed out after {timeout_seconds}s",
            code="TIMEOUT",
            category=ErrorCategory.TIMEOUT,
            details={"operation": operation, "timeout_seconds": timeout_seconds},
        )


class ExecutionError(GatewayError):
    """Network or database failure while executing a tool."""

    def __init__(self, operation: str, message: str):
        super().__init__(
            message,
            code="EXECUTION_FAILED",
            category=ErrorCategory.EXECUTION,
            details={"operation": operation},
        )


_SENSITIVE_PATTERNS = [
    re.compile(r"://[^/\s:@]+:[^/\s@]+@"),
    re.compile(r"\b(password|pwd)\s*=\s*(\{[^}]*\}|[^;\s'\"]+)", re.IGNORECASE),
    re.compile(r"(api[_-]?key|token|secret|password|auth)[=:]\s*['\"]?([^\s'\";]+)['\"]?", re.IGNORECASE),
    re.compile(r"bearer\s+[a-zA-Z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"[a-zA-Z0-9]{32,}"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove credential material from error messages."""
    sanitized = message
    sanitized = _SENSITIVE_PATTERNS[0].sub(f"://{replacement}@", sanitized)
    for pattern in _SENSITIVE_PATTERNS[1:]:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def scrub_values(message: str, values: Iterable[Any], replacement: str = "[REDACTED]") -> str:
    """Remove each caller-provided value (connection string, bound parameters) from a message."""
    scrubbed = message
    tokens = sorted(
        {str(v) for v in values if v is not None and not isinstance(v, bool) and str(v).strip()},
        key=len,
        reverse=True,
    )
    for token in tokens:
        scrubbed = re.sub(rf"(?<!\w){re.escape(token)}(?!\w)", replacement, scrubbed)
    return scrubbed


def classify_exception(exc: BaseException) -> tuple[str, ErrorCategory]:
    """Classify an exception and return (error_code, category)."""
    if isinstance(exc, GatewayError):
        return exc.code, exc.category

    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return "TIMEOUT", ErrorCategory.TIMEOUT

    if isinstance(exc, json.JSONDecodeError):
        return "JSON_PARSE_ERROR", ErrorCategory.VALIDATION

    if isinstance(exc, ConnectionError):
        return "CONNECTION_ERROR", ErrorCategory.EXECUTION

    if isinstance(exc, (ValueError, KeyError, TypeError)):
        return "INVALID_VALUE", ErrorCategory.VALIDATION

    return "INTERNAL_ERROR", ErrorCategory.FATAL
