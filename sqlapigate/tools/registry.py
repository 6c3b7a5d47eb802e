"""Fixed tool table: http.call, sql.query, sql.execute.

The set is decided at import time and never changes; there is no
register/unregister.
"""

import copy
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel

from sqlapigate.tools.models import HttpCallParams, SqlExecuteParams, SqlQueryParams

# (runtime, validated params) -> result model
ToolInvoker = Callable[[Any, Any], Awaitable[BaseModel]]


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    input_schema: dict[str, Any]
    params_model: type[BaseModel]
    invoke: ToolInvoker

    def to_schema(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": copy.deepcopy(self.input_schema),
        }


HTTP_CALL = ToolDefinition(
    name="http.call",
    description=(
        "Make HTTP requests to external APIs. Supports GET, POST, PUT, DELETE methods "
        "with custom headers and body."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "method": {
                "type": "string",
                "description": "HTTP method (GET, POST, PUT, DELETE, PATCH, HEAD, OPTIONS)",
                "default": "GET",
            },
            "url": {"type": "string", "description": "Full URL to call (must be in allowed hosts list)"},
            "headers": {
                "type": "object",
                "description": "Optional HTTP headers as key-value pairs",
                "additionalProperties": {"type": "string"},
            },
            "query": {
                "type": "object",
                "description": "Optional query string parameters as key-value pairs",
                "additionalProperties": True,
            },
            "body": {"description": "Optional request body (will be JSON serialized)"},
            "timeoutSeconds": {
                "type": "integer",
                "minimum": 1,
                "description": "Optional timeout in seconds (max: configured limit)",
            },
        },
        "required": ["url"],
    },
    params_model=HttpCallParams,
    invoke=lambda runtime, params: runtime.http.call(params),
)

SQL_QUERY = ToolDefinition(
    name="sql.query",
    description="Execute SELECT queries on SQL Server. Returns rows as JSON. Read-only operation.",
    input_schema={
        "type": "object",
        "properties": {
            "sql": {"type": "string", "description": "SQL SELECT statement (parameterized queries recommended)"},
            "parameters": {
                "type": "object",
                "description": 'Named parameters for the query (e.g., { "@Id": 123 })',
                "additionalProperties": True,
            },
        },
        "required": ["sql"],
    },
    params_model=SqlQueryParams,
    invoke=lambda runtime, params: runtime.sql.query(params),
)

SQL_EXECUTE = ToolDefinition(
    name="sql.execute",
    description="Execute INSERT, UPDATE, DELETE statements on SQL Server. Returns number of rows affected.",
    input_schema={
        "type": "object",
        "properties": {
            "sql": {
                "type": "string",
                "description": "SQL statement (INSERT, UPDATE, DELETE - use parameterized queries)",
            },
            "parameters": {
                "type": "object",
                "description": 'Named parameters for the statement (e.g., { "@Name": "John" })',
                "additionalProperties": True,
            },
        },
        "required": ["sql"],
    },
    params_model=SqlExecuteParams,
    invoke=lambda runtime, params: runtime.sql.execute(params),
)


class ToolRegistry:
    """Read-only lookup over the fixed tool table."""

    def __init__(self, tools: tuple[ToolDefinition, ...] = (HTTP_CALL, SQL_QUERY, SQL_EXECUTE)):
        self._tools: dict[str, ToolDefinition] = {tool.name: tool for tool in tools}

    def get(self, name: str) -> ToolDefinition | None:
        """Get a tool by name."""
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def get_definitions(self) -> list[dict[str, Any]]:
        """Descriptors in fixed order; fresh copies so callers cannot mutate the table."""
        return [tool.to_schema() for tool in self._tools.values()]

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools


default_registry = ToolRegistry()
