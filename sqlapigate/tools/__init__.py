"""Tool layer: policy guard, executors and the fixed registry."""

from sqlapigate.tools.guard import (
    StatementClass,
    check_host,
    classify_statement,
    contains_blocked_keyword,
    effective_timeout,
    find_blocked_keyword,
)
from sqlapigate.tools.http_call import HttpCallExecutor
from sqlapigate.tools.registry import ToolDefinition, ToolRegistry, default_registry
from sqlapigate.tools.sql import SqlExecutor, create_sql_engine

__all__ = [
    "StatementClass",
    "check_host",
    "classify_statement",
    "contains_blocked_keyword",
    "effective_timeout",
    "find_blocked_keyword",
    "HttpCallExecutor",
    "SqlExecutor",
    "create_sql_engine",
    "ToolDefinition",
    "ToolRegistry",
    "default_registry",
]
