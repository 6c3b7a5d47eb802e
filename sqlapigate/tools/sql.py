"""sql.query / sql.execute executor backed by SQLAlchemy.

The engine is created once per process with ``NullPool``: every call opens
its own connection and closes it on every exit path, nothing is pooled.
Driver work is blocking, so it runs in a worker thread bounded by the
configured statement timeout.
"""

import asyncio
import base64
import datetime
import re
import uuid
from decimal import Decimal
from typing import Any, Callable, TypeVar

from loguru import logger
from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError, StatementError
from sqlalchemy.pool import NullPool

from sqlapigate.config.schema import SqlConfig
from sqlapigate.tools.guard import StatementClass, classify_statement, find_blocked_keyword
from sqlapigate.tools.models import SqlExecuteParams, SqlExecuteResult, SqlQueryParams, SqlQueryResult
from sqlapigate.utils.exceptions import (
    NOT_READ_ONLY_MESSAGE,
    BlockedKeywordError,
    EmptyStatementError,
    ExecutionError,
    NotReadOnlyError,
    OperationTimeoutError,
    sanitize_error_message,
    scrub_values,
)

T = TypeVar("T")

_LOG_SQL_CHARS = 200
# T-SQL style @name placeholders; @@globals and e-mail addresses are left alone.
_AT_PARAM_RE = re.compile(r"(?<![@\w])@(\w+)")
# Bare ":word" in the original text would be taken as a bind by text().
_BARE_COLON_RE = re.compile(r"(?<![:\w\\]):(?=\w)")


def create_sql_engine(connection_string: str) -> Engine:
    """Build the process-wide engine from a SQLAlchemy URL or an ODBC connection string."""
    if not connection_string or not connection_string.strip():
        raise ExecutionError("sql", "SQL connection string is not configured")
    if "://" in connection_string:
        url = make_url(connection_string)
    else:
        url = URL.create("mssql+pyodbc", query={"odbc_connect": connection_string})
    return create_engine(url, poolclass=NullPool)


def bind_parameters(sql: str, parameters: dict[str, Any] | None) -> tuple[str, dict[str, Any]]:
    """Rewrite bound ``@name`` placeholders to ``:name`` and return (sql, binds).

    Keys may be given with or without the leading ``@``; names match
    case-insensitively, as they do on SQL Server. Unbound ``@`` tokens
    (local variables, ``@@ROWCOUNT``) are kept verbatim.
    """
    values: dict[str, Any] = {}
    for key, value in (parameters or {}).items():
        name = key[1:] if key.startswith("@") else key
        values[name] = value
    lookup = {name.lower(): name for name in values}

    used: dict[str, Any] = {}

    def _replace(match: re.Match) -> str:
        name = lookup.get(match.group(1).lower())
        if name is None:
            return match.group(0)
        used[name] = values[name]
        return f":{name}"

    escaped = _BARE_COLON_RE.sub(r"\\:", sql)
    rewritten = _AT_PARAM_RE.sub(_replace, escaped)
    return rewritten, used


def _normalize_decimal(value: Decimal) -> Any:
    # Numbers JSON can carry exactly stay numbers; the rest keep every digit as text.
    if not value.is_finite():
        return str(value)
    if value == value.to_integral_value():
        return int(value)
    as_float = float(value)
    if Decimal(repr(as_float)) == value:
        return as_float
    return str(value)


def normalize_value(value: Any) -> Any:
    """Convert driver values into JSON-friendly forms."""
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return _normalize_decimal(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


def _preview(sql: str) -> str:
    flat = " ".join(sql.split())
    return flat if len(flat) <= _LOG_SQL_CHARS else flat[:_LOG_SQL_CHARS] + "..."


class SqlExecutor:
    """Runs guarded statements; one fresh connection per call."""

    def __init__(self, config: SqlConfig, engine: Engine | None = None):
        self.config = config
        self._owns_engine = engine is None
        if engine is None and config.connection_string.strip():
            engine = create_sql_engine(config.connection_string)
        self._engine = engine

    async def query(self, params: SqlQueryParams) -> SqlQueryResult:
        sql = params.sql or ""
        if not sql.strip():
            raise EmptyStatementError("SQL query is required")

        blocked = find_blocked_keyword(sql) if self.config.block_ddl_operations else None
        if classify_statement(sql) is not StatementClass.READ_ONLY:
            logger.warning("sql.query rejected non-read-only statement: {}", _preview(sql))
            if blocked:
                raise BlockedKeywordError(blocked, hint=NOT_READ_ONLY_MESSAGE, related_code="NOT_READ_ONLY")
            raise NotReadOnlyError()
        if blocked:
            logger.warning("sql.query blocked keyword {}: {}", blocked, _preview(sql))
            raise BlockedKeywordError(blocked)

        statement, binds = bind_parameters(sql, params.parameters)
        logger.info("sql.query: {}", _preview(sql))
        rows = await self._run("sql.query", "SQL query failed", self._fetch_rows, statement, binds)
        return SqlQueryResult(rows=rows)

    async def execute(self, params: SqlExecuteParams) -> SqlExecuteResult:
        sql = params.sql or ""
        if not sql.strip():
            raise EmptyStatementError("SQL statement is required")

        if self.config.block_ddl_operations:
            blocked = find_blocked_keyword(sql)
            if blocked:
                logger.warning("sql.execute blocked keyword {}: {}", blocked, _preview(sql))
                raise BlockedKeywordError(blocked)

        if classify_statement(sql) is StatementClass.READ_ONLY:
            logger.warning("sql.execute called with SELECT query. Consider using sql.query instead.")

        statement, binds = bind_parameters(sql, params.parameters)
        logger.info("sql.execute: {}", _preview(sql))
        affected = await self._run("sql.execute", "SQL execution failed", self._execute_command, statement, binds)
        return SqlExecuteResult(rows_affected=affected)

    async def _run(
        self,
        operation: str,
        failure_prefix: str,
        fn: Callable[[str, dict[str, Any]], T],
        statement: str,
        binds: dict[str, Any],
    ) -> T:
        if self._engine is None:
            raise ExecutionError(operation, "SQL connection string is not configured")
        timeout = self.config.query_timeout_seconds
        try:
            if timeout > 0:
                return await asyncio.wait_for(asyncio.to_thread(fn, statement, binds), timeout=timeout)
            return await asyncio.to_thread(fn, statement, binds)
        except asyncio.TimeoutError as e:
            logger.warning("{} timed out after {}s", operation, timeout)
            raise OperationTimeoutError(operation, timeout, f"SQL command timed out after {timeout} seconds") from e
        except SQLAlchemyError as e:
            message = self._driver_message(e, binds)
            logger.error("{} failed: {}", operation, message)
            raise ExecutionError(operation, f"{failure_prefix}: {message}") from e

    def _driver_message(self, exc: SQLAlchemyError, binds: dict[str, Any]) -> str:
        # StatementError.__str__ echoes the SQL and bound values; use the driver error only.
        if isinstance(exc, StatementError) and exc.orig is not None:
            raw = str(exc.orig)
        else:
            raw = str(exc.args[0]) if exc.args else type(exc).__name__
        scrubbed = scrub_values(raw, [self.config.connection_string, *binds.values()])
        return sanitize_error_message(scrubbed)

    def _apply_driver_timeout(self, conn: Connection) -> None:
        timeout = self.config.query_timeout_seconds
        if timeout <= 0:
            return
        dbapi_conn = conn.connection.dbapi_connection
        if dbapi_conn is not None and hasattr(dbapi_conn, "timeout"):
            dbapi_conn.timeout = timeout

    def _fetch_rows(self, statement: str, binds: dict[str, Any]) -> list[dict[str, Any]]:
        cap = self.config.max_rows_returned
        with self._engine.connect() as conn:
            self._apply_driver_timeout(conn)
            result = conn.execute(text(statement), binds)
            columns = list(result.keys())
            fetched = result.fetchmany(cap + 1) if cap > 0 else result.fetchall()
            result.close()
        if cap > 0 and len(fetched) > cap:
            logger.warning("sql.query result truncated to {} rows (maxRowsReturned)", cap)
            fetched = fetched[:cap]
        return [{col: normalize_value(val) for col, val in zip(columns, row)} for row in fetched]

    def _execute_command(self, statement: str, binds: dict[str, Any]) -> int:
        with self._engine.begin() as conn:
            self._apply_driver_timeout(conn)
            result = conn.execute(text(statement), binds)
            return result.rowcount

    def dispose(self) -> None:
        if self._owns_engine and self._engine is not None:
            self._engine.dispose()
