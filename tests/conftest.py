"""Pytest hooks and fixtures."""

import os

import httpx
import pytest
from sqlalchemy import text

from sqlapigate.config.schema import Config, HttpToolConfig, SqlConfig
from sqlapigate.runtime import build_runtime
from sqlapigate.tools.http_call import build_http_client
from sqlapigate.tools.sql import create_sql_engine


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line(
        "markers",
        "requires_mssql: requires a reachable SQL Server instance (skipped in CI)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip requires_mssql tests unless a SQL Server connection string is provided."""
    if os.environ.get("SQLAPIGATE_TEST_MSSQL") and os.environ.get("CI") != "true":
        return
    skip = pytest.mark.skip(reason="Requires SQL Server (set SQLAPIGATE_TEST_MSSQL)")
    for item in items:
        if "requires_mssql" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def sqlite_engine(tmp_path):
    """File-backed SQLite through the same engine factory the gateway uses."""
    engine = create_sql_engine(f"sqlite:///{tmp_path / 'gateway.db'}")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE T (id INTEGER PRIMARY KEY, x TEXT)"))
        conn.execute(text("INSERT INTO T (id, x) VALUES (1, 'old')"))
        conn.execute(text("CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT, qty INTEGER, note TEXT)"))
        for i in range(1, 11):
            conn.execute(
                text("INSERT INTO items (id, name, qty, note) VALUES (:id, :name, :qty, NULL)"),
                {"id": i, "name": f"item-{i}", "qty": i * 10},
            )
    yield engine
    engine.dispose()


def make_config(
    *,
    allowed_hosts: list[str] | None = None,
    allow_all_hosts: bool = False,
    max_rows: int = 10000,
    block_ddl: bool = True,
    query_timeout: int = 30,
    default_timeout: int = 30,
    max_timeout: int = 120,
) -> Config:
    return Config(
        sql=SqlConfig(
            connection_string="",
            block_ddl_operations=block_ddl,
            max_rows_returned=max_rows,
            query_timeout_seconds=query_timeout,
        ),
        http_tool=HttpToolConfig(
            allowed_hosts=["api.github.com"] if allowed_hosts is None else allowed_hosts,
            allow_all_hosts=allow_all_hosts,
            default_timeout_seconds=default_timeout,
            max_timeout_seconds=max_timeout,
        ),
    )


@pytest.fixture
def http_requests():
    """Requests seen by the mock transport."""
    return []


@pytest.fixture
def mock_transport(http_requests):
    def _handler(request: httpx.Request) -> httpx.Response:
        http_requests.append(request)
        return httpx.Response(
            200,
            headers=[("X-Trace", "a"), ("X-Trace", "b"), ("Content-Type", "application/json")],
            text='{"ok":true}',
        )

    return httpx.MockTransport(_handler)


@pytest.fixture
def runtime_factory(sqlite_engine, mock_transport):
    """Build a runtime over SQLite and a mock HTTP transport."""
    created = []

    def _make(config: Config | None = None, transport: httpx.AsyncBaseTransport | None = None):
        cfg = config or make_config()
        client = build_http_client(cfg.http_tool, transport=transport or mock_transport)
        runtime = build_runtime(cfg, http_client=client, engine=sqlite_engine)
        created.append(client)
        return runtime

    return _make


@pytest.fixture
def config_factory():
    """Expose ``make_config`` to tests."""
    return make_config
