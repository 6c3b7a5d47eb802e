"""Process-wide runtime: config, registry and the two executors.

Assembled once at startup and shared read-only by every request.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from loguru import logger
from sqlalchemy.engine import Engine

from sqlapigate.config.schema import Config
from sqlapigate.tools.http_call import HttpCallExecutor
from sqlapigate.tools.registry import ToolRegistry, default_registry
from sqlapigate.tools.sql import SqlExecutor


@dataclass
class GatewayRuntime:
    config: Config
    registry: ToolRegistry
    http: HttpCallExecutor
    sql: SqlExecutor

    async def aclose(self) -> None:
        await self.http.aclose()
        self.sql.dispose()
        logger.debug("Gateway runtime closed")


def build_runtime(
    config: Config,
    *,
    http_client: httpx.AsyncClient | None = None,
    engine: Engine | None = None,
) -> GatewayRuntime:
    """Build the shared runtime; ``http_client`` / ``engine`` are injectable for tests."""
    runtime = GatewayRuntime(
        config=config,
        registry=default_registry,
        http=HttpCallExecutor(config.http_tool, client=http_client),
        sql=SqlExecutor(config.sql, engine=engine),
    )
    logger.info(
        "Gateway runtime ready: tools={} allowed_hosts={} allow_all_hosts={} block_ddl={} max_rows={}",
        runtime.registry.tool_names,
        config.http_tool.allowed_hosts,
        config.http_tool.allow_all_hosts,
        config.sql.block_ddl_operations,
        config.sql.max_rows_returned,
    )
    if config.http_tool.allow_all_hosts:
        logger.warning("AllowAllHosts is enabled; outbound HTTP is not restricted")
    return runtime
