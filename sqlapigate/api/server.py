"""FastAPI transport: the same dispatch core over request/response.

Besides the JSON-RPC endpoint (``POST /mcp``) it exposes convenience routes
for manual testing: tool listing, health, and direct tool invocation.
Requests are handled concurrently; the runtime they share is read-only.
"""

import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from loguru import logger

from sqlapigate import SERVER_NAME, __version__
from sqlapigate.api.rpc.dispatcher import McpDispatcher
from sqlapigate.api.rpc.error_boundary import classify_http_status
from sqlapigate.api.rpc.protocol import PARSE_ERROR, error_response, rpc_error
from sqlapigate.config.loader import load_config
from sqlapigate.config.schema import Config
from sqlapigate.runtime import GatewayRuntime, build_runtime
from sqlapigate.utils.exceptions import GatewayError, classify_exception, sanitize_error_message


async def _read_json_body(request: Request) -> tuple[bool, Any, str]:
    """Return (ok, value, error). An empty body decodes as None."""
    raw = await request.body()
    if not raw.strip():
        return True, None, ""
    try:
        return True, json.loads(raw), ""
    except ValueError as e:
        return False, None, str(e)


def _install_runtime(app: FastAPI, runtime: GatewayRuntime) -> None:
    app.state.runtime = runtime
    app.state.dispatcher = McpDispatcher(runtime)


def create_app(runtime: GatewayRuntime | None = None, config: Config | None = None) -> FastAPI:
    """Create the FastAPI application.

    With an injected ``runtime`` the caller owns its lifecycle; otherwise the
    lifespan builds one from ``config`` (or the cached config) and closes it
    on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if runtime is not None:
            yield
            return
        logger.info("Starting {} HTTP transport", SERVER_NAME)
        owned = build_runtime(config or load_config())
        _install_runtime(app, owned)
        try:
            yield
        finally:
            await owned.aclose()
            logger.info("{} HTTP transport stopped", SERVER_NAME)

    app = FastAPI(
        title="sqlapigate",
        description="JSON-RPC tool gateway for outbound HTTP and SQL Server",
        version=__version__,
        lifespan=lifespan,
    )
    if runtime is not None:
        _install_runtime(app, runtime)

    @app.exception_handler(GatewayError)
    async def gateway_exception_handler(request: Request, exc: GatewayError):
        status_code = classify_http_status(exc)
        logger.warning("{} {} failed with {}: {}", request.method, request.url.path, exc.code, exc.message)
        return JSONResponse(status_code=status_code, content={"error": sanitize_error_message(exc.message)})

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        code, _ = classify_exception(exc)
        sanitized = sanitize_error_message(str(exc) or type(exc).__name__)
        logger.exception("Unhandled exception [{}]: {}", code, sanitized)
        return JSONResponse(status_code=500, content={"error": f"Internal error: {sanitized}"})

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"service": SERVER_NAME, "version": __version__, "status": "running"}

    @app.get("/health")
    async def health():
        """Static liveness metadata."""
        return {
            "status": "healthy",
            "server": SERVER_NAME,
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/tools")
    async def list_tools(request: Request):
        """Tool descriptors without the RPC envelope."""
        tools = request.app.state.runtime.registry.get_definitions()
        return {"tools": tools, "count": len(tools)}

    @app.post("/mcp")
    async def mcp_endpoint(request: Request):
        """JSON-RPC envelope in, envelope out (same semantics as stdio)."""
        ok, message, err = await _read_json_body(request)
        if not ok:
            logger.warning("POST /mcp: JSON parse error: {}", err)
            return JSONResponse(
                status_code=400,
                content=error_response(None, rpc_error(PARSE_ERROR, f"JSON parse error: {err}")),
            )
        response = await request.app.state.dispatcher.handle_message(message)
        if response is None:
            return Response(status_code=202)
        return JSONResponse(content=response)

    @app.post("/tools/{tool_name}")
    async def call_tool(tool_name: str, request: Request):
        """Raw tool arguments in, raw tool result out."""
        ok, arguments, err = await _read_json_body(request)
        if not ok:
            return JSONResponse(status_code=400, content={"error": f"Invalid JSON body: {err}"})
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            return JSONResponse(status_code=400, content={"error": "Tool arguments must be a JSON object"})
        return await request.app.state.dispatcher.call_tool(tool_name, arguments)

    return app


def run_server(host: str = "127.0.0.1", port: int = 18800, config: Config | None = None):
    """Run the HTTP transport."""
    uvicorn.run(
        create_app(config=config),
        host=host,
        port=port,
        timeout_keep_alive=30,
        timeout_graceful_shutdown=10,
        log_level="warning",
    )
