"""CLI commands for sqlapigate.

Entry point for both transports (``stdio`` and ``serve``) plus small
helpers to inspect the tool set and bootstrap a config file.
"""

import asyncio
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from sqlapigate import __logo__, __version__
from sqlapigate.cli.command_groups.status_command import status_command
from sqlapigate.cli.shared.logging_utils import configure_logging, ensure_rotating_log_file
from sqlapigate.cli.shared.network_utils import is_port_in_use
from sqlapigate.config.schema import Config

app = typer.Typer(
    name="sqlapigate",
    help=f"{__logo__} sqlapigate - JSON-RPC tool gateway for outbound HTTP and SQL Server",
    no_args_is_help=True,
)

console = Console()
# stdout belongs to the protocol in stdio mode; everything human-facing goes here.
err_console = Console(stderr=True)


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} sqlapigate v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """sqlapigate - JSON-RPC tool gateway."""
    pass


def _load_startup_config(config_path: Path | None) -> Config:
    """Load and validate config; any problem exits with code 1 (messages on stderr)."""
    from sqlapigate.config.loader import load_config

    try:
        config = load_config(config_path)
    except ValueError as e:
        err_console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    from sqlapigate.config.schema import validate_startup_config

    problems = validate_startup_config(config)
    if problems:
        for problem in problems:
            err_console.print(f"[red]✗[/red] {problem}")
        raise typer.Exit(1)
    return config


def _setup_logging(config: Config, name: str, verbose: bool) -> Path | None:
    level = "DEBUG" if verbose else config.logging.level
    configure_logging(level)
    if config.logging.file_enabled:
        return ensure_rotating_log_file(name, level=level)
    return None


def _build_runtime_or_exit(config: Config):
    from sqlalchemy.exc import SQLAlchemyError

    from sqlapigate.runtime import build_runtime
    from sqlapigate.utils.exceptions import GatewayError, sanitize_error_message

    try:
        return build_runtime(config)
    except (GatewayError, SQLAlchemyError, ImportError) as e:
        err_console.print(f"[red]✗[/red] Failed to initialize: {sanitize_error_message(str(e))}")
        raise typer.Exit(1)


# ============================================================================
# Transports
# ============================================================================


@app.command()
def stdio(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file (default ~/.sqlapigate/config.json)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging (stderr)"),
):
    """Serve JSON-RPC over stdin/stdout (one request per line)."""
    protocol_out = sys.stdout
    # Stray prints must never reach the protocol stream.
    sys.stdout = sys.stderr
    try:
        config = _load_startup_config(config_path)
        _setup_logging(config, "stdio", verbose)
        runtime = _build_runtime_or_exit(config)
        asyncio.run(_run_stdio(runtime, protocol_out))
    finally:
        sys.stdout = protocol_out


async def _run_stdio(runtime, protocol_out) -> None:
    from sqlapigate.api.rpc.dispatcher import McpDispatcher
    from sqlapigate.api.stdio import serve_stdio

    try:
        await serve_stdio(McpDispatcher(runtime), stdout=protocol_out)
    finally:
        await runtime.aclose()


@app.command()
def serve(
    host: str = typer.Option(None, "--host", "-h", help="Bind host (default gateway.host)"),
    port: int = typer.Option(None, "--port", "-p", help="Bind port (default gateway.port)"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file (default ~/.sqlapigate/config.json)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Serve the HTTP transport (POST /mcp plus /tools, /health)."""
    config = _load_startup_config(config_path)
    host = host or config.gateway.host
    port = port or config.gateway.port
    if is_port_in_use(host, port):
        console.print(
            f"[red]Port {port} is already in use.[/red] "
            f"Stop the process using it, or pass [cyan]--port[/cyan] (current: {host}:{port})."
        )
        raise typer.Exit(1)

    log_path = _setup_logging(config, "serve", verbose)
    console.print(f"{__logo__} Starting sqlapigate HTTP transport on {host}:{port}...")
    if log_path:
        console.print(f"[dim]Logs: {log_path}[/dim]")

    from sqlapigate.api.server import run_server

    run_server(host=host, port=port, config=config)


# ============================================================================
# Inspection / setup
# ============================================================================


@app.command()
def tools():
    """List the tools exposed by the gateway."""
    from sqlapigate.tools.registry import default_registry

    table = Table(title=f"{__logo__} sqlapigate tools")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Required")
    for definition in default_registry.get_definitions():
        schema = definition["inputSchema"]
        table.add_row(definition["name"], definition["description"], ", ".join(schema.get("required", [])))
    console.print(table)


@app.command()
def init(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config file"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Where to write (default ~/.sqlapigate/config.json)"),
):
    """Write a default config file."""
    from sqlapigate.config.loader import get_config_path, save_config

    path = config_path or get_config_path()
    if path.exists() and not force:
        console.print(f"[yellow]Config already exists at {path}[/yellow] (use [cyan]--force[/cyan] to overwrite)")
        raise typer.Exit(1)

    # Defaults only; environment values (e.g. the connection string) stay out of the file.
    save_config(Config.model_construct(), path)
    console.print(f"[green]✓[/green] Created config at {path}")
    console.print("\nNext steps:")
    console.print("  1. Set the connection string: [cyan]SQLAPIGATE_SQL__CONNECTION_STRING[/cyan]")
    console.print("  2. Add hosts to [bold]httpTool.allowedHosts[/bold]")
    console.print("  3. Run [cyan]sqlapigate stdio[/cyan] or [cyan]sqlapigate serve[/cyan]")


@app.command()
def status(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file (default ~/.sqlapigate/config.json)"),
):
    """Show effective configuration (secrets are never printed)."""
    try:
        status_command(console, config_path)
    except ValueError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
