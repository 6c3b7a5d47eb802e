"""Status command: show effective configuration without revealing secrets."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from sqlapigate import __logo__


def status_command(console: Console, config_path: Path | None = None) -> None:
    """Show sqlapigate status."""
    from sqlapigate.config.loader import get_config_path, load_config
    from sqlapigate.config.schema import validate_startup_config

    path = config_path or get_config_path()
    config = load_config(path)

    console.print(f"{__logo__} sqlapigate Status\n")
    console.print(f"Config: {path} {'[green]✓[/green]' if path.exists() else '[dim](not found, using defaults + env)[/dim]'}")

    sql = config.sql
    console.print(
        f"SQL connection: {'[green]✓ configured[/green]' if sql.connection_string.strip() else '[red]✗ not set[/red]'}"
    )
    console.print(f"Block DDL: {'[green]on[/green]' if sql.block_ddl_operations else '[yellow]off[/yellow]'}")
    console.print(f"Max rows: {sql.max_rows_returned or 'unlimited'}")
    console.print(f"Query timeout: {sql.query_timeout_seconds or 'none'}{'s' if sql.query_timeout_seconds else ''}")

    http = config.http_tool
    if http.allow_all_hosts:
        console.print("Allowed hosts: [yellow]ALL (allowAllHosts is on)[/yellow]")
    elif http.allowed_hosts:
        console.print(f"Allowed hosts: {', '.join(http.allowed_hosts)}")
    else:
        console.print("Allowed hosts: [dim]none (http.call denies every host)[/dim]")
    console.print(f"HTTP timeout: {http.default_timeout_seconds}s default, {http.max_timeout_seconds}s max")
    console.print(f"HTTP transport: {config.gateway.host}:{config.gateway.port}")

    problems = validate_startup_config(config)
    if problems:
        console.print("\n[red]Startup would fail:[/red]")
        for problem in problems:
            console.print(f"  [red]✗[/red] {problem}")
    else:
        console.print("\n[green]✓[/green] Ready to start")
