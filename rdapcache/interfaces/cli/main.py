"""
CLI Main - Typer-based command-line interface.

Usage:
    rdapcache lookup example.com
    rdapcache lookup 8.8.8.8 --db /tmp/cache.db
    rdapcache bootstrap
    rdapcache init
    rdapcache serve
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

app = typer.Typer(
    name="rdapcache",
    help="rdapcache - Cached RDAP lookups for domains and IP addresses",
    add_completion=False,
)
console = Console()


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Configure logging for every command."""
    from rdapcache.config import get_settings

    level = logging.DEBUG if verbose else get_settings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def lookup(
    query: str = typer.Argument(..., help="Domain name or IP address"),
    db: Path | None = typer.Option(None, "--db", help="SQLite cache path"),
) -> None:
    """Look up RDAP data, using the local cache when possible."""
    asyncio.run(_lookup_async(query, db))


async def _lookup_async(query: str, db: Path | None) -> None:
    """Async lookup implementation."""
    from rdapcache.adapters.sqlite import SQLiteCacheRepository
    from rdapcache.config import get_settings
    from rdapcache.domains.lookup import QueryOrchestrator, StructuredError

    settings = get_settings()
    store = SQLiteCacheRepository(db or settings.db_path)
    await store.initialize()
    orchestrator = QueryOrchestrator.from_settings(settings, store)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task(f"Looking up {query}...", total=None)
            result = await orchestrator.lookup(query)
    finally:
        await orchestrator.aclose()
        await store.close()

    if isinstance(result, StructuredError):
        console.print(
            Panel(
                "\n".join(result.description) or result.title,
                title=f"[red]{result.http_status} {result.title}[/red]",
                style="red",
            )
        )
        raise typer.Exit(1)

    console.print(
        f"[bold cyan]{result.type.value}[/bold cyan] "
        f"[dim]cache {result.cache_status.value}[/dim]"
    )
    console.print_json(json.dumps(result.payload))


@app.command()
def bootstrap() -> None:
    """Load the IANA bootstrap registries and show a summary."""
    asyncio.run(_bootstrap_async())


async def _bootstrap_async() -> None:
    """Async bootstrap implementation."""
    from rdapcache.adapters.rdap import ExecutorConfig, create_http_client
    from rdapcache.config import BootstrapUnavailableError, get_settings
    from rdapcache.domains.bootstrap import (
        BootstrapRegistryCache,
        BootstrapSources,
        RegistryKind,
    )

    settings = get_settings()
    client = create_http_client(ExecutorConfig.from_settings(settings))
    registry = BootstrapRegistryCache(client, sources=BootstrapSources.from_settings(settings))

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task("Loading bootstrap registries...", total=None)
            state = await registry.ensure_fresh()
    except BootstrapUnavailableError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)
    finally:
        await client.aclose()

    table = Table(title="Bootstrap Registries")
    table.add_column("Registry", style="cyan")
    table.add_column("Version")
    table.add_column("Publication")
    table.add_column("Entries", style="green", justify="right")

    for kind in RegistryKind:
        entry = state.registry_for(kind)
        if entry is None:
            table.add_row(kind.value, "-", "-", "0")
            continue
        table.add_row(kind.value, entry.version, entry.publication or "-", str(len(entry.entries)))

    console.print(table)
    console.print(f"[dim]Loaded at {state.last_loaded_at.isoformat()}[/dim]")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Host to bind"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload"),
) -> None:
    """Start the API server."""
    import uvicorn

    console.print("\n[green]Starting rdapcache API server[/green]")
    console.print(f"[dim]http://{host}:{port}[/dim]\n")

    uvicorn.run(
        "rdapcache.interfaces.api:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


@app.command()
def init(
    db: Path | None = typer.Option(None, "--db", help="SQLite cache path"),
) -> None:
    """Create the SQLite cache schema."""
    asyncio.run(_init_async(db))


async def _init_async(db: Path | None) -> None:
    """Async initialization."""
    from rdapcache.adapters.sqlite import SQLiteCacheRepository
    from rdapcache.config import get_settings

    settings = get_settings()
    db_path = db or settings.db_path

    store = SQLiteCacheRepository(db_path)
    try:
        await store.initialize()
        counts = await store.stats()
    finally:
        await store.close()

    console.print("\n[green]Initialization complete![/green]")
    console.print(f"[dim]Database: {db_path}[/dim]")
    console.print(
        f"[dim]Cached networks: {counts['ip_cache']}, domains: {counts['domain_cache']}[/dim]"
    )


@app.command()
def version() -> None:
    """Show version information."""
    from rdapcache import __version__

    console.print(f"rdapcache v{__version__}")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
