"""
CLI for inspecting a registry cache directory.

Commands:
    regcache path KEY - Show where a key is stored
    regcache meta KEY - Show size, type and freshness of an entry
    regcache put KEY FILE - Store a local file under a key
    regcache cat KEY - Write an entry to stdout
    regcache config - Show current configuration
    regcache version - Print version
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from regcache import __version__
from regcache.cache import Cache
from regcache.config import DEFAULT_TTL_SECONDS, Settings, clear_settings_cache, get_settings
from regcache.exceptions import RegCacheError
from regcache.logging import setup_logging
from regcache.types import CacheStatus, generate_id

app = typer.Typer(
    name="regcache",
    help="Registry cache - inspect and populate a proxy's disk cache",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

CacheDirOption = Annotated[
    Optional[Path],
    typer.Option("--cache-dir", "-d", help="Cache root (overrides REGCACHE_CACHE_DIR)"),
]
FriendlyOption = Annotated[
    Optional[bool],
    typer.Option("--friendly/--hashed", help="Path layout (overrides REGCACHE_FRIENDLY_NAMES)"),
]

_STATUS_STYLES = {
    CacheStatus.FRESH: "green",
    CacheStatus.STALE: "yellow",
    CacheStatus.NOT_FOUND: "red",
}


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except Exception:
        return None


def _open_cache(cache_dir: Path | None, friendly: bool | None) -> Cache:
    """Build a Cache from settings, applying command-line overrides."""
    settings = _get_settings_safe()
    if settings is None and cache_dir is None:
        error_console.print(
            "[red]Error:[/red] No cache directory. "
            "Pass --cache-dir or set REGCACHE_CACHE_DIR."
        )
        raise typer.Exit(1)

    if settings is None:
        return Cache(path=cache_dir, ttl=DEFAULT_TTL_SECONDS, friendly_names=bool(friendly))

    setup_logging(log_level=settings.LOG_LEVEL, log_file=settings.LOG_FILE)
    return Cache(
        path=cache_dir or settings.CACHE_DIR,
        ttl=settings.TTL_SECONDS,
        friendly_names=settings.FRIENDLY_NAMES if friendly is None else friendly,
        chunk_size=settings.CHUNK_SIZE,
    )


@app.command()
def path(
    key: Annotated[str, typer.Argument(help="Cache key, e.g. /lodash/-/lodash-4.17.21.tgz")],
    cache_dir: CacheDirOption = None,
    friendly: FriendlyOption = None,
) -> None:
    """Show the on-disk location for a key."""
    cache = _open_cache(cache_dir, friendly)
    info = cache.get_path(key)

    table = Table(title=key, show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("dir", "/".join(info.dir))
    table.add_row("file", info.file)
    table.add_row("rel", info.rel)
    table.add_row("full", str(info.full))
    console.print(table)


@app.command()
def meta(
    key: Annotated[str, typer.Argument(help="Cache key")],
    cache_dir: CacheDirOption = None,
    friendly: FriendlyOption = None,
) -> None:
    """Show size, content type and freshness of an entry.

    Exits with status 1 when the entry is not cached.
    """
    cache = _open_cache(cache_dir, friendly)
    try:
        result = asyncio.run(cache.meta(key, request_id=generate_id("cli")))
    except RegCacheError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    style = _STATUS_STYLES[result.status]
    console.print(f"[bold]Status:[/bold] [{style}]{result.status.value}[/{style}]")
    if not result.exists:
        raise typer.Exit(1)
    console.print(f"[bold]Size:[/bold] {result.size}")
    console.print(f"[bold]Type:[/bold] {result.type}")
    if result.mtime is not None:
        console.print(f"[bold]Modified:[/bold] {result.mtime.isoformat()}")


@app.command()
def put(
    key: Annotated[str, typer.Argument(help="Cache key")],
    source: Annotated[
        Path,
        typer.Argument(exists=True, dir_okay=False, readable=True, help="File to store"),
    ],
    cache_dir: CacheDirOption = None,
    friendly: FriendlyOption = None,
) -> None:
    """Store a local file in the cache under a key."""
    cache = _open_cache(cache_dir, friendly)

    async def _put() -> None:
        with source.open("rb") as fh:
            result = await cache.write(key, fh, request_id=generate_id("cli"))
        console.print(
            f"[green]Stored[/green] {result.size} bytes at {cache.get_path(key).rel}"
        )

    try:
        asyncio.run(_put())
    except RegCacheError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def cat(
    key: Annotated[str, typer.Argument(help="Cache key")],
    cache_dir: CacheDirOption = None,
    friendly: FriendlyOption = None,
) -> None:
    """Write a cached entry to stdout."""
    cache = _open_cache(cache_dir, friendly)
    out = typer.get_binary_stream("stdout")

    async def _cat() -> None:
        async with cache.read(key, request_id=generate_id("cli")) as stream:
            async for chunk in stream:
                out.write(chunk)
        out.flush()

    try:
        asyncio.run(_cat())
    except RegCacheError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def config() -> None:
    """Show current configuration."""
    console.print()
    console.print("[bold]Registry Cache Configuration[/bold]")
    console.print()

    settings = _get_settings_safe()

    if settings is None:
        error_console.print("[red]Configuration is invalid or incomplete.[/red]")
        error_console.print()
        error_console.print("Required environment variables:")
        error_console.print("  - REGCACHE_CACHE_DIR")
        error_console.print()
        error_console.print("Create a .env file or set environment variables.")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in settings.as_display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)
    console.print()


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"regcache version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
