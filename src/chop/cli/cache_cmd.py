"""CLI commands for the cache.

Usage:
    chop cache clear
"""

from __future__ import annotations

import asyncio

import typer

from chop.cache.backend import close_backend, init_backend
from chop.cache.typed import TypedCache

app = typer.Typer(help="Manage the Redis cache")


async def _clear() -> bool:
    client = await init_backend()
    if client is None:
        return False
    try:
        await TypedCache.clear_cache()
    finally:
        await close_backend()
    return True


@app.command("clear")
def clear() -> None:
    """Flush every cached entry of every kind."""
    from rich.console import Console

    console = Console()

    if not asyncio.run(_clear()):
        console.print(
            "[yellow]Caching is disabled[/yellow] (REDIS_URL/REDIS_TOKEN not set or unreachable)"
        )
        raise typer.Exit(code=1)
    console.print("[green]Cache cleared[/green]")
