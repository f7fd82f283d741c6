"""Click CLI for tubecache: inspect the cache and quota, fetch through the facade."""

from __future__ import annotations

import asyncio
import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from tubecache.errors.classify import user_message
from tubecache.errors.exceptions import ConfigurationError

console = Console()
error_console = Console(stderr=True)


def _setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_time=False, show_path=False)],
    )


def _open(**overrides: object):
    from tubecache.core import TubeCache

    try:
        tc = TubeCache.from_config(**overrides)
    except ConfigurationError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    # -v beats the configured level
    ctx = click.get_current_context(silent=True)
    if ctx is None or not (ctx.obj or {}).get("verbose"):
        logging.getLogger("tubecache").setLevel(tc.settings.log_level)
    return tc


@click.group()
@click.version_option(package_name="tubecache")
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug).")
@click.pass_context
def cli(ctx: click.Context, verbose: int) -> None:
    """tubecache: local cache and quota governor for the video API."""
    ctx.obj = {"verbose": verbose}
    _setup_logging(verbose)


# ── cache ──


@cli.group()
def cache() -> None:
    """Cache management commands."""


@cache.command("stats")
def cache_stats() -> None:
    """Show cache statistics."""
    tc = _open()
    try:
        stats = tc.cache_info()
        table = Table(title="Cache Statistics", show_header=True)
        table.add_column("Metric", style="cyan")
        table.add_column("Value")
        table.add_row("Entries", str(stats.total_items))
        table.add_row("Size", stats.formatted_size)
        for name, count in stats.namespaces.items():
            table.add_row(f"  {name}", str(count))
        table.add_row("Preferences", str(stats.preference_items))
        console.print(table)
    finally:
        asyncio.run(tc.close())


@cache.command("clear")
@click.option(
    "--namespace",
    type=click.Choice(["cache", "videos", "blogs", "analytics"]),
    default="cache",
    show_default=True,
    help="Namespace to wipe.",
)
@click.confirmation_option(prompt="Are you sure you want to clear the cache?")
def cache_clear(namespace: str) -> None:
    """Clear one cache namespace."""
    tc = _open()
    try:
        count = tc.engine.clear(namespace)
    finally:
        asyncio.run(tc.close())
    console.print(f"[green]Cleared {count} entries from {namespace}.[/green]")


@cache.command("sweep")
@click.option("--max-mb", type=float, default=None, help="Size bound (defaults to config).")
def cache_sweep(max_mb: float | None) -> None:
    """Remove expired entries, then evict oldest entries over the size bound."""
    tc = _open()
    try:
        expired = tc.engine.evict_expired()
        max_bytes = int(max_mb * 1024 * 1024) if max_mb is not None else None
        evicted = tc.engine.evict_by_size(max_bytes)
    finally:
        asyncio.run(tc.close())
    console.print(f"[green]Expired: {expired}, evicted for size: {evicted}[/green]")


# ── quota ──


@cli.group()
def quota() -> None:
    """Quota inspection and recovery."""


@quota.command("show")
def quota_show() -> None:
    """Show today's quota usage."""
    tc = _open()
    try:
        state = tc.governor.snapshot()
        table = Table(title="API Quota", show_header=True)
        table.add_column("Metric", style="cyan")
        table.add_column("Value")
        table.add_row("Date", state.date_key)
        table.add_row("Used", f"{state.units_consumed:,}")
        table.add_row("Limit", f"{state.daily_limit:,}")
        table.add_row("Remaining", f"{state.remaining:,}")
        table.add_row("Usage", f"{tc.governor.usage_percentage:.1f}%")
        table.add_row("Status", state.status.value)
        console.print(table)
    finally:
        asyncio.run(tc.close())


@quota.command("reset")
@click.confirmation_option(prompt="Reset today's quota counter to zero?")
def quota_reset() -> None:
    """Zero today's quota counter (manual recovery)."""
    tc = _open()
    try:
        tc.governor.reset_today()
    finally:
        asyncio.run(tc.close())
    console.print("[green]Quota reset.[/green]")


# ── fetch ──


@cli.group()
def fetch() -> None:
    """Fetch resources through the cache and quota governor."""


@fetch.command("video")
@click.argument("video_id")
def fetch_video(video_id: str) -> None:
    """Fetch one video by id."""
    from tubecache.types import ResourceKind

    tc = _open()

    async def _run():
        try:
            return await tc.fetch_by_id(ResourceKind.VIDEO, video_id)
        finally:
            await tc.close()

    result = asyncio.run(_run())
    if not _report(result):
        sys.exit(1)
    video = result.value
    table = Table(title=video.title or video.id, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Id", video.id)
    table.add_row("Channel", video.channel_title)
    table.add_row("Duration", video.formatted_duration)
    table.add_row("Views", f"{video.view_count:,}")
    table.add_row("Likes", f"{video.like_count:,}")
    console.print(table)


@fetch.command("videos")
@click.option("--query", type=str, default=None, help="Search term (searches instead of listing).")
@click.option("--page-token", type=str, default=None, help="Pagination cursor.")
@click.option("--max-results", type=click.IntRange(1, 50), default=20, show_default=True)
@click.option("--include-shorts", is_flag=True, default=False, help="Keep videos of 60s or less.")
def fetch_videos(
    query: str | None,
    page_token: str | None,
    max_results: int,
    include_shorts: bool,
) -> None:
    """List the channel's videos, or search them with --query."""
    from tubecache.types import ListParams, ResourceKind

    kind = ResourceKind.SEARCH if query else ResourceKind.CHANNEL_VIDEOS
    params = ListParams(
        page_token=page_token,
        max_results=max_results,
        query=query,
        exclude_shorts=not include_shorts,
    )
    tc = _open()

    async def _run():
        try:
            return await tc.fetch_list(kind, params)
        finally:
            await tc.close()

    result = asyncio.run(_run())
    if not _report(result):
        sys.exit(1)
    page = result.value
    table = Table(title=f"Videos ({result.status.value})", show_header=True)
    table.add_column("Id", style="cyan")
    table.add_column("Title")
    table.add_column("Duration")
    table.add_column("Views")
    for video in page.videos:
        table.add_row(video.id, video.title, video.formatted_duration, f"{video.view_count:,}")
    console.print(table)
    if page.next_page_token:
        console.print(f"Next page: {page.next_page_token}")


def _report(result: object) -> bool:
    """Print degraded outcomes; return True when there is a value to show."""
    from tubecache.types import FetchResult, FetchStatus

    if not isinstance(result, FetchResult):
        return False
    if result.status is FetchStatus.QUOTA_EXHAUSTED:
        error_console.print("[yellow]Daily API quota exhausted; no cached data available.[/yellow]")
        return False
    if result.status is FetchStatus.NOT_FOUND:
        error_console.print("[yellow]Content not found.[/yellow]")
        return False
    if result.status is FetchStatus.ERROR and result.error is not None:
        error_console.print(f"[red]Error:[/red] {user_message(result.error.category)}")
        return False
    if result.status is FetchStatus.PARTIAL:
        error_console.print("[yellow]Partial result: details could not be fetched.[/yellow]")
    return result.value is not None


def main() -> None:
    """Entry point for the CLI."""
    cli()
