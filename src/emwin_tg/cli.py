"""CLI entry point."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from emwin_tg.core.config import Settings
    from emwin_tg.sources import Source

app = typer.Typer(
    name="emwin-tg",
    help="Stream EMWIN products from the NWS telecommunications gateway",
    no_args_is_help=True,
)
console = Console()

logger = logging.getLogger("emwin_tg.cli")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _resolve_source(name: str) -> type[Source]:
    from emwin_tg.core.exceptions import ConfigurationError
    from emwin_tg.sources import get_source

    try:
        return get_source(name)
    except ConfigurationError as e:
        raise typer.BadParameter(str(e), param_hint="--source") from e


@app.command()
def version() -> None:
    """Show version."""
    from emwin_tg import __version__

    console.print(f"emwin-tg {__version__}")


@app.command()
def info() -> None:
    """Show system information."""
    import sys

    from emwin_tg import __version__
    from emwin_tg.core.config import get_settings

    settings = get_settings()
    console.print(f"[bold]emwin-tg[/bold] {__version__}")
    console.print(f"Python {sys.version}")
    console.print(f"User-Agent: {settings.user_agent}")


@app.command()
def feeds(
    source: str = typer.Option("text", "--source", "-s", help="Feed source: text or image"),
) -> None:
    """List the feeds of a source."""
    from emwin_tg.sources import TG_BASE_URL

    source_cls = _resolve_source(source)

    table = Table(title=source_cls.description or source_cls.name)
    table.add_column("Feed", style="cyan", no_wrap=True)
    table.add_column("Interval", justify="right")
    table.add_column("Ticks", justify="right")
    table.add_column("Archive", no_wrap=True)

    for feed in source_cls.feeds:
        ticks = "∞" if feed.max_ticks is None else str(feed.max_ticks)
        table.add_row(feed.name, f"{feed.interval_seconds:g}s", ticks, feed.url.rsplit("/", 1)[-1])

    console.print(table)
    console.print(f"[dim]Archives are served from {TG_BASE_URL}[/dim]", highlight=False)


@app.command()
def watch(
    source: str = typer.Option("text", "--source", "-s", help="Feed source: text or image"),
    limit: int | None = typer.Option(None, "--limit", "-n", min=1, help="Stop after N products"),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level (default: EMWIN_LOG_LEVEL)"),
) -> None:
    """Print products as they arrive."""
    from emwin_tg.core.config import get_settings

    source_cls = _resolve_source(source)
    settings = get_settings()
    _configure_logging(log_level or settings.log_level)

    try:
        count = asyncio.run(_watch(source_cls, settings, limit))
    except KeyboardInterrupt:
        raise typer.Exit(130) from None

    console.print(f"[dim]{count} products[/dim]")


async def _watch(source_cls: type[Source], settings: Settings, limit: int | None) -> int:
    from emwin_tg.core.stream import ProductStream
    from emwin_tg.models.product import Product

    count = 0
    async with ProductStream(source_cls, settings=settings) as stream:
        async for result in stream:
            if not isinstance(result, Product):
                logger.error("%s", result)
                continue

            if result.mime_type == "text/plain":
                preview = result.text[:100].replace("\r", "").replace("\n", " ")
            else:
                preview = f"<{result.mime_type or 'unknown'}, {len(result.contents):,} bytes>"
            console.print(f"[bold]{escape(result.filename)}[/bold] {escape(preview)}", highlight=False)

            count += 1
            if limit is not None and count >= limit:
                break

        if stream.metrics is not None:
            console.print(str(stream.metrics.summary()), highlight=False)
    return count


if __name__ == "__main__":
    app()
