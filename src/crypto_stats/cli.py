"""Click-based CLI for crypto-stats.

Each command opens the store, calls one library operation and renders the
result. Errors from the library are printed and mapped to exit status 1.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from crypto_stats.core.exceptions import CryptoStatsError

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    return asyncio.run(coro)


def _load_config(ctx: click.Context):
    """Load config lazily, caching on first call."""
    if "config" not in ctx.obj:
        from crypto_stats.core import load_config

        ctx.obj["config"] = load_config(config_path=ctx.obj.get("config_path"))
    return ctx.obj["config"]


async def _create_store_async(config):
    """Create and initialize storage from config."""
    from crypto_stats.ingestion import create_store

    return await create_store(config.storage)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _fail(exc: CryptoStatsError) -> None:
    """Print a library error and exit non-zero."""
    console.print(f"[red]{type(exc).__name__}: {exc}[/red]")
    valid = exc.context.get("valid_assets")
    if valid:
        console.print(f"Valid coins: {', '.join(valid)}")
    raise SystemExit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="CRYPTO_STATS_CONFIG",
    default=None,
    help="Path to crypto-stats.yml config file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging.",
)
@click.version_option(package_name="crypto-stats")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """Crypto Stats: scheduled crypto price snapshots and statistics."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["console"] = console
    _configure_logging(verbose)


# ---------------------------------------------------------------------------
# ingest
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def ingest(ctx: click.Context) -> None:
    """Fetch current quotes once and store a snapshot batch."""

    async def _run():
        from crypto_stats.ingestion import IngestionPipeline
        from crypto_stats.quotes import CoinGeckoQuoteSource

        store = await _create_store_async(config)
        try:
            async with CoinGeckoQuoteSource(config.quote_source) as source:
                pipeline = IngestionPipeline.from_config(config.ingestion, source, store)
                with console.status("Fetching quotes..."):
                    return await pipeline.ingest_once()
        finally:
            await store.close()

    try:
        config = _load_config(ctx)
        result = _run_async(_run())
    except CryptoStatsError as exc:
        _fail(exc)

    console.print(
        f"[green]✓[/green] Stored {result.stored_count} snapshots "
        f"at {result.observed_at.isoformat()}"
        + (f" after {result.attempts} attempts" if result.attempts > 1 else "")
    )
    if result.skipped:
        console.print(
            f"[yellow]Skipped: {', '.join(str(a) for a in result.skipped)}[/yellow]"
        )


# ---------------------------------------------------------------------------
# stats / deviation
# ---------------------------------------------------------------------------


_COIN_OPTION = click.option(
    "--coin",
    type=str,
    required=True,
    help="Cryptocurrency identifier (see 'coins').",
)
_FORMAT_OPTION = click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)


def _query_engine(ctx: click.Context, method: str, coin: str):
    """Open the store, run one StatsEngine query, close the store."""

    async def _run():
        from crypto_stats.stats import StatsEngine

        store = await _create_store_async(config)
        try:
            engine = StatsEngine.from_config(config.stats, store)
            return await getattr(engine, method)(coin)
        finally:
            await store.close()

    try:
        config = _load_config(ctx)
        return _run_async(_run())
    except CryptoStatsError as exc:
        _fail(exc)


@cli.command()
@_COIN_OPTION
@_FORMAT_OPTION
@click.pass_context
def stats(ctx: click.Context, coin: str, output_format: str) -> None:
    """Show the latest stored snapshot for a coin."""
    result = _query_engine(ctx, "latest_stats", coin)

    if output_format == "json":
        click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
        return

    table = Table(title=f"Latest stats: {coin}")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Price (USD)", f"{result.price:,.2f}")
    table.add_row(
        "Market cap (USD)",
        f"{result.market_cap:,.0f}" if result.market_cap is not None else "N/A",
    )
    table.add_row(
        "24h change",
        f"{result.price_change_24h:+.2f}%" if result.price_change_24h is not None else "N/A",
    )
    table.add_row("Last updated", result.last_updated.isoformat())
    console.print(table)


@cli.command()
@_COIN_OPTION
@_FORMAT_OPTION
@click.pass_context
def deviation(ctx: click.Context, coin: str, output_format: str) -> None:
    """Show mean and population standard deviation of recent prices."""
    result = _query_engine(ctx, "price_deviation", coin)

    if output_format == "json":
        click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
        return

    table = Table(title=f"Price deviation: {coin}")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Deviation", f"{result.deviation:,.2f}")
    table.add_row("Mean", f"{result.mean:,.2f}")
    table.add_row("Sample size", str(result.sample_size))
    console.print(table)


# ---------------------------------------------------------------------------
# coins
# ---------------------------------------------------------------------------


@cli.command()
def coins() -> None:
    """List supported coins."""
    from crypto_stats.core import SUPPORTED_ASSETS

    for asset in SUPPORTED_ASSETS:
        click.echo(asset.value)


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", type=str, default=None, help="Bind address. Default: config api.host.")
@click.option("--port", "-p", type=int, default=None, help="Port number. Default: config api.port.")
@click.option("--reload", is_flag=True, default=False, help="Auto-reload on code changes.")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, reload: bool) -> None:
    """Start the REST API server and the periodic ingestion trigger."""
    import uvicorn

    try:
        config = _load_config(ctx)
    except CryptoStatsError as exc:
        _fail(exc)
    host = host or config.api.host
    port = port or config.api.port

    console.print(f"Starting crypto-stats API on [bold]{host}:{port}[/bold]")
    console.print(f"API docs: http://{host}:{port}/docs")

    # The app factory loads its own config, possibly in a reload worker
    if ctx.obj.get("config_path"):
        os.environ["CRYPTO_STATS_CONFIG"] = os.path.abspath(ctx.obj["config_path"])

    uvicorn.run(
        "crypto_stats.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show storage location and snapshot coverage."""

    async def _run():
        store = await _create_store_async(config)
        try:
            return await _gather_stats(store)
        finally:
            await store.close()

    try:
        config = _load_config(ctx)
        stats_by_asset = _run_async(_run())
    except CryptoStatsError as exc:
        _fail(exc)

    table = Table(title="Crypto Stats Status")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Storage backend", config.storage.backend.value)
    table.add_row("Database path", config.storage.sqlite_path)
    table.add_row("Ingest interval", f"{config.scheduler.interval_seconds}s")
    table.add_section()
    for asset, info in stats_by_asset.items():
        table.add_row(f"{asset} snapshots", str(info["count"]))
        table.add_row(f"{asset} latest", info["latest"])

    console.print(table)


async def _gather_stats(store) -> dict:
    """Snapshot count and latest observation per supported asset."""
    from crypto_stats.core import SUPPORTED_ASSETS

    result = {}
    for asset in SUPPORTED_ASSETS:
        latest = await store.latest(asset)
        result[asset.value] = {
            "count": await store.count(asset),
            "latest": latest.observed_at.isoformat() if latest else "N/A",
        }
    return result


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
