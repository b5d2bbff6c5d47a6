"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crypto_stats.api.deps import AppState
from crypto_stats.api.routes import router
from crypto_stats.core.config import CryptoStatsConfig, load_config
from crypto_stats.core.exceptions import (
    ConfigError,
    CryptoStatsError,
    IngestError,
    InvalidAssetError,
    NoDataError,
    StoreError,
)
from crypto_stats.core.models import utcnow
from crypto_stats.ingestion.pipeline import IngestionPipeline
from crypto_stats.ingestion.scheduler import IngestScheduler
from crypto_stats.ingestion.store import create_store
from crypto_stats.quotes.coingecko import CoinGeckoQuoteSource
from crypto_stats.quotes.provider import QuoteSource
from crypto_stats.stats.engine import StatsEngine

logger = logging.getLogger(__name__)

# Checked in order; first isinstance match wins.
_STATUS_MAP: list[tuple[type[CryptoStatsError], int]] = [
    (InvalidAssetError, 400),
    (NoDataError, 404),
    (IngestError, 502),
    (StoreError, 500),
    (ConfigError, 500),
]


def _status_for(exc: CryptoStatsError) -> int:
    for exc_type, status in _STATUS_MAP:
        if isinstance(exc, exc_type):
            return status
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown lifecycle."""
    config = app.state._pending_config or load_config()
    store = await create_store(config.storage)

    source = app.state._pending_source
    owns_source = source is None
    if owns_source:
        source = CoinGeckoQuoteSource(config.quote_source)

    pipeline = IngestionPipeline.from_config(config.ingestion, source, store)
    scheduler = IngestScheduler.from_config(config.scheduler, pipeline)
    engine = StatsEngine.from_config(config.stats, store)

    app.state.app_state = AppState(
        config=config,
        store=store,
        source=source,
        engine=engine,
        scheduler=scheduler,
    )

    if config.scheduler.enabled:
        scheduler.start()

    yield

    await scheduler.stop()
    if owns_source:
        await source.close()
    await store.close()


def create_app(
    config: CryptoStatsConfig | None = None,
    quote_source: QuoteSource | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``quote_source`` replaces the CoinGecko client; the caller keeps
    ownership of it.
    """
    import crypto_stats

    app = FastAPI(
        title="Crypto Stats API",
        description="Scheduled crypto price snapshots with rolling statistics",
        version=crypto_stats.__version__,
        lifespan=lifespan,
    )

    # Stash collaborators so lifespan can retrieve them
    app.state._pending_config = config
    app.state._pending_source = quote_source

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.exception_handler(CryptoStatsError)
    async def crypto_stats_exception_handler(request: Request, exc: CryptoStatsError):
        status = _status_for(exc)
        if status >= 500:
            logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
        content = {
            "error": type(exc).__name__,
            "detail": str(exc),
            "timestamp": utcnow().isoformat(),
        }
        if isinstance(exc, InvalidAssetError):
            content["valid_coins"] = exc.context.get("valid_assets", [])
        return JSONResponse(status_code=status, content=content)

    return app
