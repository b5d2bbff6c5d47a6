"""FastAPI route definitions for the crypto-stats API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

import crypto_stats
from crypto_stats.api.deps import AppState, get_app_state, get_engine, get_scheduler
from crypto_stats.api.schemas import (
    DeviationResponse,
    ErrorResponse,
    HealthResponse,
    IngestResponse,
    StatsResponse,
    SupportedCoinsResponse,
    WelcomeResponse,
)
from crypto_stats.core.models import SUPPORTED_ASSETS, utcnow
from crypto_stats.ingestion.scheduler import IngestScheduler
from crypto_stats.stats.engine import StatsEngine

router = APIRouter()

_COIN_QUERY = Query(
    None,
    description="Cryptocurrency identifier",
    examples=[a.value for a in SUPPORTED_ASSETS],
)

_QUERY_ERRORS = {
    400: {"model": ErrorResponse, "description": "Missing or invalid coin"},
    404: {"model": ErrorResponse, "description": "No data stored yet"},
    500: {"model": ErrorResponse, "description": "Server error"},
}


@router.get("/", response_model=WelcomeResponse, tags=["System"])
async def welcome():
    return WelcomeResponse(message="Welcome to the Crypto Stats API")


# -- Stats --


@router.get(
    "/stats",
    response_model=StatsResponse,
    responses=_QUERY_ERRORS,
    tags=["Crypto"],
)
async def latest_stats(
    coin: str | None = _COIN_QUERY,
    engine: StatsEngine = Depends(get_engine),
):
    """Get latest cryptocurrency statistics."""
    result = await engine.latest_stats(coin)
    return StatsResponse(
        price=result.price,
        market_cap=result.market_cap,
        price_change_24h=result.price_change_24h,
        last_updated=result.last_updated,
    )


@router.get(
    "/deviation",
    response_model=DeviationResponse,
    responses=_QUERY_ERRORS,
    tags=["Crypto"],
)
async def price_deviation(
    coin: str | None = _COIN_QUERY,
    engine: StatsEngine = Depends(get_engine),
):
    """Get the price standard deviation over the most recent snapshots."""
    result = await engine.price_deviation(coin)
    return DeviationResponse(
        deviation=result.deviation,
        sample_size=result.sample_size,
        mean=result.mean,
    )


# -- System --


@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(state: AppState = Depends(get_app_state)):
    """System health and basic statistics."""
    storage_ok = await state.store.health_check()
    total = await state.store.count() if storage_ok else 0
    return HealthResponse(
        status="healthy" if storage_ok else "degraded",
        timestamp=utcnow(),
        version=crypto_stats.__version__,
        storage_backend=str(state.config.storage.backend.value),
        storage_ok=storage_ok,
        total_snapshots=total,
        scheduler_running=state.scheduler.running,
        last_ingest_error=state.scheduler.last_error,
    )


@router.get("/supported-coins", response_model=SupportedCoinsResponse, tags=["System"])
async def supported_coins():
    """List supported cryptocurrencies."""
    return SupportedCoinsResponse(
        coins=[a.value for a in SUPPORTED_ASSETS],
        last_updated=utcnow(),
    )


# -- Ingestion --


@router.post(
    "/ingest",
    response_model=IngestResponse,
    responses={502: {"model": ErrorResponse, "description": "Quote provider failed"}},
    tags=["Ingestion"],
)
async def trigger_ingest(scheduler: IngestScheduler = Depends(get_scheduler)):
    """Run one ingestion cycle now, serialized with the periodic trigger."""
    result = await scheduler.run_once()
    return IngestResponse(
        observed_at=result.observed_at,
        stored=[str(a) for a in result.stored],
        skipped=[str(a) for a in result.skipped],
        attempts=result.attempts,
    )
