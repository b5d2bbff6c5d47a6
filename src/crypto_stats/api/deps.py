"""Dependency injection for FastAPI routes."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from crypto_stats.core.config import CryptoStatsConfig
from crypto_stats.ingestion.scheduler import IngestScheduler
from crypto_stats.ingestion.store import SqliteSnapshotStore
from crypto_stats.quotes.provider import QuoteSource
from crypto_stats.stats.engine import StatsEngine


@dataclass
class AppState:
    """Shared application state, attached to app.state during lifespan."""

    config: CryptoStatsConfig
    store: SqliteSnapshotStore
    source: QuoteSource
    engine: StatsEngine
    scheduler: IngestScheduler


def get_app_state(request: Request) -> AppState:
    """Dependency: retrieve AppState from the request."""
    return request.app.state.app_state


def get_engine(request: Request) -> StatsEngine:
    """Dependency: retrieve the stats engine."""
    return request.app.state.app_state.engine


def get_scheduler(request: Request) -> IngestScheduler:
    """Dependency: retrieve the ingestion scheduler."""
    return request.app.state.app_state.scheduler
