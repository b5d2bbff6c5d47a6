"""Integration test fixtures: real SQLite on disk, CoinGecko mocked with respx."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest
import respx

from crypto_stats.core.config import (
    CryptoStatsConfig,
    IngestionConfig,
    QuoteSourceConfig,
    SchedulerConfig,
    StorageConfig,
)
from crypto_stats.core.models import StorageBackend
from crypto_stats.ingestion.store import SqliteSnapshotStore, create_store

COINGECKO_PRICE_URL = "https://api.coingecko.com/api/v3/simple/price"


def coingecko_payload(btc: float = 40000.0, eth: float = 2500.0, matic: float = 0.85) -> dict:
    """A /simple/price body shaped like the live API."""
    return {
        "bitcoin": {"usd": btc, "usd_market_cap": btc * 19_600_000, "usd_24h_change": 1.25},
        "ethereum": {"usd": eth, "usd_market_cap": eth * 120_000_000, "usd_24h_change": -0.8},
        "matic-network": {"usd": matic, "usd_market_cap": matic * 9_300_000_000, "usd_24h_change": 4.1},
    }


@pytest.fixture
def make_payload():
    return coingecko_payload


@pytest.fixture
def integration_config(tmp_path: Path) -> CryptoStatsConfig:
    """Config with on-disk SQLite, fast retries and no background trigger."""
    return CryptoStatsConfig(
        quote_source=QuoteSourceConfig(request_timeout=2.0),
        ingestion=IngestionConfig(max_retries=3, retry_delay=0.0),
        scheduler=SchedulerConfig(enabled=False),
        storage=StorageConfig(
            backend=StorageBackend.SQLITE,
            sqlite_path=str(tmp_path / "data" / "integration.db"),
        ),
    )


@pytest.fixture
async def integration_store(integration_config: CryptoStatsConfig) -> SqliteSnapshotStore:
    """An initialized on-disk SqliteSnapshotStore."""
    store = await create_store(integration_config.storage)
    yield store
    await store.close()


@pytest.fixture
def coingecko():
    """respx router with the CoinGecko price endpoint registered."""
    with respx.mock(assert_all_called=False) as router:
        route = router.get(COINGECKO_PRICE_URL).mock(
            return_value=httpx.Response(200, json=coingecko_payload())
        )
        yield route
