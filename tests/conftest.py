"""Shared pytest fixtures for crypto-stats."""

from datetime import datetime, timedelta, timezone

import pytest

from crypto_stats.core.config import StorageConfig
from crypto_stats.core.models import AssetId, Quote, Snapshot, StorageBackend
from crypto_stats.ingestion.store import SqliteSnapshotStore

BASE_TIME = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


class FakeQuoteSource:
    """Scripted QuoteSource: each call pops the next outcome.

    An outcome is either a dict[AssetId, Quote] to return or an exception
    instance to raise. The last outcome repeats once the script runs out.
    """

    def __init__(self, *outcomes):
        self._outcomes = list(outcomes)
        self.calls: list[tuple[AssetId, ...]] = []

    async def fetch_batch(self, asset_ids):
        self.calls.append(tuple(asset_ids))
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def make_source():
    """Factory for FakeQuoteSource."""
    return FakeQuoteSource


@pytest.fixture
def full_quotes() -> dict[AssetId, Quote]:
    return {
        AssetId.BITCOIN: Quote(price=40000.0, market_cap=8e11, price_change_24h=3.4),
        AssetId.ETHEREUM: Quote(price=2500.0, market_cap=3e11, price_change_24h=-1.2),
        AssetId.MATIC: Quote(price=0.85, market_cap=8e9, price_change_24h=0.5),
    }


@pytest.fixture
def make_snapshot():
    """Factory for Snapshot with overridable defaults."""

    def _make(**overrides):
        defaults = dict(
            asset_id=AssetId.BITCOIN,
            price=40000.0,
            market_cap=8e11,
            price_change_24h=3.4,
            observed_at=BASE_TIME,
        )
        defaults.update(overrides)
        return Snapshot(**defaults)

    return _make


@pytest.fixture
def make_series(make_snapshot):
    """Factory for an hourly price series, oldest first."""

    def _make(prices, asset_id=AssetId.BITCOIN, start=BASE_TIME):
        return [
            make_snapshot(
                asset_id=asset_id,
                price=p,
                observed_at=start + timedelta(hours=i),
            )
            for i, p in enumerate(prices)
        ]

    return _make


@pytest.fixture
async def store():
    """An initialized in-memory SqliteSnapshotStore."""
    config = StorageConfig(backend=StorageBackend.SQLITE, sqlite_path=":memory:")
    s = SqliteSnapshotStore(config)
    await s.initialize()
    yield s
    await s.close()
