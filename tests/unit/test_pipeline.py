"""Tests for crypto_stats.ingestion.pipeline."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from crypto_stats.core.config import IngestionConfig
from crypto_stats.core.exceptions import FetchError, StoreError
from crypto_stats.core.models import SUPPORTED_ASSETS, AssetId, Quote
from crypto_stats.ingestion.pipeline import IngestionPipeline

BASE_TIME = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_pipeline(store, sleep):
    def _make(source, **kwargs):
        kwargs.setdefault("sleep", sleep)
        kwargs.setdefault("clock", lambda: BASE_TIME)
        return IngestionPipeline(source, store, **kwargs)

    return _make


class TestConstruction:
    async def test_negative_retries_rejected(self, store, make_source):
        with pytest.raises(ValueError, match="max_retries"):
            IngestionPipeline(make_source({}), store, max_retries=-1)

    async def test_from_config(self, store, make_source):
        pipeline = IngestionPipeline.from_config(
            IngestionConfig(max_retries=1, retry_delay=0.5), make_source({}), store
        )
        assert pipeline._max_retries == 1
        assert pipeline._retry_delay == 0.5


class TestIngestOnce:
    async def test_stores_all_assets_with_shared_timestamp(
        self, store, make_source, make_pipeline, full_quotes
    ):
        source = make_source(full_quotes)
        result = await make_pipeline(source).ingest_once()

        assert result.stored_count == 3
        assert result.skipped == []
        assert result.attempts == 1
        assert result.observed_at == BASE_TIME
        assert await store.count() == 3
        for asset in SUPPORTED_ASSETS:
            assert (await store.latest(asset)).observed_at == BASE_TIME

    async def test_single_batch_request_for_all_assets(
        self, make_source, make_pipeline, full_quotes
    ):
        source = make_source(full_quotes)
        await make_pipeline(source).ingest_once()
        assert source.calls == [SUPPORTED_ASSETS]

    async def test_fields_copied_from_quote(self, store, make_source, make_pipeline, full_quotes):
        await make_pipeline(make_source(full_quotes)).ingest_once()
        eth = await store.latest(AssetId.ETHEREUM)
        assert eth.price == 2500.0
        assert eth.market_cap == 3e11
        assert eth.price_change_24h == -1.2

    async def test_missing_asset_skipped(self, store, make_source, make_pipeline, full_quotes):
        del full_quotes[AssetId.MATIC]
        result = await make_pipeline(make_source(full_quotes)).ingest_once()

        assert result.stored == [AssetId.BITCOIN, AssetId.ETHEREUM]
        assert result.skipped == [AssetId.MATIC]
        assert await store.count() == 2
        assert await store.count(AssetId.MATIC) == 0

    async def test_missing_price_skipped(self, store, make_source, make_pipeline, full_quotes):
        full_quotes[AssetId.BITCOIN] = Quote(market_cap=8e11)
        result = await make_pipeline(make_source(full_quotes)).ingest_once()
        assert AssetId.BITCOIN in result.skipped
        assert await store.latest(AssetId.BITCOIN) is None

    async def test_negative_price_skipped(self, store, make_source, make_pipeline, full_quotes):
        full_quotes[AssetId.ETHEREUM] = Quote(price=-5.0)
        result = await make_pipeline(make_source(full_quotes)).ingest_once()
        assert result.skipped == [AssetId.ETHEREUM]
        assert await store.count() == 2

    async def test_zero_price_accepted(self, store, make_source, make_pipeline, full_quotes):
        full_quotes[AssetId.MATIC] = Quote(price=0.0)
        result = await make_pipeline(make_source(full_quotes)).ingest_once()
        assert AssetId.MATIC in result.stored
        assert (await store.latest(AssetId.MATIC)).price == 0.0

    async def test_missing_optional_fields_stored_as_null(
        self, store, make_source, make_pipeline
    ):
        quotes = {AssetId.BITCOIN: Quote(price=100.0)}
        await make_pipeline(make_source(quotes)).ingest_once()
        snapshot = await store.latest(AssetId.BITCOIN)
        assert snapshot.market_cap is None
        assert snapshot.price_change_24h is None

    async def test_no_usable_quotes_appends_nothing(self, make_source, sleep):
        mock_store = AsyncMock()
        pipeline = IngestionPipeline(make_source({}), mock_store, sleep=sleep)

        result = await pipeline.ingest_once()

        assert result.stored == []
        assert result.skipped == list(SUPPORTED_ASSETS)
        mock_store.append.assert_not_called()

    async def test_custom_asset_subset(self, store, make_source, make_pipeline, full_quotes):
        source = make_source(full_quotes)
        result = await make_pipeline(source, assets=[AssetId.BITCOIN]).ingest_once()
        assert source.calls == [(AssetId.BITCOIN,)]
        assert result.stored == [AssetId.BITCOIN]
        assert await store.count() == 1

    async def test_consecutive_cycles_accumulate(self, store, make_source, full_quotes, sleep):
        times = iter([BASE_TIME, BASE_TIME.replace(hour=12)])
        pipeline = IngestionPipeline(
            make_source(full_quotes), store, sleep=sleep, clock=lambda: next(times)
        )
        await pipeline.ingest_once()
        await pipeline.ingest_once()
        assert await store.count(AssetId.BITCOIN) == 2
        assert (await store.latest(AssetId.BITCOIN)).observed_at.hour == 12


class TestRetries:
    async def test_total_failure_raises_after_all_attempts(
        self, store, make_source, make_pipeline, sleep
    ):
        source = make_source(FetchError("HTTP 503", context={"status_code": 503}))

        with pytest.raises(FetchError, match="after 4 attempts") as exc_info:
            await make_pipeline(source).ingest_once()

        assert len(source.calls) == 4
        assert sleep.delays == [2.0, 2.0, 2.0]
        assert exc_info.value.context["attempts"] == 4
        assert exc_info.value.context["status_code"] == 503
        assert isinstance(exc_info.value.__cause__, FetchError)
        assert await store.count() == 0

    async def test_fail_once_then_succeed(
        self, store, make_source, make_pipeline, sleep, full_quotes
    ):
        source = make_source(FetchError("timeout"), full_quotes)

        result = await make_pipeline(source).ingest_once()

        assert result.attempts == 2
        assert len(source.calls) == 2
        assert sleep.delays == [2.0]
        assert await store.count() == 3

    async def test_zero_retries_single_attempt(self, make_source, make_pipeline, sleep):
        source = make_source(FetchError("down"))
        with pytest.raises(FetchError, match="after 1 attempts"):
            await make_pipeline(source, max_retries=0).ingest_once()
        assert len(source.calls) == 1
        assert sleep.delays == []

    async def test_custom_delay(self, make_source, make_pipeline, sleep, full_quotes):
        source = make_source(FetchError("x"), FetchError("y"), full_quotes)
        await make_pipeline(source, retry_delay=0.25).ingest_once()
        assert sleep.delays == [0.25, 0.25]

    async def test_non_fetch_errors_not_retried(self, make_source, make_pipeline, sleep):
        source = make_source(RuntimeError("bug"))
        with pytest.raises(RuntimeError):
            await make_pipeline(source).ingest_once()
        assert len(source.calls) == 1
        assert sleep.delays == []

    async def test_store_failure_not_retried(self, make_source, sleep, full_quotes):
        mock_store = AsyncMock()
        mock_store.append.side_effect = StoreError("disk full")
        source = make_source(full_quotes)
        pipeline = IngestionPipeline(source, mock_store, sleep=sleep)

        with pytest.raises(StoreError):
            await pipeline.ingest_once()
        assert len(source.calls) == 1
        mock_store.append.assert_awaited_once()
