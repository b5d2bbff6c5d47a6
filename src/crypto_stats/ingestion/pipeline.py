"""Ingestion pipeline: one batch fetch, mapped to snapshots, appended once."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime

from pydantic import ValidationError

from crypto_stats.core.config import IngestionConfig
from crypto_stats.core.exceptions import FetchError
from crypto_stats.core.models import (
    SUPPORTED_ASSETS,
    AssetId,
    IngestResult,
    Quote,
    Snapshot,
    utcnow,
)
from crypto_stats.ingestion.store import SnapshotStore
from crypto_stats.quotes.provider import QuoteSource

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], datetime]


class IngestionPipeline:
    """Fetches quotes for every supported asset and appends them as one batch.

    Not reentrant-safe against itself: overlapping ``ingest_once`` calls may
    store duplicate batches. Callers that need single-flight execution must
    serialize invocations (``IngestScheduler`` does).

    Parameters
    ----------
    source : QuoteSource
        Upstream quote provider. Called once per attempt with the full
        asset set.
    store : SnapshotStore
        Append-only snapshot persistence.
    max_retries : int
        Additional attempts after the first failed fetch. Default: 3.
    retry_delay : float
        Fixed seconds between attempts. Default: 2.0.
    assets : Iterable[AssetId] | None
        Assets to ingest. Defaults to every supported asset.
    sleep, clock
        Injectable for tests; default to ``asyncio.sleep`` and UTC now.
    """

    def __init__(
        self,
        source: QuoteSource,
        store: SnapshotStore,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        assets: Iterable[AssetId] | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = utcnow,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self._source = source
        self._store = store
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._assets = tuple(assets) if assets is not None else SUPPORTED_ASSETS
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        config: IngestionConfig,
        source: QuoteSource,
        store: SnapshotStore,
        **kwargs,
    ) -> IngestionPipeline:
        return cls(
            source,
            store,
            max_retries=config.max_retries,
            retry_delay=config.retry_delay,
            **kwargs,
        )

    async def ingest_once(self) -> IngestResult:
        """Run one ingestion cycle.

        Returns:
            IngestResult describing which assets were stored or skipped.

        Raises:
            FetchError: The quote source failed on every attempt.
            StoreError: The batch append failed (not retried).
        """
        quotes, attempts = await self._fetch_with_retries()

        observed_at = self._clock()
        snapshots: list[Snapshot] = []
        skipped: list[AssetId] = []
        for asset in self._assets:
            snapshot = self._build_snapshot(asset, quotes.get(asset), observed_at)
            if snapshot is None:
                skipped.append(asset)
            else:
                snapshots.append(snapshot)

        if snapshots:
            await self._store.append(snapshots)
            logger.info(
                "Ingested %d/%d assets at %s",
                len(snapshots), len(self._assets), observed_at.isoformat(),
            )
        else:
            logger.warning("No usable quotes in this cycle; nothing stored")

        return IngestResult(
            observed_at=observed_at,
            stored=[s.asset_id for s in snapshots],
            skipped=skipped,
            attempts=attempts,
        )

    async def _fetch_with_retries(self) -> tuple[dict[AssetId, Quote], int]:
        """Call the quote source with a bounded, fixed-delay retry loop."""
        last_error: FetchError | None = None
        total = self._max_retries + 1

        for attempt in range(1, total + 1):
            try:
                quotes = await self._source.fetch_batch(self._assets)
                return quotes, attempt
            except FetchError as e:
                last_error = e
                if attempt < total:
                    logger.warning(
                        "Quote fetch attempt %d/%d failed: %s. Retrying in %.1fs.",
                        attempt, total, e, self._retry_delay,
                    )
                    await self._sleep(self._retry_delay)

        raise FetchError(
            f"Quote fetch failed after {total} attempts: {last_error}",
            context={**(last_error.context if last_error else {}), "attempts": total},
        ) from last_error

    @staticmethod
    def _build_snapshot(
        asset: AssetId, quote: Quote | None, observed_at: datetime
    ) -> Snapshot | None:
        if quote is None or quote.price is None:
            logger.warning("No usable price for %s: %r", asset, quote)
            return None
        try:
            return Snapshot(
                asset_id=asset,
                price=quote.price,
                market_cap=quote.market_cap,
                price_change_24h=quote.price_change_24h,
                observed_at=observed_at,
            )
        except ValidationError as e:
            logger.warning("Rejected quote for %s: %s", asset, e.errors()[0]["msg"])
            return None
