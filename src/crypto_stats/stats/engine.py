"""Read-only statistics over stored snapshots."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from crypto_stats.core.config import StatsConfig
from crypto_stats.core.exceptions import NoDataError
from crypto_stats.core.models import AssetId, DeviationResult, StatsResult, parse_asset
from crypto_stats.ingestion.store import SnapshotStore

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 100


def population_stats(prices: Sequence[float]) -> tuple[float, float]:
    """Return (mean, population standard deviation) of prices.

    Divides by N, not N - 1. A single price has deviation 0.0.

    Raises:
        ValueError: If prices is empty.
    """
    if len(prices) == 0:
        raise ValueError("prices must not be empty")
    values = np.asarray(prices, dtype=float)
    mean = float(values.mean())
    if len(values) == 1:
        return mean, 0.0
    return mean, float(values.std(ddof=0))


class StatsEngine:
    """Answers latest-value and rolling-deviation queries.

    Performs no retries; storage errors propagate unchanged.

    Parameters
    ----------
    store : SnapshotStore
        Snapshot persistence to read from.
    window : int
        Maximum number of most recent snapshots in the deviation. Default: 100.
    """

    def __init__(self, store: SnapshotStore, window: int = DEFAULT_WINDOW) -> None:
        if window < 1:
            raise ValueError("window must be >= 1")
        self._store = store
        self._window = window

    @classmethod
    def from_config(cls, config: StatsConfig, store: SnapshotStore) -> StatsEngine:
        return cls(store, window=config.deviation_window)

    @property
    def window(self) -> int:
        return self._window

    async def latest_stats(self, asset: str | AssetId) -> StatsResult:
        """Project the most recent snapshot for an asset.

        Raises:
            InvalidAssetError: asset is not supported (checked before I/O).
            NoDataError: no snapshots stored for the asset.
        """
        asset_id = parse_asset(asset)
        snapshot = await self._store.latest(asset_id)
        if snapshot is None:
            raise NoDataError(
                f"No data available for {asset_id}",
                context={"asset": str(asset_id)},
            )
        return StatsResult(
            price=snapshot.price,
            market_cap=snapshot.market_cap,
            price_change_24h=snapshot.price_change_24h,
            last_updated=snapshot.observed_at,
        )

    async def price_deviation(self, asset: str | AssetId) -> DeviationResult:
        """Population mean and standard deviation of the newest prices.

        Raises:
            InvalidAssetError: asset is not supported (checked before I/O).
            NoDataError: no snapshots stored for the asset.
        """
        asset_id = parse_asset(asset)
        snapshots = await self._store.recent(asset_id, self._window)
        if not snapshots:
            raise NoDataError(
                f"No price data available for {asset_id}",
                context={"asset": str(asset_id)},
            )

        mean, deviation = population_stats([s.price for s in snapshots])
        logger.debug(
            "Deviation for %s over %d samples: mean=%f std=%f",
            asset_id, len(snapshots), mean, deviation,
        )
        return DeviationResult(
            deviation=round(deviation, 2),
            sample_size=len(snapshots),
            mean=round(mean, 2),
        )
