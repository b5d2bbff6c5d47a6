"""Quote provider protocols: how the pipeline asks for prices without knowing the upstream API.

Architecture
------------
The quote system uses an adapter pattern to decouple the upstream provider
from the ingestion pipeline:

    Provider API → QuoteAdapter → dict[AssetId, Quote] → QuoteSource → Pipeline

- **QuoteSource** is the consumer-facing protocol. The ingestion pipeline
  depends only on this interface.

- **QuoteAdapter** transforms a raw provider payload into canonical ``Quote``
  records. Switching providers means writing one adapter and one source.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol, runtime_checkable

from crypto_stats.core.models import AssetId, Quote


@runtime_checkable
class QuoteAdapter(Protocol):
    """Transforms a raw provider payload into Quote records.

    Parameters
    ----------
    raw_data : Any
        The decoded response body from the provider.
    asset_ids : Iterable[AssetId]
        The assets that were requested. Anything else in the payload is
        ignored.

    Returns
    -------
    dict[AssetId, Quote]
        One entry per requested asset the payload mentions. Assets absent
        from the payload are omitted.
    """

    def adapt(
        self, raw_data: Any, asset_ids: Iterable[AssetId]
    ) -> dict[AssetId, Quote]: ...


@runtime_checkable
class QuoteSource(Protocol):
    """Consumer-facing interface for fetching current quotes."""

    async def fetch_batch(
        self, asset_ids: Iterable[AssetId]
    ) -> dict[AssetId, Quote]:
        """Fetch quotes for all requested assets in a single upstream call.

        Raises
        ------
        FetchError
            Network failure, non-success status, or unparseable payload.
        """
        ...
