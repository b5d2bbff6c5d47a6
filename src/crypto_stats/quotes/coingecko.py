"""CoinGecko /simple/price client: one batched request per ingest attempt.

Uses the ``/simple/price`` endpoint via httpx. One request carries every
requested asset id, so a whole ingestion cycle costs one upstream call.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from typing import Any

import httpx

from crypto_stats.core.config import QuoteSourceConfig
from crypto_stats.core.exceptions import FetchError
from crypto_stats.core.models import AssetId, Quote

logger = logging.getLogger(__name__)

_SIMPLE_PRICE_PATH = "/simple/price"
_VS_CURRENCY = "usd"
_API_KEY_HEADER = "x-cg-demo-api-key"
_USER_AGENT = "crypto-stats/0.1"


def _as_float(value: Any) -> float | None:
    """Coerce a payload value to a finite float, or None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    result = float(value)
    if math.isnan(result) or math.isinf(result):
        return None
    return result


class CoinGeckoAdapter:
    """Transforms a CoinGecko ``/simple/price`` payload into Quote records.

    Expected shape::

        {"bitcoin": {"usd": 40000, "usd_market_cap": 8e11, "usd_24h_change": 3.4}}
    """

    def adapt(
        self, raw_data: Any, asset_ids: Iterable[AssetId]
    ) -> dict[AssetId, Quote]:
        if not isinstance(raw_data, dict):
            raise FetchError(
                f"Unexpected CoinGecko payload type: {type(raw_data).__name__}",
                context={"payload_type": type(raw_data).__name__},
            )

        quotes: dict[AssetId, Quote] = {}
        for asset in asset_ids:
            entry = raw_data.get(asset.value)
            if not isinstance(entry, dict):
                continue
            quotes[asset] = Quote(
                price=_as_float(entry.get(_VS_CURRENCY)),
                market_cap=_as_float(entry.get(f"{_VS_CURRENCY}_market_cap")),
                price_change_24h=_as_float(entry.get(f"{_VS_CURRENCY}_24h_change")),
            )
        return quotes


class CoinGeckoQuoteSource:
    """Fetches current quotes from CoinGecko.

    Use via ``async with CoinGeckoQuoteSource(config) as source:`` or call
    ``close()`` when done.

    Parameters
    ----------
    config : QuoteSourceConfig
        Base URL, optional demo API key and request timeout.
    adapter : CoinGeckoAdapter | None
        Custom adapter instance. Uses default if None.
    """

    def __init__(
        self,
        config: QuoteSourceConfig,
        adapter: CoinGeckoAdapter | None = None,
    ) -> None:
        self._config = config
        self._adapter = adapter or CoinGeckoAdapter()
        headers = {"User-Agent": _USER_AGENT, "Accept": "application/json"}
        if config.api_key:
            headers[_API_KEY_HEADER] = config.api_key
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers=headers,
            timeout=httpx.Timeout(config.request_timeout),
            follow_redirects=True,
        )

    async def __aenter__(self) -> CoinGeckoQuoteSource:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client. Called automatically by __aexit__."""
        await self._client.aclose()

    async def fetch_batch(
        self, asset_ids: Iterable[AssetId]
    ) -> dict[AssetId, Quote]:
        """Fetch quotes for all assets in one ``/simple/price`` request.

        Raises:
            FetchError: Transport error, non-2xx status, or malformed payload.
        """
        assets = list(asset_ids)
        url = f"{self._config.base_url}{_SIMPLE_PRICE_PATH}"
        params = {
            "ids": ",".join(a.value for a in assets),
            "vs_currencies": _VS_CURRENCY,
            "include_market_cap": "true",
            "include_24hr_change": "true",
        }

        try:
            response = await self._client.get(_SIMPLE_PRICE_PATH, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "CoinGecko HTTP error: %s %s",
                e.response.status_code,
                e.response.text[:200],
            )
            raise FetchError(
                f"HTTP {e.response.status_code} from {url}",
                context={"url": url, "status_code": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            logger.error("CoinGecko request error: %s", e)
            raise FetchError(
                f"Request to {url} failed: {e}",
                context={"url": url, "status_code": None},
            ) from e
        except ValueError as e:
            raise FetchError(
                f"Unparseable JSON from {url}",
                context={"url": url, "status_code": response.status_code},
            ) from e

        try:
            quotes = self._adapter.adapt(data, assets)
        except FetchError as e:
            raise FetchError(
                str(e),
                context={**e.context, "url": url, "status_code": response.status_code},
            ) from e
        logger.debug("CoinGecko returned quotes for %d/%d assets", len(quotes), len(assets))
        return quotes
