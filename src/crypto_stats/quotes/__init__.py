"""Provider-agnostic quote fetching.

Key abstractions:

- ``QuoteSource``: Consumer-facing async interface for fetching a batch of
  current quotes.
- ``QuoteAdapter``: Transforms a raw provider payload into ``Quote`` records.

Built-in implementations:

- ``CoinGeckoQuoteSource``: Fetches from CoinGecko ``/simple/price``.
- ``CoinGeckoAdapter``: Parses the CoinGecko payload into Quotes.
"""

from crypto_stats.quotes.coingecko import CoinGeckoAdapter, CoinGeckoQuoteSource
from crypto_stats.quotes.provider import QuoteAdapter, QuoteSource

__all__ = [
    # Protocols
    "QuoteAdapter",
    "QuoteSource",
    # CoinGecko
    "CoinGeckoAdapter",
    "CoinGeckoQuoteSource",
]
