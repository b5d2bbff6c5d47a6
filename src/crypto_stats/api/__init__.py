"""HTTP JSON API over the ingestion and stats core."""

from crypto_stats.api.app import create_app

__all__ = ["create_app"]
