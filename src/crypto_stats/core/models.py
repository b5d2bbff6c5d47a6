"""Domain models: supported assets, quotes, snapshots and query results."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from crypto_stats.core.exceptions import InvalidAssetError

# --- Enumerations ---


class AssetId(StrEnum):
    """Cryptocurrencies tracked by crypto-stats (CoinGecko ids)."""

    BITCOIN = "bitcoin"
    ETHEREUM = "ethereum"
    MATIC = "matic-network"


class StorageBackend(StrEnum):
    """Supported storage backends."""

    SQLITE = "sqlite"


SUPPORTED_ASSETS: tuple[AssetId, ...] = tuple(AssetId)


def parse_asset(value: str | AssetId | None) -> AssetId:
    """Convert an external identifier into an AssetId.

    This is the single validation point for asset identifiers. Matching is
    exact: CoinGecko ids are lowercase.

    Raises:
        InvalidAssetError: If value is missing or not a supported asset.
    """
    if isinstance(value, AssetId):
        return value
    valid = [a.value for a in AssetId]
    if not value:
        raise InvalidAssetError(
            "Coin parameter is required",
            context={"asset": value, "valid_assets": valid},
        )
    try:
        return AssetId(value)
    except ValueError:
        raise InvalidAssetError(
            f"Invalid coin: {value}",
            context={"asset": value, "valid_assets": valid},
        ) from None


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# --- Quote / Snapshot Models ---


class Quote(BaseModel):
    """One provider answer for a single asset.

    Any field may be missing; the ingestion pipeline decides what is usable.
    """

    model_config = ConfigDict(frozen=True)

    price: float | None = None
    market_cap: float | None = None
    price_change_24h: float | None = None


class Snapshot(BaseModel):
    """One immutable observation of an asset's market state."""

    model_config = ConfigDict(frozen=True)

    asset_id: AssetId
    price: float = Field(ge=0)
    market_cap: float | None = Field(default=None, ge=0)
    price_change_24h: float | None = None
    observed_at: datetime = Field(default_factory=utcnow)

    @field_validator("observed_at")
    @classmethod
    def observed_at_utc(cls, v: datetime) -> datetime:
        """Naive datetimes are taken as UTC; aware ones are converted."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class IngestResult(BaseModel):
    """Outcome of one ingestion cycle."""

    model_config = ConfigDict(frozen=True)

    observed_at: datetime
    stored: list[AssetId]
    skipped: list[AssetId]
    attempts: int

    @property
    def stored_count(self) -> int:
        return len(self.stored)


# --- Stats Models ---


class StatsResult(BaseModel):
    """Projection of the most recent snapshot for an asset."""

    model_config = ConfigDict(frozen=True)

    price: float
    market_cap: float | None
    price_change_24h: float | None
    last_updated: datetime


class DeviationResult(BaseModel):
    """Rolling population statistics over recent prices."""

    model_config = ConfigDict(frozen=True)

    deviation: float
    sample_size: int
    mean: float
