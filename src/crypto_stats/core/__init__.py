"""crypto_stats.core: asset identifiers, config loading and the error hierarchy."""

from crypto_stats.core.config import (
    APIConfig,
    CryptoStatsConfig,
    IngestionConfig,
    QuoteSourceConfig,
    SchedulerConfig,
    StatsConfig,
    StorageConfig,
    load_config,
)
from crypto_stats.core.exceptions import (
    ConfigError,
    CryptoStatsError,
    FetchError,
    IngestError,
    InvalidAssetError,
    NoDataError,
    StoreError,
)
from crypto_stats.core.models import (
    SUPPORTED_ASSETS,
    AssetId,
    DeviationResult,
    IngestResult,
    Quote,
    Snapshot,
    StatsResult,
    StorageBackend,
    parse_asset,
    utcnow,
)

__all__ = [
    # Enums
    "AssetId",
    "StorageBackend",
    "SUPPORTED_ASSETS",
    "parse_asset",
    "utcnow",
    # Snapshot models
    "Quote",
    "Snapshot",
    "IngestResult",
    # Stats models
    "StatsResult",
    "DeviationResult",
    # Config
    "CryptoStatsConfig",
    "QuoteSourceConfig",
    "IngestionConfig",
    "SchedulerConfig",
    "StorageConfig",
    "StatsConfig",
    "APIConfig",
    "load_config",
    # Exceptions
    "CryptoStatsError",
    "ConfigError",
    "InvalidAssetError",
    "NoDataError",
    "IngestError",
    "FetchError",
    "StoreError",
]
