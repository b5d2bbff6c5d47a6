"""Custom exception hierarchy for crypto-stats."""

from typing import Any


class CryptoStatsError(Exception):
    """Base exception for all crypto-stats errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(CryptoStatsError):
    """Invalid or missing configuration.

    Raised by load_config() during startup. Should be treated as fatal.

    Context keys:
        field: str — the config field that failed validation
        value: Any — the invalid value
    """


class InvalidAssetError(CryptoStatsError):
    """Asset identifier is not in the supported set.

    Policy: reject immediately, before any I/O. Never retried.

    Context keys:
        asset: str — the identifier that was provided
        valid_assets: list[str] — the supported identifiers
    """


class NoDataError(CryptoStatsError):
    """No snapshots stored yet for a supported asset.

    Policy: surface to the caller. Data appears after the next successful
    ingestion cycle.

    Context keys:
        asset: str — the asset that was queried
    """


class IngestError(CryptoStatsError):
    """An ingestion cycle failed.

    Policy: surface to the caller (the scheduler logs it and keeps running).
    """


class FetchError(IngestError):
    """Quote source call failed (network, non-success status, bad payload).

    Policy: retried by IngestionPipeline up to the configured limit, then
    surfaced.

    Context keys:
        url: str — the URL that was being fetched
        status_code: int | None — HTTP status if one was received
        attempts: int — set on the terminal error after retry exhaustion
    """


class StoreError(CryptoStatsError):
    """Database operation failed.

    Policy: raise immediately. The core never retries persistence.

    Context keys:
        operation: str — "append", "query", "migrate", etc.
        table: str — the table involved
    """
