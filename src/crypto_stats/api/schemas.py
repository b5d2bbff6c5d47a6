"""API-specific response schemas (Pydantic v2).

Field aliases keep the JSON keys of the public contract (``marketCap``,
``24hChange``, ``sampleSize``...) while the Python side stays snake_case.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# -- Error --


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    error: str
    detail: str | None = None
    timestamp: datetime
    valid_coins: list[str] | None = None


# -- Stats --


class StatsResponse(BaseModel):
    """Latest snapshot for a coin."""

    model_config = ConfigDict(populate_by_name=True)

    price: float = Field(description="Current price in USD", examples=[40000])
    market_cap: float | None = Field(
        alias="marketCap", description="Market capitalization in USD", examples=[8e11]
    )
    price_change_24h: float | None = Field(
        alias="24hChange", description="24-hour price change percentage", examples=[3.4]
    )
    last_updated: datetime = Field(alias="lastUpdated")


class DeviationResponse(BaseModel):
    """Population standard deviation over recent prices."""

    model_config = ConfigDict(populate_by_name=True)

    deviation: float = Field(description="Standard deviation of price", examples=[4082.48])
    sample_size: int = Field(
        alias="sampleSize", description="Number of samples used", examples=[100]
    )
    mean: float = Field(description="Mean price", examples=[40000])


# -- System --


class WelcomeResponse(BaseModel):
    message: str
    docs: str = "/docs"


class SupportedCoinsResponse(BaseModel):
    """Response for GET /supported-coins."""

    model_config = ConfigDict(populate_by_name=True)

    coins: list[str]
    last_updated: datetime = Field(alias="lastUpdated")


class HealthResponse(BaseModel):
    """Response for GET /health."""

    status: str = "healthy"
    timestamp: datetime
    version: str
    storage_backend: str
    storage_ok: bool
    total_snapshots: int
    scheduler_running: bool
    last_ingest_error: str | None = None


# -- Ingestion --


class IngestResponse(BaseModel):
    """Result of a manually triggered ingestion cycle."""

    model_config = ConfigDict(populate_by_name=True)

    observed_at: datetime = Field(alias="observedAt")
    stored: list[str]
    skipped: list[str]
    attempts: int
