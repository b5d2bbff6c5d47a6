"""Storage backend: Protocol definition, SQLite implementation, factory."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import ClassVar, Protocol, runtime_checkable

import aiosqlite

from crypto_stats.core.config import StorageConfig
from crypto_stats.core.exceptions import StoreError
from crypto_stats.core.models import AssetId, Snapshot, StorageBackend

logger = logging.getLogger(__name__)


@runtime_checkable
class SnapshotStore(Protocol):
    """Append-only snapshot log. No update or delete operations exist."""

    async def append(self, snapshots: Sequence[Snapshot]) -> int: ...
    async def latest(self, asset_id: AssetId) -> Snapshot | None: ...
    async def recent(self, asset_id: AssetId, n: int) -> list[Snapshot]: ...
    async def count(self, asset_id: AssetId | None = None) -> int: ...
    async def initialize(self) -> None: ...
    async def close(self) -> None: ...
    async def health_check(self) -> bool: ...


def _format_ts(value: datetime) -> str:
    """Fixed-width UTC ISO-8601 so lexical order equals time order."""
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class SqliteSnapshotStore:
    """SQLite implementation of the snapshot store.

    Uses aiosqlite for async access, WAL mode for concurrent reads,
    and a version-tracked migration system. A batch append is a single
    transaction, so readers never observe half a batch.
    """

    _MIGRATIONS: ClassVar[dict[int, tuple[str, list[str]]]] = {
        1: (
            "Initial schema",
            [
                """CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT DEFAULT (datetime('now'))
                )""",
                """CREATE TABLE IF NOT EXISTS snapshots (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    asset_id TEXT NOT NULL,
                    price REAL NOT NULL CHECK (price >= 0),
                    market_cap REAL CHECK (market_cap IS NULL OR market_cap >= 0),
                    price_change_24h REAL,
                    observed_at TEXT NOT NULL,
                    created_at TEXT DEFAULT (datetime('now'))
                )""",
                """CREATE INDEX IF NOT EXISTS idx_snapshots_asset_observed
                   ON snapshots(asset_id, observed_at DESC, id DESC)""",
                "CREATE INDEX IF NOT EXISTS idx_snapshots_observed ON snapshots(observed_at)",
            ],
        ),
    }

    def __init__(self, config: StorageConfig) -> None:
        self._path = config.sqlite_path
        self._db: aiosqlite.Connection | None = None

    @property
    def path(self) -> str:
        return self._path

    async def initialize(self) -> None:
        """Open connection, enable WAL, run migrations."""
        try:
            self._db = await aiosqlite.connect(self._path)
            self._db.row_factory = aiosqlite.Row
            await self._db.execute("PRAGMA journal_mode=WAL")
            current = await self._get_schema_version()
            await self._apply_migrations(current)
            await self._db.commit()
        except Exception as e:
            raise StoreError(
                f"Failed to initialize SQLite store: {e}",
                context={"operation": "initialize", "path": self._path},
            ) from e

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def health_check(self) -> bool:
        if self._db is None:
            return False
        try:
            async with self._db.execute("SELECT 1") as cursor:
                row = await cursor.fetchone()
            return row is not None
        except aiosqlite.Error:
            return False

    # --- Schema Migration ---

    async def _get_schema_version(self) -> int:
        try:
            async with self._db.execute(
                "SELECT MAX(version) FROM schema_version"
            ) as cursor:
                row = await cursor.fetchone()
            return row[0] if row[0] is not None else 0
        except aiosqlite.OperationalError:
            return 0

    async def _apply_migrations(self, current_version: int) -> None:
        for version in sorted(self._MIGRATIONS.keys()):
            if version <= current_version:
                continue
            desc, statements = self._MIGRATIONS[version]
            logger.info("Applying migration %d: %s", version, desc)
            for sql in statements:
                await self._db.execute(sql)
            await self._db.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )

    def _conn(self, operation: str) -> aiosqlite.Connection:
        if self._db is None:
            raise StoreError(
                "Store is not initialized",
                context={"operation": operation, "table": "snapshots"},
            )
        return self._db

    # --- Snapshot Operations ---

    async def append(self, snapshots: Sequence[Snapshot]) -> int:
        """Insert a batch of snapshots in one transaction. Returns rows written."""
        if not snapshots:
            return 0

        db = self._conn("append")
        rows = [
            (
                str(s.asset_id),
                s.price,
                s.market_cap,
                s.price_change_24h,
                _format_ts(s.observed_at),
            )
            for s in snapshots
        ]
        try:
            await db.executemany(
                """INSERT INTO snapshots
                   (asset_id, price, market_cap, price_change_24h, observed_at)
                   VALUES (?, ?, ?, ?, ?)""",
                rows,
            )
            await db.commit()
        except Exception as e:
            await db.rollback()
            raise StoreError(
                f"Failed to append snapshots: {e}",
                context={"operation": "append", "table": "snapshots", "count": len(rows)},
            ) from e

        logger.info("Stored %d snapshots", len(rows))
        return len(rows)

    async def latest(self, asset_id: AssetId) -> Snapshot | None:
        db = self._conn("query")
        try:
            async with db.execute(
                """SELECT * FROM snapshots WHERE asset_id = ?
                   ORDER BY observed_at DESC, id DESC LIMIT 1""",
                (str(asset_id),),
            ) as cursor:
                row = await cursor.fetchone()
        except Exception as e:
            raise StoreError(
                f"Failed to get latest snapshot: {e}",
                context={"operation": "query", "table": "snapshots", "asset": str(asset_id)},
            ) from e
        return self._row_to_snapshot(row) if row is not None else None

    async def recent(self, asset_id: AssetId, n: int) -> list[Snapshot]:
        """Return up to n snapshots for an asset, most recent first."""
        if n <= 0:
            return []
        db = self._conn("query")
        try:
            async with db.execute(
                """SELECT * FROM snapshots WHERE asset_id = ?
                   ORDER BY observed_at DESC, id DESC LIMIT ?""",
                (str(asset_id), n),
            ) as cursor:
                rows = await cursor.fetchall()
        except Exception as e:
            raise StoreError(
                f"Failed to get recent snapshots: {e}",
                context={"operation": "query", "table": "snapshots", "asset": str(asset_id)},
            ) from e
        return [self._row_to_snapshot(r) for r in rows]

    async def count(self, asset_id: AssetId | None = None) -> int:
        db = self._conn("query")
        query = "SELECT COUNT(*) FROM snapshots"
        params: list = []
        if asset_id is not None:
            query += " WHERE asset_id = ?"
            params.append(str(asset_id))
        try:
            async with db.execute(query, params) as cursor:
                row = await cursor.fetchone()
        except Exception as e:
            raise StoreError(
                f"Failed to count snapshots: {e}",
                context={"operation": "query", "table": "snapshots"},
            ) from e
        return row[0]

    @staticmethod
    def _row_to_snapshot(row: aiosqlite.Row) -> Snapshot:
        return Snapshot(
            asset_id=AssetId(row["asset_id"]),
            price=row["price"],
            market_cap=row["market_cap"],
            price_change_24h=row["price_change_24h"],
            observed_at=datetime.fromisoformat(row["observed_at"]),
        )


async def create_store(config: StorageConfig) -> SqliteSnapshotStore:
    """Create and initialize a storage backend based on configuration."""
    if config.backend == StorageBackend.SQLITE:
        if config.sqlite_path != ":memory:":
            Path(config.sqlite_path).parent.mkdir(parents=True, exist_ok=True)
        store = SqliteSnapshotStore(config)
        await store.initialize()
        return store
    raise StoreError(
        f"Unsupported storage backend: {config.backend}",
        context={"operation": "create_store", "backend": str(config.backend)},
    )
