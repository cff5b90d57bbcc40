"""
SQLite Repository - Persistent RDAP response cache.

Features:
- Async operations via aiosqlite
- IP networks keyed by CIDR block, with containment lookup
- Domains keyed by lowercase name
- Unique keys; duplicate inserts raise CacheWriteConflictError
"""

from __future__ import annotations

import ipaddress
import json
import logging
from pathlib import Path
from typing import Any

import aiosqlite

from rdapcache.config.errors import CacheWriteConflictError, StorageError

logger = logging.getLogger(__name__)

__all__ = ["SQLiteCacheRepository"]


def _hex(value: int) -> str:
    # Fixed width so text comparison matches numeric order for IPv6 too
    return format(value, "032x")


def _normalize_cidr(cidr: str) -> ipaddress.IPv4Network | ipaddress.IPv6Network:
    try:
        return ipaddress.ip_network(cidr.strip(), strict=False)
    except ValueError as e:
        raise StorageError(f"Invalid CIDR block: {cidr}", details={"cidr": cidr}) from e


class SQLiteCacheRepository:
    """
    SQLite store for RDAP responses.

    Example:
        >>> repo = SQLiteCacheRepository("data/rdapcache.db")
        >>> await repo.initialize()
        >>> await repo.put_ip("8.8.8.0/24", {"objectClassName": "ip network"})
        >>> await repo.find_ip_containing("8.8.8.8")
        {'objectClassName': 'ip network'}
    """

    def __init__(self, db_path: str | Path) -> None:
        """
        Initialize repository.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection: aiosqlite.Connection | None = None

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create database connection."""
        if self._connection is None:
            self._connection = await aiosqlite.connect(str(self.db_path))
            self._connection.row_factory = aiosqlite.Row
        return self._connection

    async def initialize(self) -> None:
        """Initialize database schema."""
        conn = await self._get_connection()

        await conn.executescript("""
            -- IP network cache
            CREATE TABLE IF NOT EXISTS ip_cache (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                cidr_block TEXT NOT NULL UNIQUE,
                ip_version INTEGER NOT NULL,
                network_start TEXT NOT NULL,
                network_end TEXT NOT NULL,
                prefix_length INTEGER NOT NULL,
                data TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            -- Domain cache
            CREATE TABLE IF NOT EXISTS domain_cache (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                domain_name TEXT NOT NULL UNIQUE,
                data TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            -- Indexes
            CREATE INDEX IF NOT EXISTS idx_ip_cache_range
                ON ip_cache(ip_version, network_start, network_end);
        """)

        await conn.commit()
        logger.info("Database initialized: %s", self.db_path)

    async def get_ip(self, cidr: str) -> dict[str, Any] | None:
        """Get IP network payload by exact CIDR block."""
        network = _normalize_cidr(cidr)
        return await self._fetch_data(
            "SELECT data FROM ip_cache WHERE cidr_block = ?", (str(network),)
        )

    async def find_ip_containing(self, address: str) -> dict[str, Any] | None:
        """
        Most specific stored network containing ``address``.

        Args:
            address: IPv4 or IPv6 address

        Returns:
            Stored payload, or None
        """
        try:
            ip = ipaddress.ip_address(address)
        except ValueError as e:
            raise StorageError(f"Invalid IP address: {address}") from e

        value = _hex(int(ip))
        return await self._fetch_data(
            """
            SELECT data FROM ip_cache
            WHERE ip_version = ? AND network_start <= ? AND network_end >= ?
            ORDER BY prefix_length DESC
            LIMIT 1
            """,
            (ip.version, value, value),
        )

    async def put_ip(self, cidr: str, payload: dict[str, Any]) -> None:
        """Insert an IP network payload under its CIDR block."""
        network = _normalize_cidr(cidr)
        await self._insert(
            """
            INSERT INTO ip_cache
            (cidr_block, ip_version, network_start, network_end, prefix_length, data)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                str(network),
                network.version,
                _hex(int(network.network_address)),
                _hex(int(network.broadcast_address)),
                network.prefixlen,
                json.dumps(payload),
            ),
            key=str(network),
        )

    async def get_domain(self, domain_name: str) -> dict[str, Any] | None:
        """Get domain payload by name."""
        return await self._fetch_data(
            "SELECT data FROM domain_cache WHERE domain_name = ?", (domain_name.lower(),)
        )

    async def put_domain(self, domain_name: str, payload: dict[str, Any]) -> None:
        """Insert a domain payload under its lowercase name."""
        key = domain_name.lower()
        await self._insert(
            "INSERT INTO domain_cache (domain_name, data) VALUES (?, ?)",
            (key, json.dumps(payload)),
            key=key,
        )

    async def stats(self) -> dict[str, int]:
        """Row counts per collection."""
        conn = await self._get_connection()
        counts = {}
        for table in ("ip_cache", "domain_cache"):
            cursor = await conn.execute(f"SELECT COUNT(*) FROM {table}")
            row = await cursor.fetchone()
            counts[table] = row[0] if row else 0
        return counts

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def _fetch_data(self, sql: str, params: tuple[Any, ...]) -> dict[str, Any] | None:
        try:
            conn = await self._get_connection()
            cursor = await conn.execute(sql, params)
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageError(f"Cache read failed: {e}") from e

        if row is None:
            return None
        return json.loads(row["data"])

    async def _insert(self, sql: str, params: tuple[Any, ...], key: str) -> None:
        conn = await self._get_connection()
        try:
            await conn.execute(sql, params)
            await conn.commit()
        except aiosqlite.IntegrityError as e:
            await conn.rollback()
            raise CacheWriteConflictError(
                f"Cache entry already exists: {key}", details={"key": key}
            ) from e
        except aiosqlite.Error as e:
            await conn.rollback()
            raise StorageError(f"Cache write failed for {key}: {e}", details={"key": key}) from e
