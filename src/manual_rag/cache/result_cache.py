"""SQLite-backed cache of full pipeline results, keyed by normalized query text."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from manual_rag.config.constants import DEFAULT_CACHE_TTL_SECONDS
from manual_rag.models.schemas import CacheStats, PopularQuery
from manual_rag.observability.logger import get_logger
from manual_rag.storage.migrations import initialize_cache_db, open_db
from manual_rag.storage.timestamps import from_db, to_db, utc_now

logger = get_logger("result_cache")


def cache_key(query: str) -> str:
    """SHA-256 hex of the lowercased, trimmed query."""
    return hashlib.sha256(query.lower().strip().encode("utf-8")).hexdigest()


class ResultCache:
    def __init__(self, db_path: str, clock: Callable[[], datetime] = utc_now) -> None:
        self._db_path = db_path
        self._clock = clock

    async def initialize(self) -> None:
        await initialize_cache_db(self._db_path)

    async def get(self, query: str) -> dict[str, Any] | None:
        key = cache_key(query)
        now = self._clock()
        async with open_db(self._db_path) as db:
            async with db.execute(
                "SELECT result, expires_at FROM search_cache WHERE query_hash = ?", (key,)
            ) as cursor:
                row = await cursor.fetchone()
            if row is None:
                return None
            if from_db(row["expires_at"]) <= now:
                await db.execute("DELETE FROM search_cache WHERE query_hash = ?", (key,))
                await db.commit()
                logger.debug("cache_expired", query_hash=key[:12])
                return None
            await db.execute(
                "UPDATE search_cache SET hit_count = hit_count + 1, last_accessed_at = ? "
                "WHERE query_hash = ?",
                (to_db(now), key),
            )
            await db.commit()
        logger.info("cache_hit", query_hash=key[:12])
        return json.loads(row["result"])

    async def set(
        self, query: str, result: dict[str, Any], ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    ) -> None:
        key = cache_key(query)
        now = self._clock()
        expires = now + timedelta(seconds=ttl_seconds)
        async with open_db(self._db_path) as db:
            # hit_count survives the upsert
            await db.execute(
                "INSERT INTO search_cache "
                "(query_hash, query, result, created_at, expires_at, last_accessed_at, hit_count) "
                "VALUES (?, ?, ?, ?, ?, ?, 0) "
                "ON CONFLICT(query_hash) DO UPDATE SET query = excluded.query, "
                "result = excluded.result, created_at = excluded.created_at, "
                "expires_at = excluded.expires_at, last_accessed_at = excluded.last_accessed_at",
                (key, query, json.dumps(result), to_db(now), to_db(expires), to_db(now)),
            )
            await db.commit()
        logger.debug("cache_set", query_hash=key[:12], ttl_seconds=ttl_seconds)

    async def invalidate_all(self) -> int:
        async with open_db(self._db_path) as db:
            cursor = await db.execute("DELETE FROM search_cache")
            await db.commit()
            removed = cursor.rowcount
        logger.info("cache_invalidated", removed=removed)
        return removed

    async def cleanup_expired(self) -> int:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "DELETE FROM search_cache WHERE expires_at <= ?", (to_db(self._clock()),)
            )
            await db.commit()
            removed = cursor.rowcount
        logger.info("cache_cleanup", removed=removed)
        return removed

    async def stats(self) -> CacheStats:
        async with open_db(self._db_path) as db:
            async with db.execute(
                "SELECT COUNT(*) AS entries, COALESCE(SUM(hit_count), 0) AS total_hits, "
                "COALESCE(AVG(hit_count), 0) AS avg_hits, MIN(created_at) AS oldest, "
                "MAX(created_at) AS newest, "
                "COALESCE(SUM(LENGTH(result) + LENGTH(query)), 0) AS size "
                "FROM search_cache"
            ) as cursor:
                row = await cursor.fetchone()
        return CacheStats(
            entries=row["entries"],
            total_hits=row["total_hits"],
            avg_hits=float(row["avg_hits"]),
            oldest=from_db(row["oldest"]) if row["oldest"] else None,
            newest=from_db(row["newest"]) if row["newest"] else None,
            approx_size_bytes=row["size"],
        )

    async def top_queries(self, limit: int = 10) -> list[PopularQuery]:
        async with open_db(self._db_path) as db:
            async with db.execute(
                "SELECT query, hit_count, last_accessed_at FROM search_cache "
                "ORDER BY hit_count DESC, last_accessed_at DESC LIMIT ?",
                (limit,),
            ) as cursor:
                rows = await cursor.fetchall()
        return [
            PopularQuery(
                query=row["query"],
                hit_count=row["hit_count"],
                last_accessed_at=from_db(row["last_accessed_at"]),
            )
            for row in rows
        ]
