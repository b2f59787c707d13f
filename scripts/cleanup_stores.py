"""Delete expired cache entries and metrics older than the retention window."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from manual_rag.cache.result_cache import ResultCache
from manual_rag.config.settings import Settings
from manual_rag.observability.logger import setup_logging
from manual_rag.observability.metrics import MetricsRecorder


async def main(retention_days: int | None, clear_cache: bool) -> None:
    settings = Settings()
    setup_logging(settings.log_level, json_logs=settings.log_json)

    cache = ResultCache(settings.sqlite_cache_db_path)
    await cache.initialize()
    metrics = MetricsRecorder(settings.sqlite_metrics_db_path)
    await metrics.initialize()

    if clear_cache:
        removed = await cache.invalidate_all()
        print(f"Cache cleared: {removed} entries")
    else:
        removed = await cache.cleanup_expired()
        print(f"Expired cache entries removed: {removed}")

    days = retention_days or settings.metrics_retention_days
    old = await metrics.cleanup(days)
    print(f"Metrics older than {days} days removed: {old}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--retention-days", type=int, default=None)
    parser.add_argument("--clear-cache", action="store_true", help="drop every cache entry")
    args = parser.parse_args()
    asyncio.run(main(args.retention_days, args.clear_cache))
