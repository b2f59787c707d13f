"""Cache/metrics statistics and maintenance endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from manual_rag.api.dependencies import get_cache, get_metrics, get_settings
from manual_rag.cache.result_cache import ResultCache
from manual_rag.config.settings import Settings
from manual_rag.models.schemas import CacheStats, CleanupResponse, MetricsSummary, PopularQuery
from manual_rag.observability.logger import get_logger
from manual_rag.observability.metrics import MetricsRecorder

logger = get_logger("admin")

router = APIRouter()


@router.get("/stats/cache", response_model=CacheStats)
async def cache_stats(cache: ResultCache = Depends(get_cache)) -> CacheStats:
    return await cache.stats()


@router.get("/stats/cache/top", response_model=list[PopularQuery])
async def cache_top_queries(
    limit: int = Query(default=10, ge=1, le=100),
    cache: ResultCache = Depends(get_cache),
) -> list[PopularQuery]:
    return await cache.top_queries(limit)


@router.delete("/cache")
async def clear_cache(cache: ResultCache = Depends(get_cache)) -> dict:
    return {"removed": await cache.invalidate_all()}


@router.get("/stats/metrics", response_model=MetricsSummary)
async def metrics_summary(
    days: int | None = Query(default=None, ge=1, le=365),
    metrics: MetricsRecorder = Depends(get_metrics),
    settings: Settings = Depends(get_settings),
) -> MetricsSummary:
    return await metrics.summary(days or settings.metrics_summary_days)


@router.post("/maintenance/cleanup", response_model=CleanupResponse)
async def cleanup(
    cache: ResultCache = Depends(get_cache),
    metrics: MetricsRecorder = Depends(get_metrics),
    settings: Settings = Depends(get_settings),
) -> CleanupResponse:
    expired = await cache.cleanup_expired()
    old = await metrics.cleanup(settings.metrics_retention_days)
    logger.info("maintenance_cleanup", expired_cache_entries=expired, old_metrics=old)
    return CleanupResponse(expired_cache_entries=expired, old_metrics=old)
