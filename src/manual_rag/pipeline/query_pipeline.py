"""Query pipeline orchestrator: cache -> hybrid search -> rerank -> generate."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any
from uuid import uuid4

from pydantic import ValidationError

from manual_rag.cache.result_cache import ResultCache
from manual_rag.config.constants import DEFAULT_CACHE_TTL_SECONDS
from manual_rag.exceptions import ConfigurationError
from manual_rag.generation.answer_generator import AnswerGenerator
from manual_rag.models.domain import SearchMetric
from manual_rag.models.schemas import (
    HybridChunkResult,
    PipelineMetrics,
    RerankResult,
    SearchResult,
)
from manual_rag.observability.logger import get_logger
from manual_rag.observability.metrics import MetricsRecorder, log_stage_latency
from manual_rag.observability.timing import StageTimer
from manual_rag.pipeline.presets import PipelineConfig
from manual_rag.protocols.reranker import Reranker
from manual_rag.retrieval.hybrid_search import HybridSearchEngine

logger = get_logger("query_pipeline")

EMPTY_ANSWER = (
    "No relevant documents were found for your question. "
    "Try rephrasing it or using different keywords."
)
FALLBACK_ANSWER = (
    "Sorry, something went wrong while answering your question. Please try again in a moment."
)


class QueryPipeline:
    def __init__(
        self,
        search_engine: HybridSearchEngine,
        rerankers: dict[str, Reranker],
        answer_generator: AnswerGenerator,
        cache: ResultCache | None = None,
        metrics: MetricsRecorder | None = None,
        default_preset: str = "standard",
        cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
    ) -> None:
        self._search = search_engine
        self._rerankers = rerankers
        self._generator = answer_generator
        self._cache = cache
        self._metrics = metrics
        self._default_preset = default_preset
        self._cache_ttl_seconds = cache_ttl_seconds
        self._background: set[asyncio.Task] = set()

    async def run_query(self, query: str, config: PipelineConfig | None = None) -> SearchResult:
        """Answer ``query``. Never raises: failures become a safe fallback response."""
        timer = StageTimer()
        query_id = str(uuid4())
        if config is None:
            try:
                config = PipelineConfig.from_preset(
                    self._default_preset, cache_ttl_seconds=self._cache_ttl_seconds
                )
            except ConfigurationError as e:
                self._log_failure(query_id, e)
                return self._fallback_response(query_id, timer, self._default_preset, 0, 0)
        # cache keys carry only the query text, so filtered searches skip the cache
        use_cache = config.enable_cache and self._cache is not None and not config.document_ids

        if use_cache:
            cached = await self._read_cache(query)
            if cached is not None:
                result = self._cached_response(cached, query_id, timer, config)
                if result is not None:
                    return result

        chunks: list[HybridChunkResult] = []
        reranked: list[RerankResult] | None = None
        try:
            # STEP 1: Hybrid search
            with timer.stage("search"):
                chunks = await self._search.search(
                    query, limit=config.search_limit, document_ids=config.document_ids
                )

            if not chunks:
                logger.info("no_chunks_found", query_id=query_id)
                return SearchResult(
                    query_id=query_id,
                    answer=EMPTY_ANSWER,
                    confidence=0.0,
                    metrics=self._metrics_for(timer, 0, 0),
                    preset=config.preset,
                )

            # STEP 2: Rerank
            final_chunks = chunks
            if config.enable_rerank:
                reranker = self._rerankers.get(config.rerank_strategy)
                if reranker is None:
                    raise ConfigurationError(f"No reranker for strategy {config.rerank_strategy!r}")
                with timer.stage("rerank"):
                    reranked = await reranker.rerank(query, chunks, config.rerank_top_k)
                by_id = {c.chunk_id: c for c in chunks}
                final_chunks = [by_id[r.chunk_id] for r in reranked if r.chunk_id in by_id]
            final_chunks = final_chunks[: self._generator.max_context_chunks]

            # STEP 3: Generate
            with timer.stage("generation"):
                payload, sources = await self._generator.generate(query, final_chunks)
        except Exception as e:
            self._log_failure(query_id, e)
            return self._fallback_response(
                query_id,
                timer,
                config.preset,
                len(chunks),
                len(reranked) if reranked is not None else 0,
            )

        result = SearchResult(
            query_id=query_id,
            answer=payload.answer,
            sources=sources,
            confidence=payload.confidence,
            follow_up_questions=payload.follow_up_questions,
            reasoning=payload.reasoning,
            limitations=payload.limitations,
            chunks=chunks,
            reranked_chunks=reranked,
            metrics=self._metrics_for(timer, len(chunks), len(final_chunks)),
            preset=config.preset,
        )
        for stage in ("search", "rerank", "generation"):
            if stage in timer.stages:
                log_stage_latency(query_id, stage, timer.duration_ms(stage))

        # STEP 4: side effects, not awaited
        if config.enable_metrics and self._metrics is not None:
            self._spawn(self._metrics.record(self._to_metric(query, result)))
        if use_cache:
            self._spawn(self._write_cache(query, result, config.cache_ttl_seconds))

        logger.info(
            "query_completed",
            query_id=query_id,
            preset=config.preset,
            chunks=len(chunks),
            confidence=round(result.confidence, 4),
            total_ms=round(result.metrics.total_time, 2),
        )
        return result

    async def submit_feedback(self, query_id: str, feedback: str) -> None:
        """Errors (unknown id, bad value) propagate to the caller."""
        if self._metrics is None:
            raise ConfigurationError("Metrics recording is not configured")
        await self._metrics.record_feedback(query_id, feedback)

    async def drain(self) -> None:
        """Wait for outstanding background metric/cache writes."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # --- helpers ---

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _read_cache(self, query: str) -> dict[str, Any] | None:
        try:
            return await self._cache.get(query)
        except Exception as e:
            logger.warning("cache_read_failed", error=str(e))
            return None

    async def _write_cache(self, query: str, result: SearchResult, ttl_seconds: int) -> None:
        try:
            payload = result.model_dump(mode="json", exclude={"query_id"})
            await self._cache.set(query, payload, ttl_seconds=ttl_seconds)
        except Exception as e:
            logger.error("cache_write_failed", query_id=result.query_id, error=str(e))

    def _cached_response(
        self, cached: Any, query_id: str, timer: StageTimer, config: PipelineConfig
    ) -> SearchResult | None:
        """Rebuild a result from a cached payload; an unusable payload counts as a miss."""
        try:
            previous = cached.get("metrics") or {}
            metrics = PipelineMetrics(
                chunks_retrieved=previous.get("chunks_retrieved", 0),
                chunks_after_rerank=previous.get("chunks_after_rerank", 0),
                total_time=timer.elapsed_ms,
                cache_hit=True,
            )
            result = SearchResult.model_validate(
                {**cached, "query_id": query_id, "metrics": metrics, "preset": config.preset}
            )
        except (ValidationError, AttributeError, TypeError) as e:
            logger.warning("cache_read_failed", query_id=query_id, error=str(e))
            return None
        logger.info("query_served_from_cache", query_id=query_id, preset=config.preset)
        return result

    def _fallback_response(
        self,
        query_id: str,
        timer: StageTimer,
        preset: str,
        retrieved: int,
        after_rerank: int,
    ) -> SearchResult:
        return SearchResult(
            query_id=query_id,
            answer=FALLBACK_ANSWER,
            confidence=0.0,
            metrics=self._metrics_for(timer, retrieved, after_rerank),
            preset=preset,
        )

    @staticmethod
    def _log_failure(query_id: str, error: Exception) -> None:
        logger.error(
            "query_pipeline_failed",
            query_id=query_id,
            error_type=type(error).__name__,
            error=str(error),
        )

    @staticmethod
    def _metrics_for(timer: StageTimer, retrieved: int, after_rerank: int) -> PipelineMetrics:
        return PipelineMetrics(
            vector_search_time=timer.duration_ms("search"),
            rerank_time=timer.duration_ms("rerank"),
            generation_time=timer.duration_ms("generation"),
            total_time=timer.elapsed_ms,
            chunks_retrieved=retrieved,
            chunks_after_rerank=after_rerank,
        )

    @staticmethod
    def _to_metric(query: str, result: SearchResult) -> SearchMetric:
        m = result.metrics
        return SearchMetric(
            query_id=result.query_id,
            query=query,
            vector_search_time=m.vector_search_time,
            rerank_time=m.rerank_time,
            generation_time=m.generation_time,
            total_time=m.total_time,
            chunks_retrieved=m.chunks_retrieved,
            chunks_after_rerank=m.chunks_after_rerank,
            confidence=result.confidence,
        )
