"""Search metrics persistence, feedback and summaries."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

from manual_rag.config.constants import DEFAULT_METRICS_RETENTION_DAYS
from manual_rag.exceptions import InvalidFeedbackError, NotFoundError
from manual_rag.models.domain import SearchMetric
from manual_rag.models.schemas import MetricsSummary, QueryFrequency, SlowQuery, StageAverages
from manual_rag.observability.logger import get_logger
from manual_rag.storage.migrations import initialize_metrics_db, open_db
from manual_rag.storage.timestamps import from_db, to_db, utc_now

logger = get_logger("metrics")

FEEDBACK_VALUES = ("helpful", "not_helpful")
SUMMARY_TOP_N = 10


def log_stage_latency(query_id: str, stage: str, duration_ms: float) -> None:
    logger.info(
        "latency",
        query_id=query_id,
        stage=stage,
        duration_ms=round(duration_ms, 2),
    )


class MetricsRecorder:
    def __init__(
        self,
        db_path: str,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._db_path = db_path
        self._clock = clock

    async def initialize(self) -> None:
        await initialize_metrics_db(self._db_path)

    async def record(self, metric: SearchMetric) -> bool:
        """Persist one query's metrics. Failures are logged, never raised."""
        try:
            async with open_db(self._db_path) as db:
                await db.execute(
                    "INSERT OR REPLACE INTO search_metrics (query_id, query, timestamp, "
                    "vector_search_time, rerank_time, generation_time, total_time, "
                    "chunks_retrieved, chunks_after_rerank, confidence, user_feedback) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        metric.query_id,
                        metric.query,
                        to_db(metric.timestamp),
                        metric.vector_search_time,
                        metric.rerank_time,
                        metric.generation_time,
                        metric.total_time,
                        metric.chunks_retrieved,
                        metric.chunks_after_rerank,
                        metric.confidence,
                        metric.user_feedback,
                    ),
                )
                await db.commit()
            return True
        except Exception as e:
            logger.error("metrics_record_failed", query_id=metric.query_id, error=str(e))
            return False

    async def record_feedback(self, query_id: str, feedback: str) -> None:
        if feedback not in FEEDBACK_VALUES:
            raise InvalidFeedbackError(
                f"Feedback must be one of {', '.join(FEEDBACK_VALUES)}, got {feedback!r}"
            )
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "UPDATE search_metrics SET user_feedback = ? WHERE query_id = ?",
                (feedback, query_id),
            )
            await db.commit()
            if cursor.rowcount == 0:
                raise NotFoundError(f"No search with query_id {query_id}")
        logger.info("feedback_recorded", query_id=query_id, feedback=feedback)

    async def get(self, query_id: str) -> SearchMetric | None:
        async with open_db(self._db_path) as db:
            async with db.execute(
                "SELECT * FROM search_metrics WHERE query_id = ?", (query_id,)
            ) as cursor:
                row = await cursor.fetchone()
        if row is None:
            return None
        return SearchMetric(
            query_id=row["query_id"],
            query=row["query"],
            vector_search_time=row["vector_search_time"],
            rerank_time=row["rerank_time"],
            generation_time=row["generation_time"],
            total_time=row["total_time"],
            chunks_retrieved=row["chunks_retrieved"],
            chunks_after_rerank=row["chunks_after_rerank"],
            confidence=row["confidence"],
            timestamp=from_db(row["timestamp"]),
            user_feedback=row["user_feedback"],
        )

    async def summary(self, days: int = 7) -> MetricsSummary:
        """Aggregate the last ``days`` days.

        ``helpful_rate`` counts only rated searches; it is 0.0 when nothing has
        been rated.
        """
        since = to_db(self._clock() - timedelta(days=days))
        async with open_db(self._db_path) as db:
            async with db.execute(
                "SELECT COUNT(*) AS total, "
                "COALESCE(AVG(vector_search_time), 0) AS vector_search_time, "
                "COALESCE(AVG(rerank_time), 0) AS rerank_time, "
                "COALESCE(AVG(generation_time), 0) AS generation_time, "
                "COALESCE(AVG(total_time), 0) AS total_time, "
                "COALESCE(AVG(chunks_retrieved), 0) AS chunks_retrieved, "
                "COALESCE(AVG(chunks_after_rerank), 0) AS chunks_after_rerank, "
                "COALESCE(AVG(confidence), 0) AS confidence, "
                "SUM(CASE WHEN user_feedback = 'helpful' THEN 1 ELSE 0 END) AS helpful, "
                "SUM(CASE WHEN user_feedback = 'not_helpful' THEN 1 ELSE 0 END) AS not_helpful "
                "FROM search_metrics WHERE timestamp >= ?",
                (since,),
            ) as cursor:
                agg = await cursor.fetchone()

            async with db.execute(
                "SELECT query, COUNT(*) AS n FROM search_metrics WHERE timestamp >= ? "
                "GROUP BY query ORDER BY n DESC, query ASC LIMIT ?",
                (since, SUMMARY_TOP_N),
            ) as cursor:
                top_rows = await cursor.fetchall()

            async with db.execute(
                "SELECT query, total_time, timestamp FROM search_metrics WHERE timestamp >= ? "
                "ORDER BY total_time DESC LIMIT ?",
                (since, SUMMARY_TOP_N),
            ) as cursor:
                slow_rows = await cursor.fetchall()

        helpful = agg["helpful"] or 0
        not_helpful = agg["not_helpful"] or 0
        rated = helpful + not_helpful
        return MetricsSummary(
            days=days,
            total_searches=agg["total"],
            averages=StageAverages(
                vector_search_time=agg["vector_search_time"],
                rerank_time=agg["rerank_time"],
                generation_time=agg["generation_time"],
                total_time=agg["total_time"],
                chunks_retrieved=agg["chunks_retrieved"],
                chunks_after_rerank=agg["chunks_after_rerank"],
            ),
            avg_confidence=agg["confidence"],
            helpful_rate=helpful / rated if rated else 0.0,
            rated_count=rated,
            top_queries=[QueryFrequency(query=r["query"], count=r["n"]) for r in top_rows],
            slowest_queries=[
                SlowQuery(
                    query=r["query"],
                    total_time=r["total_time"],
                    timestamp=from_db(r["timestamp"]),
                )
                for r in slow_rows
            ],
        )

    async def cleanup(self, retention_days: int = DEFAULT_METRICS_RETENTION_DAYS) -> int:
        cutoff = to_db(self._clock() - timedelta(days=retention_days))
        async with open_db(self._db_path) as db:
            cursor = await db.execute("DELETE FROM search_metrics WHERE timestamp < ?", (cutoff,))
            await db.commit()
            removed = cursor.rowcount
        logger.info("metrics_cleanup", removed=removed, retention_days=retention_days)
        return removed
