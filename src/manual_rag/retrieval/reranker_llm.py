"""LLM-scored reranker: one structured generation call judges every candidate."""

from __future__ import annotations

from manual_rag.generation.prompt_templates import (
    RERANK_PROMPT,
    RERANK_SYSTEM,
    format_candidate_block,
)
from manual_rag.models.schemas import HybridChunkResult, RerankResponse, RerankResult
from manual_rag.observability.logger import get_logger
from manual_rag.protocols.llm import LLMProvider

logger = get_logger("reranker_llm")

FALLBACK_REASONING = "fallback: original search order (reranking unavailable)"


def fallback_ranking(chunks: list[HybridChunkResult], top_k: int) -> list[RerankResult]:
    """Keep search order with synthetic scores 1.0, 0.9, 0.8, ..."""
    return [
        RerankResult(
            chunk_id=chunk.chunk_id,
            relevance_score=max(0.0, round(1.0 - 0.1 * i, 10)),
            reasoning=FALLBACK_REASONING,
        )
        for i, chunk in enumerate(chunks[:top_k])
    ]


class LlmReranker:
    def __init__(self, llm: LLMProvider) -> None:
        self._llm = llm

    async def rerank(
        self,
        query: str,
        chunks: list[HybridChunkResult],
        top_k: int = 5,
    ) -> list[RerankResult]:
        if not chunks or top_k <= 0:
            return []
        expected = min(top_k, len(chunks))

        prompt = RERANK_PROMPT.format(
            query=query,
            candidate_block=format_candidate_block(chunks),
            count=expected,
        )
        try:
            response = await self._llm.generate_structured(prompt, RerankResponse, system=RERANK_SYSTEM)
        except Exception as e:
            logger.warning("rerank_fallback", reason=type(e).__name__, error=str(e)[:200])
            return fallback_ranking(chunks, expected)

        known = {c.chunk_id for c in chunks}
        seen: set[int] = set()
        results: list[RerankResult] = []
        for ranking in response.rankings:
            if ranking.chunk_id not in known or ranking.chunk_id in seen:
                continue
            seen.add(ranking.chunk_id)
            results.append(
                RerankResult(
                    chunk_id=ranking.chunk_id,
                    relevance_score=max(0.0, min(1.0, ranking.relevance_score)),
                    reasoning=ranking.reasoning,
                )
            )

        if not results:
            logger.warning("rerank_fallback", reason="no_usable_rankings")
            return fallback_ranking(chunks, expected)

        results.sort(key=lambda r: r.relevance_score, reverse=True)
        results = results[:top_k]
        logger.info(
            "reranked",
            strategy="llm",
            input_count=len(chunks),
            output_count=len(results),
            top_score=round(results[0].relevance_score, 4),
        )
        return results
