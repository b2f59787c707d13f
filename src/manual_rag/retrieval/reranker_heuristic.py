"""Keyword/length heuristic reranker. No collaborator calls."""

from __future__ import annotations

from manual_rag.config.constants import HEURISTIC_IDEAL_LENGTH
from manual_rag.models.schemas import HybridChunkResult, RerankResult
from manual_rag.observability.logger import get_logger

logger = get_logger("reranker_heuristic")

TITLE_MATCH_BONUS = 0.3
BODY_MATCH_BONUS = 0.1
BODY_MATCH_CAP = 0.5
LENGTH_PENALTY_RATE = 0.2
LENGTH_PENALTY_CAP = 0.3


def query_terms(query: str) -> list[str]:
    return list(dict.fromkeys(query.lower().split()))


def score_chunk(terms: list[str], chunk: HybridChunkResult) -> float:
    title = f"{chunk.document_title} {chunk.section_title or ''}".lower()
    body = chunk.content.lower()

    score = 0.0
    for term in terms:
        if term in title:
            score += TITLE_MATCH_BONUS
        score += min(body.count(term) * BODY_MATCH_BONUS, BODY_MATCH_CAP)

    deviation = abs(len(chunk.content) - HEURISTIC_IDEAL_LENGTH) / HEURISTIC_IDEAL_LENGTH
    score *= 1 - min(LENGTH_PENALTY_RATE * deviation, LENGTH_PENALTY_CAP)
    return min(score, 1.0)


class HeuristicReranker:
    def score(self, query: str, chunks: list[HybridChunkResult], top_k: int = 5) -> list[RerankResult]:
        terms = query_terms(query)
        scored = [(chunk, score_chunk(terms, chunk)) for chunk in chunks]
        # stable: equal scores keep search order
        scored.sort(key=lambda x: x[1], reverse=True)
        return [
            RerankResult(
                chunk_id=chunk.chunk_id,
                relevance_score=score,
                reasoning=f"heuristic: {len(terms)} query terms, length {len(chunk.content)}",
            )
            for chunk, score in scored[:top_k]
        ]

    async def rerank(
        self,
        query: str,
        chunks: list[HybridChunkResult],
        top_k: int = 5,
    ) -> list[RerankResult]:
        if not chunks or top_k <= 0:
            return []
        results = self.score(query, chunks, top_k)
        logger.info(
            "reranked",
            strategy="heuristic",
            input_count=len(chunks),
            output_count=len(results),
            top_score=round(results[0].relevance_score, 4),
        )
        return results
