"""Protocol for reranking strategies."""

from __future__ import annotations

from typing import Protocol

from manual_rag.models.schemas import HybridChunkResult, RerankResult


class Reranker(Protocol):
    async def rerank(
        self,
        query: str,
        chunks: list[HybridChunkResult],
        top_k: int = 5,
    ) -> list[RerankResult]: ...
