"""Hybrid search combining FAISS vector search and BM25 with weighted RRF."""

from __future__ import annotations

import asyncio
from collections import Counter

import numpy as np

from manual_rag.config.constants import KEYWORD_WEIGHT, RRF_K, VECTOR_WEIGHT
from manual_rag.keyword_search.bm25_index import BM25Index
from manual_rag.models.schemas import HybridChunkResult, SearchMetadata
from manual_rag.observability.logger import get_logger
from manual_rag.protocols.embedder import Embedder
from manual_rag.retrieval.rrf import weighted_rrf
from manual_rag.storage.sqlite_doc_store import SQLiteDocStore
from manual_rag.vectorstore.faiss_store import FAISSVectorStore

logger = get_logger("hybrid_search")


class HybridSearchEngine:
    def __init__(
        self,
        vector_store: FAISSVectorStore,
        bm25_index: BM25Index,
        doc_store: SQLiteDocStore,
        embedder: Embedder,
        rrf_k: int = RRF_K,
        vector_weight: float = VECTOR_WEIGHT,
        keyword_weight: float = KEYWORD_WEIGHT,
        candidate_multiplier: int = 3,
    ) -> None:
        self._vector_store = vector_store
        self._bm25_index = bm25_index
        self._doc_store = doc_store
        self._embedder = embedder
        self._rrf_k = rrf_k
        self._vector_weight = vector_weight
        self._keyword_weight = keyword_weight
        self._candidate_multiplier = candidate_multiplier

    async def search(
        self,
        query: str,
        limit: int = 10,
        document_ids: list[str] | None = None,
    ) -> list[HybridChunkResult]:
        if limit <= 0 or not query.strip():
            return []
        doc_filter = set(document_ids) if document_ids else None
        candidates = limit * self._candidate_multiplier

        query_embedding = await self._embedder.embed(query)
        query_array = np.array(query_embedding, dtype=np.float32)

        vector_results, keyword_results = await asyncio.gather(
            asyncio.to_thread(self._vector_store.search, query_array, candidates, doc_filter),
            asyncio.to_thread(self._bm25_index.search, query, candidates, doc_filter),
        )

        fused = weighted_rrf(
            vector_results,
            keyword_results,
            k=self._rrf_k,
            vector_weight=self._vector_weight,
            keyword_weight=self._keyword_weight,
        )[:limit]

        logger.info(
            "hybrid_search_results",
            vector_count=len(vector_results),
            keyword_count=len(keyword_results),
            fused_count=len(fused),
            filtered=doc_filter is not None,
        )
        if not fused:
            return []

        chunks_map = await self._doc_store.get_chunks_by_ids([f.chunk_id for f in fused])
        titles = await self._doc_store.get_document_titles(
            sorted({c.doc_id for c in chunks_map.values()})
        )

        results = []
        for entry in fused:
            chunk = chunks_map.get(entry.chunk_id)
            if chunk is None:
                # deleted between ranking and hydration
                continue
            results.append(
                HybridChunkResult(
                    chunk_id=entry.chunk_id,
                    document_id=chunk.doc_id,
                    document_title=titles.get(chunk.doc_id, ""),
                    section_title=chunk.section_title,
                    chunk_index=chunk.chunk_index,
                    content=chunk.content,
                    vector_score=entry.vector_score,
                    keyword_score=entry.keyword_score,
                    combined_score=entry.combined_score,
                )
            )
        return results


def search_metadata(results: list[HybridChunkResult]) -> SearchMetadata:
    """Summarise a result list: size, document spread, mean score and leading document."""
    if not results:
        return SearchMetadata()
    doc_counts = Counter(r.document_id for r in results)
    return SearchMetadata(
        total_results=len(results),
        unique_documents=len(doc_counts),
        avg_combined_score=sum(r.combined_score for r in results) / len(results),
        top_document=results[0].document_id,
    )
