"""BM25 keyword search index using rank_bm25."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from rank_bm25 import BM25Okapi

from manual_rag.keyword_search.tokenizer import tokenize
from manual_rag.models.domain import Chunk
from manual_rag.observability.logger import get_logger

logger = get_logger("bm25_index")


def chunk_search_text(chunk: Chunk) -> str:
    if chunk.section_title:
        return f"{chunk.content} {chunk.section_title}"
    return chunk.content


@dataclass(frozen=True)
class _Snapshot:
    """One consistent generation of the index; positions line up across fields."""

    bm25: BM25Okapi | None
    chunk_ids: tuple[int, ...]
    chunk_docs: tuple[str, ...]
    token_sets: tuple[frozenset[str], ...]


_EMPTY = _Snapshot(bm25=None, chunk_ids=(), chunk_docs=(), token_sets=())


class BM25Index:
    def __init__(self) -> None:
        self._snapshot = _EMPTY
        self._write_lock = asyncio.Lock()

    def build(self, chunks: list[Chunk]) -> None:
        """Build the BM25 index from a list of chunks. Replaces existing index.

        Searches running meanwhile keep using the previous snapshot.
        """
        tokenized_corpus = [tokenize(chunk_search_text(c)) for c in chunks]
        # an all-empty corpus has zero average document length
        bm25 = BM25Okapi(tokenized_corpus) if any(tokenized_corpus) else None
        self._snapshot = _Snapshot(
            bm25=bm25,
            chunk_ids=tuple(c.chunk_id for c in chunks),
            chunk_docs=tuple(c.doc_id for c in chunks),
            token_sets=tuple(frozenset(tokens) for tokens in tokenized_corpus),
        )
        logger.info("bm25_built", size=len(chunks))

    async def rebuild(self, chunks: list[Chunk]) -> None:
        """Thread-safe rebuild of the BM25 index."""
        async with self._write_lock:
            await asyncio.to_thread(self.build, chunks)

    def search(
        self, query: str, top_k: int = 50, doc_ids: set[str] | None = None
    ) -> list[tuple[int, float]]:
        """Return (chunk_id, score) for chunks sharing at least one query term, best first."""
        snap = self._snapshot
        if snap.bm25 is None or not snap.chunk_ids or top_k <= 0:
            return []
        query_terms = tokenize(query)
        if not query_terms:
            return []
        wanted = set(query_terms)
        scores = snap.bm25.get_scores(query_terms)

        matches = [
            i
            for i, tokens in enumerate(snap.token_sets)
            if not wanted.isdisjoint(tokens)
            and (doc_ids is None or snap.chunk_docs[i] in doc_ids)
        ]
        matches.sort(key=lambda i: (-float(scores[i]), snap.chunk_ids[i]))
        return [(snap.chunk_ids[i], float(scores[i])) for i in matches[:top_k]]

    @property
    def size(self) -> int:
        return len(self._snapshot.chunk_ids)
