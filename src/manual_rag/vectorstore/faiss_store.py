"""FAISS vector store keyed by chunk id, rebuilt from the chunk table at startup."""

from __future__ import annotations

import asyncio
import threading

import faiss
import numpy as np

from manual_rag.observability.logger import get_logger

logger = get_logger("faiss_store")


class FAISSVectorStore:
    def __init__(self, dimensions: int) -> None:
        self._dimensions = dimensions
        self._index = faiss.IndexIDMap(faiss.IndexFlatIP(dimensions))
        self._chunk_doc: dict[int, str] = {}
        self._write_lock = asyncio.Lock()
        # searches and mutations both run in worker threads
        self._index_lock = threading.RLock()

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def size(self) -> int:
        with self._index_lock:
            return self._index.ntotal

    def _prepare(self, embeddings: np.ndarray | list[list[float]]) -> np.ndarray:
        matrix = np.asarray(embeddings, dtype=np.float32).reshape(-1, self._dimensions)
        matrix = np.ascontiguousarray(matrix)
        faiss.normalize_L2(matrix)
        return matrix

    def add(self, doc_id: str, chunk_ids: list[int], embeddings: np.ndarray | list[list[float]]) -> None:
        if len(chunk_ids) == 0:
            return
        matrix = self._prepare(embeddings)
        with self._index_lock:
            self._index.add_with_ids(matrix, np.array(chunk_ids, dtype=np.int64))
            for cid in chunk_ids:
                self._chunk_doc[cid] = doc_id
            total = self._index.ntotal
        logger.debug("faiss_added", doc_id=doc_id, count=len(chunk_ids), total=total)

    def remove_document(self, doc_id: str) -> int:
        with self._index_lock:
            ids = [cid for cid, owner in self._chunk_doc.items() if owner == doc_id]
            if not ids:
                return 0
            removed = self._index.remove_ids(np.array(ids, dtype=np.int64))
            for cid in ids:
                del self._chunk_doc[cid]
            total = self._index.ntotal
        logger.debug("faiss_removed", doc_id=doc_id, count=int(removed), total=total)
        return int(removed)

    def replace_document(
        self, doc_id: str, chunk_ids: list[int], embeddings: np.ndarray | list[list[float]]
    ) -> None:
        """Swap a document's vectors; searches see either the old or the new set."""
        with self._index_lock:
            self.remove_document(doc_id)
            self.add(doc_id, chunk_ids, embeddings)

    async def replace_document_safe(
        self, doc_id: str, chunk_ids: list[int], embeddings: np.ndarray | list[list[float]]
    ) -> None:
        async with self._write_lock:
            await asyncio.to_thread(self.replace_document, doc_id, chunk_ids, embeddings)

    async def remove_document_safe(self, doc_id: str) -> int:
        async with self._write_lock:
            return await asyncio.to_thread(self.remove_document, doc_id)

    def reset(self) -> None:
        with self._index_lock:
            self._index.reset()
            self._chunk_doc.clear()

    def search(
        self,
        query_embedding: np.ndarray | list[float],
        top_k: int,
        doc_ids: set[str] | None = None,
    ) -> list[tuple[int, float]]:
        """Return (chunk_id, cosine_similarity) pairs, best first."""
        if top_k <= 0:
            return []
        query = self._prepare(query_embedding)
        with self._index_lock:
            total = self._index.ntotal
            if total == 0:
                return []
            # a document filter can exclude any hit, so scan everything before truncating
            k = total if doc_ids is not None else min(top_k, total)
            scores, indices = self._index.search(query, k)
            owners = {int(idx): self._chunk_doc.get(int(idx)) for idx in indices[0]}

        results: list[tuple[int, float]] = []
        for idx, score in zip(indices[0], scores[0]):
            idx = int(idx)
            if idx == -1:
                continue
            if doc_ids is not None and owners[idx] not in doc_ids:
                continue
            results.append((idx, float(score)))
            if len(results) >= top_k:
                break
        return results
