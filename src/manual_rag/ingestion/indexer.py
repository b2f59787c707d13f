"""Document indexing: chunk -> validate -> embed -> store -> index."""

from __future__ import annotations

import asyncio
import hashlib

from manual_rag.cache.result_cache import ResultCache
from manual_rag.chunking.quality import calculate_chunking_stats, filter_valid_chunks
from manual_rag.config.constants import MAX_CHUNK_TOKENS, MIN_CHUNK_CHARS, MIN_CHUNK_TOKENS
from manual_rag.exceptions import IndexingError, NotFoundError
from manual_rag.keyword_search.bm25_index import BM25Index
from manual_rag.models.domain import Document, IndexResult, ReindexReport
from manual_rag.models.schemas import IndexStatsResponse
from manual_rag.observability.logger import get_logger
from manual_rag.protocols.chunker import Chunker
from manual_rag.protocols.embedder import Embedder
from manual_rag.ratelimit.token_bucket import TokenBucket
from manual_rag.storage.sqlite_doc_store import SQLiteDocStore
from manual_rag.vectorstore.faiss_store import FAISSVectorStore

logger = get_logger("indexer")


def compute_content_hash(title: str, content: str) -> str:
    return hashlib.sha256(f"{title}|||{content}".encode("utf-8")).hexdigest()


class DocumentIndexer:
    def __init__(
        self,
        chunker: Chunker,
        embedder: Embedder,
        doc_store: SQLiteDocStore,
        vector_store: FAISSVectorStore,
        bm25_index: BM25Index,
        cache: ResultCache | None = None,
        reindex_limiter: TokenBucket | None = None,
        min_tokens: int = MIN_CHUNK_TOKENS,
        max_tokens: int = MAX_CHUNK_TOKENS,
        min_chars: int = MIN_CHUNK_CHARS,
    ) -> None:
        self._chunker = chunker
        self._embedder = embedder
        self._doc_store = doc_store
        self._vector_store = vector_store
        self._bm25_index = bm25_index
        self._cache = cache
        self._reindex_limiter = reindex_limiter or TokenBucket(rate=5.0, name="reindex")
        self._bounds = {"min_tokens": min_tokens, "max_tokens": max_tokens, "min_chars": min_chars}
        # store, FAISS and BM25 must change together
        self._write_lock = asyncio.Lock()

    async def index_document(
        self,
        doc_id: str,
        title: str,
        content: str,
        summary: str | None = None,
        force: bool = False,
    ) -> IndexResult:
        content_hash = compute_content_hash(title, content)
        if not force and await self._doc_store.get_content_hash(doc_id) == content_hash:
            existing = await self._doc_store.count_chunks(doc_id)
            logger.info("index_unchanged", doc_id=doc_id, chunks=existing)
            return IndexResult(
                document_id=doc_id, chunks_created=0, chunks_skipped=existing, status="unchanged"
            )

        # 1. Chunk and validate
        chunks = await asyncio.to_thread(self._chunker.chunk, content, title)
        valid = filter_valid_chunks(chunks, **self._bounds)
        skipped = len(chunks) - len(valid)
        for index, chunk in enumerate(valid):
            chunk.doc_id = doc_id
            chunk.chunk_index = index

        # 2. Embed (paced by the embedder's limiter). Failure leaves the old set in place.
        embeddings = await self._embedder.embed_batch([c.embedding_text() for c in valid])
        if len(embeddings) != len(valid):
            raise IndexingError(
                f"Embedder returned {len(embeddings)} vectors for {len(valid)} chunks of {doc_id}"
            )
        for chunk, embedding in zip(valid, embeddings):
            chunk.embedding = embedding

        # 3. Swap the chunk set everywhere
        document = Document(doc_id=doc_id, title=title, content=content, summary=summary)
        async with self._write_lock:
            stored = await self._doc_store.replace_chunks(document, valid, content_hash)
            await self._vector_store.replace_document_safe(
                doc_id, [c.chunk_id for c in stored], [c.embedding for c in stored]
            )
            await self._rebuild_keyword_index()

        await self._invalidate_cache(doc_id)

        stats = calculate_chunking_stats(stored)
        status = "indexed" if stored else "empty"
        logger.info(
            "document_indexed",
            doc_id=doc_id,
            status=status,
            chunks_created=len(stored),
            chunks_skipped=skipped,
            avg_tokens=stats.avg_tokens_per_chunk,
        )
        return IndexResult(
            document_id=doc_id,
            chunks_created=len(stored),
            chunks_skipped=skipped,
            status=status,
            stats=stats,
        )

    async def delete_document(self, doc_id: str) -> int:
        if await self._doc_store.get_document(doc_id) is None:
            raise NotFoundError(f"Document {doc_id} not found")
        async with self._write_lock:
            removed = await self._doc_store.delete_document(doc_id)
            await self._vector_store.remove_document_safe(doc_id)
            await self._rebuild_keyword_index()
        await self._invalidate_cache(doc_id)
        logger.info("document_deleted", doc_id=doc_id, chunks_removed=removed)
        return removed

    async def reindex_all(
        self, documents: list[Document] | None = None, force: bool = True
    ) -> ReindexReport:
        """Reindex documents one at a time. A failing document is recorded, not fatal."""
        if documents is None:
            documents = await self._doc_store.list_documents()
        report = ReindexReport(total=len(documents))
        logger.info("reindex_started", total=report.total)

        for document in documents:
            await self._reindex_limiter.acquire()
            try:
                result = await self.index_document(
                    document.doc_id,
                    document.title,
                    document.content,
                    summary=document.summary,
                    force=force,
                )
            except Exception as e:
                report.error_count += 1
                report.errors[document.doc_id] = str(e) or type(e).__name__
                logger.error("reindex_document_failed", doc_id=document.doc_id, error=str(e))
                continue
            report.success_count += 1
            report.chunks_created += result.chunks_created

        logger.info(
            "reindex_finished",
            total=report.total,
            success=report.success_count,
            errors=report.error_count,
            chunks_created=report.chunks_created,
        )
        return report

    async def load_indexes(self) -> None:
        """Rebuild the in-memory FAISS and BM25 indexes from the chunk table."""
        chunks = await self._doc_store.get_all_chunks(with_embeddings=True)
        by_doc: dict[str, list] = {}
        for chunk in chunks:
            if chunk.embedding is not None:
                by_doc.setdefault(chunk.doc_id, []).append(chunk)

        async with self._write_lock:
            self._vector_store.reset()
            for doc_id, doc_chunks in by_doc.items():
                await self._vector_store.replace_document_safe(
                    doc_id, [c.chunk_id for c in doc_chunks], [c.embedding for c in doc_chunks]
                )
            await self._bm25_index.rebuild(chunks)
        logger.info(
            "indexes_loaded",
            vectors=self._vector_store.size,
            keyword_entries=self._bm25_index.size,
        )

    async def index_stats(self) -> IndexStatsResponse:
        counts = await self._doc_store.chunk_counts_by_document()
        total_docs = len(counts)
        total_chunks = sum(counts.values())
        with_chunks = sum(1 for n in counts.values() if n > 0)
        return IndexStatsResponse(
            total_documents=total_docs,
            total_chunks=total_chunks,
            avg_chunks_per_document=round(total_chunks / total_docs, 2) if total_docs else 0.0,
            documents_with_chunks=with_chunks,
            documents_without_chunks=total_docs - with_chunks,
            vector_index_size=self._vector_store.size,
            keyword_index_size=self._bm25_index.size,
        )

    async def _rebuild_keyword_index(self) -> None:
        await self._bm25_index.rebuild(await self._doc_store.get_all_chunks())

    async def _invalidate_cache(self, doc_id: str) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.invalidate_all()
        except Exception as e:
            logger.error("cache_invalidation_failed", doc_id=doc_id, error=str(e))
