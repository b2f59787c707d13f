"""Wiring of the pipeline components from Settings."""

from __future__ import annotations

from dataclasses import dataclass

from manual_rag.cache.result_cache import ResultCache
from manual_rag.chunking.section_chunker import SectionChunker
from manual_rag.config.settings import Settings
from manual_rag.embeddings.openai_embedder import OpenAIEmbedder
from manual_rag.generation.answer_generator import AnswerGenerator
from manual_rag.generation.gemini_provider import GeminiProvider
from manual_rag.ingestion.indexer import DocumentIndexer
from manual_rag.keyword_search.bm25_index import BM25Index
from manual_rag.observability.logger import get_logger
from manual_rag.observability.metrics import MetricsRecorder
from manual_rag.pipeline.query_pipeline import QueryPipeline
from manual_rag.protocols.embedder import Embedder
from manual_rag.protocols.llm import LLMProvider
from manual_rag.ratelimit.token_bucket import TokenBucket
from manual_rag.retrieval.hybrid_search import HybridSearchEngine
from manual_rag.retrieval.reranker_heuristic import HeuristicReranker
from manual_rag.retrieval.reranker_llm import LlmReranker
from manual_rag.storage.sqlite_doc_store import SQLiteDocStore
from manual_rag.vectorstore.faiss_store import FAISSVectorStore

logger = get_logger("services")


@dataclass
class Services:
    settings: Settings
    doc_store: SQLiteDocStore
    vector_store: FAISSVectorStore
    bm25_index: BM25Index
    cache: ResultCache
    metrics: MetricsRecorder
    indexer: DocumentIndexer
    search_engine: HybridSearchEngine
    pipeline: QueryPipeline


async def build_services(
    settings: Settings,
    embedder: Embedder | None = None,
    llm: LLMProvider | None = None,
) -> Services:
    """Construct, initialize and load every component.

    ``embedder`` and ``llm`` default to the OpenAI and Gemini clients.
    """
    if embedder is None:
        embedder = OpenAIEmbedder(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
            limiter=TokenBucket(
                settings.embedding_requests_per_second,
                capacity=settings.embedding_burst,
                name="embedding",
            ),
        )
    if llm is None:
        llm = GeminiProvider(
            api_key=settings.google_api_key,
            model=settings.gemini_model,
            temperature=settings.gemini_temperature,
            max_tokens=settings.gemini_max_tokens,
            limiter=TokenBucket(settings.generation_requests_per_second, name="generation"),
        )

    # Storage
    doc_store = SQLiteDocStore(settings.sqlite_doc_db_path)
    await doc_store.initialize()
    cache = ResultCache(settings.sqlite_cache_db_path)
    await cache.initialize()
    metrics = MetricsRecorder(settings.sqlite_metrics_db_path)
    await metrics.initialize()

    # Indexes
    vector_store = FAISSVectorStore(dimensions=embedder.dimensions)
    bm25_index = BM25Index()

    indexer = DocumentIndexer(
        chunker=SectionChunker(chunk_size=settings.chunk_size, chunk_overlap=settings.chunk_overlap),
        embedder=embedder,
        doc_store=doc_store,
        vector_store=vector_store,
        bm25_index=bm25_index,
        cache=cache,
        reindex_limiter=TokenBucket(settings.reindex_documents_per_second, name="reindex"),
        min_tokens=settings.chunk_min_tokens,
        max_tokens=settings.chunk_max_tokens,
        min_chars=settings.chunk_min_chars,
    )
    await indexer.load_indexes()

    search_engine = HybridSearchEngine(
        vector_store=vector_store,
        bm25_index=bm25_index,
        doc_store=doc_store,
        embedder=embedder,
        rrf_k=settings.rrf_k,
        vector_weight=settings.vector_weight,
        keyword_weight=settings.keyword_weight,
        candidate_multiplier=settings.candidate_multiplier,
    )

    pipeline = QueryPipeline(
        search_engine=search_engine,
        rerankers={"llm": LlmReranker(llm), "heuristic": HeuristicReranker()},
        answer_generator=AnswerGenerator(
            llm, max_context_chunks=settings.generation_max_context_chunks
        ),
        cache=cache,
        metrics=metrics,
        default_preset=settings.default_preset,
        cache_ttl_seconds=settings.cache_ttl_seconds,
    )

    logger.info(
        "services_ready",
        docs=await doc_store.count_documents(),
        chunks=await doc_store.count_chunks(),
        index_size=vector_store.size,
    )
    return Services(
        settings=settings,
        doc_store=doc_store,
        vector_store=vector_store,
        bm25_index=bm25_index,
        cache=cache,
        metrics=metrics,
        indexer=indexer,
        search_engine=search_engine,
        pipeline=pipeline,
    )
