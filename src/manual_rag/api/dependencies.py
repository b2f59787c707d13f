"""FastAPI dependency injection helpers."""

from __future__ import annotations

from fastapi import Request

from manual_rag.cache.result_cache import ResultCache
from manual_rag.config.settings import Settings
from manual_rag.ingestion.indexer import DocumentIndexer
from manual_rag.keyword_search.bm25_index import BM25Index
from manual_rag.observability.metrics import MetricsRecorder
from manual_rag.pipeline.query_pipeline import QueryPipeline
from manual_rag.retrieval.hybrid_search import HybridSearchEngine
from manual_rag.storage.sqlite_doc_store import SQLiteDocStore
from manual_rag.vectorstore.faiss_store import FAISSVectorStore


def get_query_pipeline(request: Request) -> QueryPipeline:
    return request.app.state.services.pipeline


def get_search_engine(request: Request) -> HybridSearchEngine:
    return request.app.state.services.search_engine


def get_indexer(request: Request) -> DocumentIndexer:
    return request.app.state.services.indexer


def get_doc_store(request: Request) -> SQLiteDocStore:
    return request.app.state.services.doc_store


def get_vector_store(request: Request) -> FAISSVectorStore:
    return request.app.state.services.vector_store


def get_bm25_index(request: Request) -> BM25Index:
    return request.app.state.services.bm25_index


def get_cache(request: Request) -> ResultCache:
    return request.app.state.services.cache


def get_metrics(request: Request) -> MetricsRecorder:
    return request.app.state.services.metrics


def get_settings(request: Request) -> Settings:
    return request.app.state.services.settings
