"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from manual_rag.api.dependencies import get_bm25_index, get_doc_store, get_vector_store
from manual_rag.keyword_search.bm25_index import BM25Index
from manual_rag.models.schemas import HealthResponse
from manual_rag.storage.sqlite_doc_store import SQLiteDocStore
from manual_rag.vectorstore.faiss_store import FAISSVectorStore

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    doc_store: SQLiteDocStore = Depends(get_doc_store),
    vector_store: FAISSVectorStore = Depends(get_vector_store),
    bm25_index: BM25Index = Depends(get_bm25_index),
) -> HealthResponse:
    return HealthResponse(
        status="ok",
        doc_count=await doc_store.count_documents(),
        chunk_count=await doc_store.count_chunks(),
        vector_index_size=vector_store.size,
        keyword_index_size=bm25_index.size,
    )
