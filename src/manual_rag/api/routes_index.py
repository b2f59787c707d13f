"""Document indexing endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from manual_rag.api.dependencies import get_doc_store, get_indexer
from manual_rag.exceptions import CollaboratorError, NotFoundError, RAGEngineError
from manual_rag.ingestion.indexer import DocumentIndexer
from manual_rag.models.schemas import (
    ChunkView,
    DocumentChunksResponse,
    IndexDocumentRequest,
    IndexResponse,
    IndexStatsResponse,
    ReindexResponse,
)
from manual_rag.storage.sqlite_doc_store import SQLiteDocStore

router = APIRouter()


@router.put("/documents/{doc_id}", response_model=IndexResponse)
async def index_document(
    doc_id: str,
    request: IndexDocumentRequest,
    indexer: DocumentIndexer = Depends(get_indexer),
) -> IndexResponse:
    try:
        result = await indexer.index_document(
            doc_id, request.title, request.content, summary=request.summary, force=request.force
        )
    except CollaboratorError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except RAGEngineError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return IndexResponse(
        document_id=result.document_id,
        chunks_created=result.chunks_created,
        chunks_skipped=result.chunks_skipped,
        status=result.status,
        total_tokens=result.stats.total_tokens,
    )


@router.delete("/documents/{doc_id}")
async def delete_document(
    doc_id: str,
    indexer: DocumentIndexer = Depends(get_indexer),
) -> dict:
    try:
        removed = await indexer.delete_document(doc_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"document_id": doc_id, "chunks_removed": removed}


@router.post("/documents/reindex", response_model=ReindexResponse)
async def reindex_all(indexer: DocumentIndexer = Depends(get_indexer)) -> ReindexResponse:
    report = await indexer.reindex_all()
    return ReindexResponse(
        total=report.total,
        success_count=report.success_count,
        error_count=report.error_count,
        chunks_created=report.chunks_created,
        errors=report.errors,
    )


@router.get("/documents/stats", response_model=IndexStatsResponse)
async def index_stats(indexer: DocumentIndexer = Depends(get_indexer)) -> IndexStatsResponse:
    return await indexer.index_stats()


@router.get("/documents/{doc_id}/chunks", response_model=DocumentChunksResponse)
async def document_chunks(
    doc_id: str,
    doc_store: SQLiteDocStore = Depends(get_doc_store),
) -> DocumentChunksResponse:
    """Stored chunks of one document in chunk_index order."""
    document = await doc_store.get_document(doc_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Document not found: {doc_id}")
    chunks = await doc_store.get_chunks_by_doc(doc_id)
    return DocumentChunksResponse(
        document_id=doc_id,
        title=document.title,
        chunks=[
            ChunkView(
                chunk_id=c.chunk_id,
                chunk_index=c.chunk_index,
                section_title=c.section_title,
                content=c.content,
                token_count=c.token_count,
                start_offset=c.start_offset,
                end_offset=c.end_offset,
            )
            for c in chunks
        ],
    )
