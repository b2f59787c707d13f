"""Search and feedback endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from manual_rag.api.dependencies import get_query_pipeline, get_search_engine, get_settings
from manual_rag.config.constants import EXCERPT_LENGTH
from manual_rag.config.settings import Settings
from manual_rag.exceptions import (
    CollaboratorError,
    ConfigurationError,
    InvalidFeedbackError,
    NotFoundError,
    RAGEngineError,
)
from manual_rag.models.schemas import (
    DocumentHit,
    FeedbackRequest,
    SearchRequest,
    SearchResult,
    SimpleSearchResponse,
)
from manual_rag.pipeline.presets import PipelineConfig
from manual_rag.pipeline.query_pipeline import QueryPipeline
from manual_rag.retrieval.hybrid_search import HybridSearchEngine, search_metadata

router = APIRouter()


@router.get("/search", response_model=SimpleSearchResponse)
async def simple_search(
    q: str = Query(min_length=1),
    limit: int = Query(default=10, ge=1, le=50),
    engine: HybridSearchEngine = Depends(get_search_engine),
) -> SimpleSearchResponse:
    """Hybrid search only: best chunk per document, no generation."""
    try:
        results = await engine.search(q, limit=limit)
    except CollaboratorError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except RAGEngineError as e:
        raise HTTPException(status_code=500, detail=str(e))

    hits: dict[str, DocumentHit] = {}
    for result in results:
        if result.document_id in hits:
            continue
        hits[result.document_id] = DocumentHit(
            document_id=result.document_id,
            title=result.document_title,
            combined_score=result.combined_score,
            excerpt=result.content[:EXCERPT_LENGTH],
        )
    return SimpleSearchResponse(
        query=q, results=list(hits.values()), metadata=search_metadata(results)
    )


@router.post("/search", response_model=SearchResult)
async def search(
    request: SearchRequest,
    pipeline: QueryPipeline = Depends(get_query_pipeline),
    settings: Settings = Depends(get_settings),
) -> SearchResult:
    try:
        config = PipelineConfig.from_preset(
            request.mode,
            search_limit=request.search_limit or request.limit,
            rerank_top_k=request.rerank_top_k,
            enable_cache=request.enable_cache,
            enable_rerank=request.enable_rerank,
            enable_metrics=request.enable_metrics,
            rerank_strategy=request.rerank_strategy,
            document_ids=request.document_ids,
            cache_ttl_seconds=settings.cache_ttl_seconds,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return await pipeline.run_query(request.query, config)


@router.put("/search/feedback")
async def submit_feedback(
    request: FeedbackRequest,
    pipeline: QueryPipeline = Depends(get_query_pipeline),
) -> dict:
    try:
        await pipeline.submit_feedback(request.query_id, request.feedback)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (InvalidFeedbackError, ConfigurationError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"status": "ok", "query_id": request.query_id, "feedback": request.feedback}
