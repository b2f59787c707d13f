"""Pydantic models for pipeline results and API request/response serialization."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class HybridChunkResult(BaseModel):
    chunk_id: int
    document_id: str
    document_title: str
    section_title: str | None = None
    chunk_index: int
    content: str
    vector_score: float
    keyword_score: float
    combined_score: float


class RerankResult(BaseModel):
    chunk_id: int
    relevance_score: float
    reasoning: str


# --- LLM structured output schemas ---


class RerankRanking(BaseModel):
    chunk_id: int
    relevance_score: float
    reasoning: str = ""


class RerankResponse(BaseModel):
    rankings: list[RerankRanking]


class AnswerReasoning(BaseModel):
    question_analysis: str = ""
    relevant_documents: list[str] = Field(default_factory=list)
    synthesis_approach: str = ""


class AnswerSource(BaseModel):
    document_id: str
    title: str
    relevance: str = ""


class AnswerPayload(BaseModel):
    reasoning: AnswerReasoning | None = None
    answer: str
    sources: list[AnswerSource] = Field(default_factory=list)
    confidence: float = 0.0
    limitations: str | None = None
    follow_up_questions: list[str] = Field(default_factory=list)

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return max(0.0, min(1.0, value))


# --- Pipeline result ---


class Source(BaseModel):
    document_id: str
    title: str
    relevance: str = ""
    excerpt: str = ""


class PipelineMetrics(BaseModel):
    vector_search_time: float = 0.0
    rerank_time: float = 0.0
    generation_time: float = 0.0
    total_time: float = 0.0
    chunks_retrieved: int = 0
    chunks_after_rerank: int = 0
    cache_hit: bool = False


class SearchResult(BaseModel):
    query_id: str
    answer: str
    sources: list[Source] = Field(default_factory=list)
    confidence: float = 0.0
    follow_up_questions: list[str] = Field(default_factory=list)
    reasoning: AnswerReasoning | None = None
    limitations: str | None = None
    chunks: list[HybridChunkResult] = Field(default_factory=list)
    reranked_chunks: list[RerankResult] | None = None
    metrics: PipelineMetrics = Field(default_factory=PipelineMetrics)
    preset: str = "standard"


# --- Cache / metrics reporting ---


class CacheStats(BaseModel):
    entries: int
    total_hits: int
    avg_hits: float
    oldest: datetime | None = None
    newest: datetime | None = None
    approx_size_bytes: int


class PopularQuery(BaseModel):
    query: str
    hit_count: int
    last_accessed_at: datetime


class StageAverages(BaseModel):
    vector_search_time: float = 0.0
    rerank_time: float = 0.0
    generation_time: float = 0.0
    total_time: float = 0.0
    chunks_retrieved: float = 0.0
    chunks_after_rerank: float = 0.0


class QueryFrequency(BaseModel):
    query: str
    count: int


class SlowQuery(BaseModel):
    query: str
    total_time: float
    timestamp: datetime


class MetricsSummary(BaseModel):
    days: int
    total_searches: int
    averages: StageAverages
    avg_confidence: float
    helpful_rate: float
    rated_count: int
    top_queries: list[QueryFrequency]
    slowest_queries: list[SlowQuery]


# --- API ---


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    mode: Literal["standard", "quick", "premium"] = "standard"
    limit: int | None = Field(default=None, ge=1, le=50)
    search_limit: int | None = Field(default=None, ge=1, le=100)
    rerank_top_k: int | None = Field(default=None, ge=1, le=50)
    enable_cache: bool | None = None
    enable_rerank: bool | None = None
    enable_metrics: bool | None = None
    rerank_strategy: Literal["llm", "heuristic"] | None = None
    document_ids: list[str] | None = None


class FeedbackRequest(BaseModel):
    query_id: str
    feedback: Literal["helpful", "not_helpful"]


class IndexDocumentRequest(BaseModel):
    title: str
    content: str
    summary: str | None = None
    force: bool = False


class IndexResponse(BaseModel):
    document_id: str
    chunks_created: int
    chunks_skipped: int
    status: str
    total_tokens: int


class ReindexResponse(BaseModel):
    total: int
    success_count: int
    error_count: int
    chunks_created: int
    errors: dict[str, str]


class DocumentHit(BaseModel):
    document_id: str
    title: str
    combined_score: float
    excerpt: str


class SearchMetadata(BaseModel):
    total_results: int = 0
    unique_documents: int = 0
    avg_combined_score: float = 0.0
    top_document: str | None = None


class SimpleSearchResponse(BaseModel):
    query: str
    results: list[DocumentHit]
    metadata: SearchMetadata = Field(default_factory=SearchMetadata)


class ChunkView(BaseModel):
    chunk_id: int
    chunk_index: int
    section_title: str | None = None
    content: str
    token_count: int
    start_offset: int
    end_offset: int


class DocumentChunksResponse(BaseModel):
    document_id: str
    title: str
    chunks: list[ChunkView]


class CleanupResponse(BaseModel):
    expired_cache_entries: int
    old_metrics: int


class HealthResponse(BaseModel):
    status: str
    doc_count: int
    chunk_count: int
    vector_index_size: int
    keyword_index_size: int


class IndexStatsResponse(BaseModel):
    total_documents: int
    total_chunks: int
    avg_chunks_per_document: float
    documents_with_chunks: int
    documents_without_chunks: int
    vector_index_size: int
    keyword_index_size: int
