"""Core domain objects used throughout the system."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

Feedback = Literal["helpful", "not_helpful"]


@dataclass
class Document:
    doc_id: str
    title: str
    content: str
    summary: str | None = None
    content_hash: str | None = None


@dataclass
class Chunk:
    doc_id: str
    chunk_index: int
    content: str
    section_title: str | None
    token_count: int
    start_offset: int
    end_offset: int
    chunk_id: int | None = None
    embedding: list[float] | None = None

    def embedding_text(self) -> str:
        """Text sent to the embedder: section title gives the chunk its context."""
        if self.section_title:
            return f"{self.section_title}\n\n{self.content}"
        return self.content


@dataclass
class ChunkingStats:
    total_chunks: int = 0
    avg_tokens_per_chunk: int = 0
    min_tokens: int = 0
    max_tokens: int = 0
    total_tokens: int = 0


@dataclass
class IndexResult:
    document_id: str
    chunks_created: int
    chunks_skipped: int
    status: str  # "indexed", "unchanged", "empty"
    stats: ChunkingStats = field(default_factory=ChunkingStats)


@dataclass
class ReindexReport:
    total: int = 0
    success_count: int = 0
    error_count: int = 0
    chunks_created: int = 0
    errors: dict[str, str] = field(default_factory=dict)


@dataclass
class SearchMetric:
    query_id: str
    query: str
    vector_search_time: float
    rerank_time: float
    generation_time: float
    total_time: float
    chunks_retrieved: int
    chunks_after_rerank: int
    confidence: float
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_feedback: Feedback | None = None
