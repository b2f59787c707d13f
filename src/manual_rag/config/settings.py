"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API Keys
    openai_api_key: str = ""
    google_api_key: str = ""

    # Embedding
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_requests_per_second: float = 10.0  # 0 disables throttling
    embedding_burst: int = 1

    # LLM / Gemini
    gemini_model: str = "gemini-2.0-flash"
    gemini_temperature: float = 0.2
    gemini_max_tokens: int = 8192
    generation_requests_per_second: float = 0.0
    generation_max_context_chunks: int = 10

    # Chunking
    chunk_size: int = 500
    chunk_overlap: int = 50
    chunk_min_tokens: int = 10
    chunk_max_tokens: int = 1000
    chunk_min_chars: int = 15

    # Hybrid search
    rrf_k: int = 60
    vector_weight: float = 0.7
    keyword_weight: float = 0.3
    candidate_multiplier: int = 3

    # Cache / metrics
    cache_ttl_seconds: int = 3600
    metrics_retention_days: int = 90
    metrics_summary_days: int = 7

    # Full reindex pacing (documents per second, burst of one = fixed spacing)
    reindex_documents_per_second: float = 5.0

    # Pipeline
    default_preset: str = "standard"

    # Storage paths
    sqlite_doc_db_path: str = "data/documents.db"
    sqlite_cache_db_path: str = "data/search_cache.db"
    sqlite_metrics_db_path: str = "data/search_metrics.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {"env_file": ".env", "env_prefix": "MANUAL_RAG_"}
