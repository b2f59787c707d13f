"""Idempotent database schema creation and connection handling."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from manual_rag.exceptions import StoreError

DOCUMENTS_TABLE = """
CREATE TABLE IF NOT EXISTS documents (
    doc_id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    summary TEXT,
    content_hash TEXT,
    updated_at TEXT NOT NULL
)
"""

CHUNKS_TABLE = """
CREATE TABLE IF NOT EXISTS chunks (
    chunk_id INTEGER PRIMARY KEY AUTOINCREMENT,
    doc_id TEXT NOT NULL,
    chunk_index INTEGER NOT NULL,
    content TEXT NOT NULL,
    section_title TEXT,
    token_count INTEGER NOT NULL,
    start_offset INTEGER NOT NULL,
    end_offset INTEGER NOT NULL,
    embedding BLOB,
    UNIQUE (doc_id, chunk_index),
    FOREIGN KEY (doc_id) REFERENCES documents(doc_id)
)
"""

CHUNKS_DOC_INDEX = """
CREATE INDEX IF NOT EXISTS idx_chunks_doc_id ON chunks(doc_id)
"""

SEARCH_CACHE_TABLE = """
CREATE TABLE IF NOT EXISTS search_cache (
    query_hash TEXT PRIMARY KEY,
    query TEXT NOT NULL,
    result TEXT NOT NULL,
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    last_accessed_at TEXT NOT NULL,
    hit_count INTEGER NOT NULL DEFAULT 0
)
"""

SEARCH_CACHE_EXPIRES_INDEX = """
CREATE INDEX IF NOT EXISTS idx_search_cache_expires_at ON search_cache(expires_at)
"""

SEARCH_METRICS_TABLE = """
CREATE TABLE IF NOT EXISTS search_metrics (
    query_id TEXT PRIMARY KEY,
    query TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    vector_search_time REAL NOT NULL,
    rerank_time REAL NOT NULL,
    generation_time REAL NOT NULL,
    total_time REAL NOT NULL,
    chunks_retrieved INTEGER NOT NULL,
    chunks_after_rerank INTEGER NOT NULL,
    confidence REAL NOT NULL,
    user_feedback TEXT
)
"""

SEARCH_METRICS_TIMESTAMP_INDEX = """
CREATE INDEX IF NOT EXISTS idx_search_metrics_timestamp ON search_metrics(timestamp)
"""


@asynccontextmanager
async def open_db(db_path: str) -> AsyncIterator[aiosqlite.Connection]:
    """Open a connection, translating driver errors into StoreError."""
    try:
        async with aiosqlite.connect(db_path) as db:
            db.row_factory = aiosqlite.Row
            yield db
    except aiosqlite.Error as e:
        raise StoreError(f"SQLite operation failed on {db_path}: {e}") from e


def _ensure_parent(db_path: str) -> None:
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)


async def initialize_doc_db(db_path: str) -> None:
    _ensure_parent(db_path)
    async with open_db(db_path) as db:
        await db.execute(DOCUMENTS_TABLE)
        await db.execute(CHUNKS_TABLE)
        await db.execute(CHUNKS_DOC_INDEX)
        await db.commit()


async def initialize_cache_db(db_path: str) -> None:
    _ensure_parent(db_path)
    async with open_db(db_path) as db:
        await db.execute(SEARCH_CACHE_TABLE)
        await db.execute(SEARCH_CACHE_EXPIRES_INDEX)
        await db.commit()


async def initialize_metrics_db(db_path: str) -> None:
    _ensure_parent(db_path)
    async with open_db(db_path) as db:
        await db.execute(SEARCH_METRICS_TABLE)
        await db.execute(SEARCH_METRICS_TIMESTAMP_INDEX)
        await db.commit()
