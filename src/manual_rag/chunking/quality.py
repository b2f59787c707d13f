"""Post-chunking validation and statistics."""

from __future__ import annotations

import re

from manual_rag.config.constants import MAX_CHUNK_TOKENS, MIN_CHUNK_CHARS, MIN_CHUNK_TOKENS
from manual_rag.models.domain import Chunk, ChunkingStats
from manual_rag.observability.logger import get_logger

logger = get_logger("chunk_quality")

_WORD_CHAR = re.compile(r"[^\W_]")


def validate_chunk(
    chunk: Chunk,
    min_tokens: int = MIN_CHUNK_TOKENS,
    max_tokens: int = MAX_CHUNK_TOKENS,
    min_chars: int = MIN_CHUNK_CHARS,
) -> bool:
    """Reject chunks that are too small, too large, or carry no meaningful text."""
    if chunk.token_count < min_tokens or chunk.token_count > max_tokens:
        return False
    if len(chunk.content) < min_chars:
        return False
    meaningful = "".join(chunk.content.split())
    if len(meaningful) < min_chars / 2:
        return False
    # whitespace/punctuation only
    if not _WORD_CHAR.search(meaningful):
        return False
    return True


def filter_valid_chunks(chunks: list[Chunk], **bounds: int) -> list[Chunk]:
    valid = [c for c in chunks if validate_chunk(c, **bounds)]
    removed = len(chunks) - len(valid)
    if removed:
        logger.info("invalid_chunks_filtered", removed=removed, remaining=len(valid))
    return valid


def calculate_chunking_stats(chunks: list[Chunk]) -> ChunkingStats:
    if not chunks:
        return ChunkingStats()
    counts = [c.token_count for c in chunks]
    total = sum(counts)
    return ChunkingStats(
        total_chunks=len(chunks),
        avg_tokens_per_chunk=round(total / len(chunks)),
        min_tokens=min(counts),
        max_tokens=max(counts),
        total_tokens=total,
    )
