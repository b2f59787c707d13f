"""Weighted Reciprocal Rank Fusion for merging vector and keyword rankings."""

from __future__ import annotations

from dataclasses import dataclass

from manual_rag.config.constants import KEYWORD_WEIGHT, RRF_K, VECTOR_WEIGHT


@dataclass
class FusedScore:
    chunk_id: int
    vector_score: float = 0.0
    keyword_score: float = 0.0

    @property
    def combined_score(self) -> float:
        return self.vector_score + self.keyword_score


def rrf_score(rank: int, k: int = RRF_K) -> float:
    """RRF contribution of a 1-based rank."""
    return 1.0 / (k + rank)


def weighted_rrf(
    vector_results: list[tuple[int, float]],
    keyword_results: list[tuple[int, float]],
    k: int = RRF_K,
    vector_weight: float = VECTOR_WEIGHT,
    keyword_weight: float = KEYWORD_WEIGHT,
) -> list[FusedScore]:
    """Merge two ranked (chunk_id, raw_score) lists.

    Raw scores are ignored; only list position matters. A chunk missing from one
    list simply gets no contribution from it. Output is sorted by combined score
    descending, ties by ascending chunk id.
    """
    fused: dict[int, FusedScore] = {}
    for rank, (chunk_id, _) in enumerate(vector_results, 1):
        entry = fused.setdefault(chunk_id, FusedScore(chunk_id))
        entry.vector_score += vector_weight * rrf_score(rank, k)
    for rank, (chunk_id, _) in enumerate(keyword_results, 1):
        entry = fused.setdefault(chunk_id, FusedScore(chunk_id))
        entry.keyword_score += keyword_weight * rrf_score(rank, k)
    return sorted(fused.values(), key=lambda f: (-f.combined_score, f.chunk_id))
