"""Overlap carry-over between consecutive chunks."""

from __future__ import annotations

import re

from manual_rag.chunking.tokens import estimate_tokens

_SENTENCE_END = re.compile(r"(?<=[.!?。])\s+")


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_END.split(text) if s.strip()]


def compute_overlap_text(prev_chunk_text: str, max_tokens: int, max_sentences: int = 2) -> str:
    """Return the trailing sentences of prev_chunk_text to prepend to the next chunk.

    Takes up to ``max_sentences`` sentences, dropping the oldest until the carry
    fits in ``max_tokens``. Returns "" when even one sentence is too long.
    """
    if max_tokens <= 0 or max_sentences <= 0 or not prev_chunk_text.strip():
        return ""
    sentences = split_sentences(prev_chunk_text)
    for count in range(min(max_sentences, len(sentences)), 0, -1):
        carry = " ".join(sentences[-count:])
        if estimate_tokens(carry) <= max_tokens:
            return carry
    return ""
