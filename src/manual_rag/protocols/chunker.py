"""Protocol for text chunking."""

from __future__ import annotations

from typing import Protocol

from manual_rag.models.domain import Chunk


class Chunker(Protocol):
    def chunk(self, content: str, title: str = "") -> list[Chunk]: ...
