"""Answer generation from the final evidence chunks."""

from __future__ import annotations

from manual_rag.config.constants import EXCERPT_LENGTH
from manual_rag.generation.prompt_templates import (
    ANSWER_GENERATION_PROMPT,
    ANSWER_GENERATION_SYSTEM,
    format_context_block,
)
from manual_rag.models.schemas import AnswerPayload, HybridChunkResult, Source
from manual_rag.observability.logger import get_logger
from manual_rag.protocols.llm import LLMProvider

logger = get_logger("generation")


class AnswerGenerator:
    def __init__(self, llm: LLMProvider, max_context_chunks: int = 10) -> None:
        self._llm = llm
        self._max_context_chunks = max_context_chunks

    @property
    def max_context_chunks(self) -> int:
        """Most chunks a prompt will carry; callers should pass no more."""
        return self._max_context_chunks

    async def generate(
        self, query: str, chunks: list[HybridChunkResult]
    ) -> tuple[AnswerPayload, list[Source]]:
        """Returns the parsed answer and its sources enriched with excerpts.

        Collaborator and parse errors propagate to the caller.
        """
        prompt = ANSWER_GENERATION_PROMPT.format(
            query=query,
            context_block=format_context_block(chunks, self._max_context_chunks),
        )
        payload = await self._llm.generate_structured(
            prompt, AnswerPayload, system=ANSWER_GENERATION_SYSTEM
        )
        sources = enrich_sources(payload, chunks)

        logger.info(
            "generated_answer",
            query_len=len(query),
            answer_len=len(payload.answer),
            sources=len(sources),
            confidence=payload.confidence,
        )
        return payload, sources


def enrich_sources(payload: AnswerPayload, chunks: list[HybridChunkResult]) -> list[Source]:
    first_chunk: dict[str, HybridChunkResult] = {}
    for chunk in chunks:
        first_chunk.setdefault(chunk.document_id, chunk)

    sources = []
    for src in payload.sources:
        chunk = first_chunk.get(src.document_id)
        sources.append(
            Source(
                document_id=src.document_id,
                title=src.title or (chunk.document_title if chunk else ""),
                relevance=src.relevance,
                excerpt=chunk.content[:EXCERPT_LENGTH] if chunk else "",
            )
        )
    return sources
