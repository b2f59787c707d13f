"""All prompt templates for the retrieval pipeline."""

from manual_rag.models.schemas import HybridChunkResult

ANSWER_GENERATION_SYSTEM = """You are a precise, factual assistant for a document library. Answer questions using ONLY the provided documents.
Rules:
- Refer to documents by their [number] markers.
- If the documents don't contain enough information, say so clearly and explain what is missing in "limitations".
- Never make up information not present in the documents.
- Be concise and direct."""

ANSWER_GENERATION_PROMPT = """Question: {query}

Documents:
{context_block}

Think through the question first, then answer it from the documents above.
Return a JSON object:
- "reasoning": {{"question_analysis": str, "relevant_documents": list of document ids, "synthesis_approach": str}}
- "answer": the answer text
- "sources": list of {{"document_id": str, "title": str, "relevance": str}} for the documents you used
- "confidence": float between 0.0 and 1.0
- "limitations": str or null
- "follow_up_questions": list of up to 3 related questions"""

RERANK_SYSTEM = """You are a search relevance judge. Score how well each passage answers the user's question."""

RERANK_PROMPT = """Question: {query}

Passages:
{candidate_block}

Score every passage from 0.0 to 1.0 using these weighted criteria:
- Semantic relevance to the question (40%)
- Completeness of the information (30%)
- Accuracy and specificity (20%)
- Practical applicability (10%)

Return a JSON object with exactly {count} entries, best first:
- "rankings": list of {{"chunk_id": int, "relevance_score": float, "reasoning": str}}"""


def chunk_heading(chunk: HybridChunkResult) -> str:
    if chunk.section_title:
        return f"{chunk.document_title} - {chunk.section_title}"
    return chunk.document_title


def format_context_block(chunks: list[HybridChunkResult], max_chunks: int = 10) -> str:
    """Format chunks as a numbered document block for prompts."""
    lines = []
    for i, chunk in enumerate(chunks[:max_chunks], 1):
        lines.append(
            f"[{i}] (document_id: {chunk.document_id}) {chunk_heading(chunk)}\n{chunk.content}"
        )
    return "\n\n".join(lines)


def format_candidate_block(chunks: list[HybridChunkResult]) -> str:
    lines = []
    for chunk in chunks:
        lines.append(f"[chunk_id: {chunk.chunk_id}] {chunk_heading(chunk)}\n{chunk.content}")
    return "\n\n---\n\n".join(lines)
