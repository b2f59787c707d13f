"""Shared test fixtures and fakes for the embedding/generation collaborators."""

from __future__ import annotations

import hashlib
import json
import re

import numpy as np
import pytest

from manual_rag.config.settings import Settings
from manual_rag.exceptions import EmbeddingError, GenerationError
from manual_rag.generation.structured import parse_structured
from manual_rag.models.schemas import HybridChunkResult
from manual_rag.services import build_services

FAKE_DIMENSIONS = 64

_WORD = re.compile(r"\w+")


class FakeEmbedder:
    """Deterministic bag-of-words embedder: each word hashes to one dimension."""

    def __init__(self, dimensions: int = FAKE_DIMENSIONS) -> None:
        self._dimensions = dimensions
        self.calls: list[str] = []
        self.fail_on: str | None = None

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail_on is not None and self.fail_on in text:
            raise EmbeddingError(f"embedding service rejected text containing {self.fail_on!r}")
        vector = np.zeros(self._dimensions, dtype=np.float32)
        for word in _WORD.findall(text.lower()):
            digest = hashlib.md5(word.encode("utf-8")).digest()
            vector[digest[0] % self._dimensions] += 1.0
        if not vector.any():
            vector[0] = 1.0
        return vector.tolist()

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed(t) for t in texts]


class FakeLLM:
    """Scripted LLM. ``responses`` maps a schema name to raw text or an exception."""

    def __init__(self) -> None:
        self.responses: dict[str, str | Exception] = {}
        self.prompts: list[str] = []

    async def generate(self, prompt, system=None, temperature=None, max_tokens=None) -> str:
        self.prompts.append(prompt)
        return ""

    async def generate_structured(self, prompt, response_schema, system=None):
        self.prompts.append(prompt)
        response = self.responses.get(response_schema.__name__)
        if response is None:
            raise GenerationError(f"no scripted response for {response_schema.__name__}")
        if isinstance(response, Exception):
            raise response
        return parse_structured(response, response_schema)


def answer_json(
    answer: str = "Press the wireless button for three seconds.",
    doc_ids: list[str] | None = None,
    confidence: float = 0.8,
) -> str:
    return json.dumps(
        {
            "reasoning": {
                "question_analysis": "setup question",
                "relevant_documents": doc_ids or [],
                "synthesis_approach": "direct lookup",
            },
            "answer": answer,
            "sources": [
                {"document_id": d, "title": "", "relevance": "describes the steps"}
                for d in (doc_ids or [])
            ],
            "confidence": confidence,
            "limitations": None,
            "follow_up_questions": ["How do I install toner?"],
        }
    )


def make_result(chunk_id: int, content: str = "", document_id: str = "doc1", **kwargs) -> HybridChunkResult:
    defaults = {
        "document_title": "Guide",
        "section_title": None,
        "chunk_index": 0,
        "vector_score": 0.0,
        "keyword_score": 0.0,
        "combined_score": 0.0,
    }
    defaults.update(kwargs)
    return HybridChunkResult(
        chunk_id=chunk_id,
        document_id=document_id,
        content=content or f"Content of chunk {chunk_id} with enough words to matter.",
        **defaults,
    )


PRINTER_GUIDE = """# Connecting to Wi-Fi
Press the wireless button on the control panel for three seconds. Select your network and enter the password.

# Installing Toner
Open the front cover and slide the toner cartridge in until it clicks. Close the cover and wait for calibration.
"""

EXPENSE_POLICY = """1. Booking
Flights must be booked through the travel portal at least fourteen days in advance.

2. Reimbursement
Submit receipts within thirty days of returning. Meals are reimbursed up to the daily allowance.
"""


@pytest.fixture
def settings(tmp_path):
    """Test settings with temp paths and no throttling."""
    return Settings(
        _env_file=None,
        openai_api_key="test-key",
        google_api_key="test-key",
        embedding_dimensions=FAKE_DIMENSIONS,
        embedding_requests_per_second=0,
        reindex_documents_per_second=0,
        sqlite_doc_db_path=str(tmp_path / "documents.db"),
        sqlite_cache_db_path=str(tmp_path / "cache.db"),
        sqlite_metrics_db_path=str(tmp_path / "metrics.db"),
    )


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
async def services(settings, embedder, llm):
    return await build_services(settings, embedder=embedder, llm=llm)


@pytest.fixture
async def indexed_services(services):
    await services.indexer.index_document("printer", "Printer Guide", PRINTER_GUIDE)
    await services.indexer.index_document("expenses", "Expense Policy", EXPENSE_POLICY)
    return services
