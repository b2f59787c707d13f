"""Tests for the keyword/length heuristic reranker."""

import pytest

from conftest import make_result
from manual_rag.retrieval.reranker_heuristic import HeuristicReranker, score_chunk


def test_title_match_bonus():
    chunk = make_result(1, content="x" * 500, document_title="Toner Guide")
    assert score_chunk(["toner"], chunk) == pytest.approx(0.3)


def test_body_match_capped_per_term():
    chunk = make_result(1, content=("toner " * 10).ljust(500, "x"), document_title="Guide")
    assert score_chunk(["toner"], chunk) == pytest.approx(0.5)


def test_length_penalty():
    ideal = make_result(1, content="toner".ljust(500, "x"))
    short = make_result(2, content="toner".ljust(250, "x"))
    assert score_chunk(["toner"], ideal) == pytest.approx(0.1)
    # |250 - 500| / 500 * 0.2 = 0.1 penalty
    assert score_chunk(["toner"], short) == pytest.approx(0.09)


def test_length_penalty_capped():
    huge = make_result(1, content="toner".ljust(5000, "x"))
    assert score_chunk(["toner"], huge) == pytest.approx(0.07)


def test_score_capped_at_one():
    chunk = make_result(
        1,
        content=("printer toner cartridge " * 10).ljust(500, "x"),
        document_title="Printer Toner Cartridge",
    )
    assert score_chunk(["printer", "toner", "cartridge"], chunk) == 1.0


@pytest.mark.asyncio
async def test_rerank_orders_and_truncates():
    chunks = [
        make_result(1, content="Nothing relevant in this passage at all."),
        make_result(2, content="Install the toner cartridge by opening the cover."),
        make_result(3, content="Toner toner toner: replace the toner when faded."),
    ]
    results = await HeuristicReranker().rerank("Toner cartridge", chunks, top_k=2)
    assert [r.chunk_id for r in results] == [3, 2]
    assert all(0.0 <= r.relevance_score <= 1.0 for r in results)


@pytest.mark.asyncio
async def test_equal_scores_keep_search_order():
    chunks = [make_result(i, content="unrelated text for ordering") for i in (5, 2, 9)]
    results = await HeuristicReranker().rerank("toner", chunks, top_k=3)
    assert [r.chunk_id for r in results] == [5, 2, 9]


@pytest.mark.asyncio
async def test_empty_candidates():
    assert await HeuristicReranker().rerank("toner", [], top_k=5) == []
