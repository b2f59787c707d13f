"""End-to-end tests for the query pipeline with scripted collaborators."""

import json

import pytest

from conftest import answer_json
from manual_rag.exceptions import GenerationError, NotFoundError
from manual_rag.generation.answer_generator import AnswerGenerator
from manual_rag.pipeline.presets import PipelineConfig
from manual_rag.pipeline.query_pipeline import EMPTY_ANSWER, FALLBACK_ANSWER, QueryPipeline

QUESTION = "How do I install the toner cartridge?"


async def _script_rerank(services, llm, query=QUESTION):
    candidates = await services.search_engine.search(query, limit=15)
    toner = next(c for c in candidates if c.section_title == "Installing Toner")
    llm.responses["RerankResponse"] = json.dumps(
        {"rankings": [{"chunk_id": toner.chunk_id, "relevance_score": 0.95, "reasoning": "steps"}]}
    )
    return candidates, toner


@pytest.mark.asyncio
async def test_full_pipeline(indexed_services, llm):
    candidates, toner = await _script_rerank(indexed_services, llm)
    llm.responses["AnswerPayload"] = answer_json(
        "Open the front cover and slide the cartridge in.", ["printer"], 0.9
    )

    result = await indexed_services.pipeline.run_query(QUESTION)

    assert result.answer == "Open the front cover and slide the cartridge in."
    assert result.confidence == 0.9
    assert result.preset == "standard"
    assert [r.chunk_id for r in result.reranked_chunks] == [toner.chunk_id]
    assert len(result.chunks) == len(candidates)
    assert result.metrics.chunks_retrieved == len(candidates)
    assert result.metrics.chunks_after_rerank == 1
    assert not result.metrics.cache_hit
    assert result.metrics.total_time >= result.metrics.generation_time

    source = result.sources[0]
    assert source.document_id == "printer"
    assert source.title == "Printer Guide"
    assert source.excerpt

    # only the reranked chunk reaches the answer prompt
    answer_prompt = llm.prompts[-1]
    assert "slide the toner cartridge" in answer_prompt
    assert "fourteen days" not in answer_prompt

    await indexed_services.pipeline.drain()
    metric = await indexed_services.metrics.get(result.query_id)
    assert metric is not None
    assert metric.chunks_after_rerank == 1


@pytest.mark.asyncio
async def test_second_query_served_from_cache(indexed_services, llm):
    await _script_rerank(indexed_services, llm)
    llm.responses["AnswerPayload"] = answer_json("Slide it in.", ["printer"])
    first = await indexed_services.pipeline.run_query(QUESTION)
    await indexed_services.pipeline.drain()
    prompts = len(llm.prompts)

    second = await indexed_services.pipeline.run_query("  how do i install the TONER cartridge?")

    assert second.metrics.cache_hit
    assert second.answer == first.answer
    assert second.query_id != first.query_id
    assert second.metrics.vector_search_time == 0.0
    assert second.metrics.chunks_retrieved == first.metrics.chunks_retrieved
    assert len(llm.prompts) == prompts


@pytest.mark.asyncio
async def test_filtered_query_bypasses_cache(indexed_services, llm):
    llm.responses["AnswerPayload"] = answer_json("Slide it in.", ["printer"])
    config = PipelineConfig.from_preset("quick", document_ids=["printer"])
    await indexed_services.pipeline.run_query(QUESTION, config)
    await indexed_services.pipeline.drain()
    assert (await indexed_services.cache.stats()).entries == 0


@pytest.mark.asyncio
async def test_no_documents_found(services, llm):
    result = await services.pipeline.run_query(QUESTION)
    assert result.answer == EMPTY_ANSWER
    assert result.confidence == 0.0
    assert result.sources == []
    assert result.metrics.chunks_retrieved == 0
    assert llm.prompts == []


@pytest.mark.asyncio
async def test_generation_failure_returns_fallback(indexed_services, llm):
    llm.responses["AnswerPayload"] = GenerationError("model overloaded")
    result = await indexed_services.pipeline.run_query(QUESTION, PipelineConfig.from_preset("quick"))

    assert result.answer == FALLBACK_ANSWER
    assert result.confidence == 0.0
    assert result.metrics.chunks_retrieved > 0
    await indexed_services.pipeline.drain()
    assert (await indexed_services.cache.stats()).entries == 0


@pytest.mark.asyncio
async def test_malformed_answer_returns_fallback(indexed_services, llm):
    llm.responses["AnswerPayload"] = "Sure! The answer is to open the cover."
    result = await indexed_services.pipeline.run_query(QUESTION, PipelineConfig.from_preset("quick"))
    assert result.answer == FALLBACK_ANSWER


@pytest.mark.asyncio
async def test_rerank_failure_falls_back_to_search_order(indexed_services, llm):
    llm.responses["AnswerPayload"] = answer_json("Slide it in.", ["printer"])
    candidates = await indexed_services.search_engine.search(QUESTION, limit=15)

    result = await indexed_services.pipeline.run_query(QUESTION)

    assert result.answer == "Slide it in."
    assert [r.chunk_id for r in result.reranked_chunks] == [c.chunk_id for c in candidates[:5]]
    assert result.reranked_chunks[0].relevance_score == 1.0


@pytest.mark.asyncio
async def test_quick_preset_skips_rerank_and_metrics(indexed_services, llm):
    llm.responses["AnswerPayload"] = answer_json("Slide it in.", ["printer"])
    result = await indexed_services.pipeline.run_query(QUESTION, PipelineConfig.from_preset("quick"))
    await indexed_services.pipeline.drain()

    assert result.preset == "quick"
    assert result.reranked_chunks is None
    assert result.metrics.rerank_time == 0.0
    assert result.metrics.chunks_after_rerank == result.metrics.chunks_retrieved
    assert await indexed_services.metrics.get(result.query_id) is None
    assert len(llm.prompts) == 1


@pytest.mark.asyncio
async def test_heuristic_rerank_strategy(indexed_services, llm):
    llm.responses["AnswerPayload"] = answer_json("Slide it in.", ["printer"])
    config = PipelineConfig.from_preset(
        "standard", rerank_strategy="heuristic", rerank_top_k=2, enable_cache=False
    )
    result = await indexed_services.pipeline.run_query("toner cartridge", config)

    assert len(result.reranked_chunks) == 2
    assert result.chunks[0].chunk_id in {r.chunk_id for r in result.reranked_chunks}
    # the only LLM call is answer generation
    assert len(llm.prompts) == 1


@pytest.mark.asyncio
async def test_feedback(indexed_services, llm):
    llm.responses["AnswerPayload"] = answer_json("Slide it in.", ["printer"])
    result = await indexed_services.pipeline.run_query(QUESTION)
    await indexed_services.pipeline.drain()

    await indexed_services.pipeline.submit_feedback(result.query_id, "helpful")
    assert (await indexed_services.metrics.get(result.query_id)).user_feedback == "helpful"

    with pytest.raises(NotFoundError):
        await indexed_services.pipeline.submit_feedback("no-such-query", "helpful")


def _pipeline(services, llm, **kwargs):
    kwargs.setdefault("answer_generator", AnswerGenerator(llm))
    return QueryPipeline(
        search_engine=services.search_engine,
        rerankers={},
        cache=services.cache,
        metrics=services.metrics,
        **kwargs,
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [{"answer": 123, "metrics": {}}, ["not", "a", "result"]],
)
async def test_unreadable_cache_entry_is_a_miss(indexed_services, llm, payload):
    await indexed_services.cache.set(QUESTION, payload)
    llm.responses["AnswerPayload"] = answer_json("Slide it in.", ["printer"])

    result = await indexed_services.pipeline.run_query(QUESTION, PipelineConfig.from_preset("quick"))

    assert result.answer == "Slide it in."
    assert not result.metrics.cache_hit
    await indexed_services.pipeline.drain()
    # the fresh result replaces the unusable entry
    assert (await indexed_services.cache.get(QUESTION))["answer"] == "Slide it in."


@pytest.mark.asyncio
async def test_unknown_default_preset_returns_fallback(indexed_services, llm):
    pipeline = _pipeline(indexed_services, llm, default_preset="turbo")
    result = await pipeline.run_query(QUESTION)
    assert result.answer == FALLBACK_ANSWER
    assert result.preset == "turbo"
    assert llm.prompts == []


@pytest.mark.asyncio
async def test_generation_context_is_capped_and_reported(indexed_services, llm):
    llm.responses["AnswerPayload"] = answer_json("Slide it in.", ["printer"])
    pipeline = _pipeline(
        indexed_services, llm, answer_generator=AnswerGenerator(llm, max_context_chunks=2)
    )
    result = await pipeline.run_query(QUESTION, PipelineConfig.from_preset("quick"))

    assert result.metrics.chunks_retrieved == 4
    assert result.metrics.chunks_after_rerank == 2
    assert llm.prompts[-1].count("(document_id: ") == 2
