"""HTTP API tests over ASGI with scripted collaborators."""

import httpx
import pytest

from conftest import answer_json
from manual_rag.api.app import create_app


@pytest.fixture
async def client(indexed_services):
    app = create_app(services=indexed_services)
    # ASGITransport does not run the lifespan; attach services directly
    app.state.services = indexed_services
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["doc_count"] == 2
    assert body["chunk_count"] == 4
    assert body["vector_index_size"] == 4


@pytest.mark.asyncio
async def test_request_id_header(client):
    response = await client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"
    assert float(response.headers["X-Duration-MS"]) >= 0
    generated = await client.get("/health")
    assert generated.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_simple_search_one_hit_per_document(client):
    response = await client.get("/search", params={"q": "toner cartridge", "limit": 10})
    assert response.status_code == 200
    results = response.json()["results"]
    assert results[0]["document_id"] == "printer"
    assert results[0]["title"] == "Printer Guide"
    assert len({r["document_id"] for r in results}) == len(results)

    metadata = response.json()["metadata"]
    assert metadata["top_document"] == "printer"
    assert metadata["unique_documents"] == 2
    assert metadata["total_results"] >= len(results)
    assert metadata["avg_combined_score"] > 0


@pytest.mark.asyncio
async def test_simple_search_requires_query(client):
    response = await client.get("/search", params={"q": ""})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_search_and_feedback(client, llm, indexed_services):
    llm.responses["AnswerPayload"] = answer_json("Slide it in.", ["printer"])
    response = await client.post(
        "/search", json={"query": "How do I install toner?", "mode": "premium", "enable_rerank": False}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["answer"] == "Slide it in."
    assert body["preset"] == "premium"
    assert body["sources"][0]["document_id"] == "printer"

    await indexed_services.pipeline.drain()
    feedback = await client.put(
        "/search/feedback", json={"query_id": body["query_id"], "feedback": "helpful"}
    )
    assert feedback.status_code == 200
    assert feedback.json() == {"status": "ok", "query_id": body["query_id"], "feedback": "helpful"}


@pytest.mark.asyncio
async def test_search_validation(client):
    assert (await client.post("/search", json={"query": "x", "mode": "turbo"})).status_code == 422
    assert (await client.post("/search", json={"query": ""})).status_code == 422


@pytest.mark.asyncio
async def test_feedback_errors(client):
    missing = await client.put("/search/feedback", json={"query_id": "nope", "feedback": "helpful"})
    assert missing.status_code == 404
    invalid = await client.put("/search/feedback", json={"query_id": "nope", "feedback": "meh"})
    assert invalid.status_code == 422


@pytest.mark.asyncio
async def test_index_and_delete_document(client):
    body = {"title": "Router Setup", "content": "# Reset\nHold the reset button for ten seconds until the lights flash."}
    created = await client.put("/documents/router", json=body)
    assert created.status_code == 200
    assert created.json()["status"] == "indexed"
    assert created.json()["chunks_created"] == 1

    again = await client.put("/documents/router", json=body)
    assert again.json()["status"] == "unchanged"

    stats = (await client.get("/documents/stats")).json()
    assert stats["total_documents"] == 3
    assert stats["total_chunks"] == 5

    deleted = await client.delete("/documents/router")
    assert deleted.json() == {"document_id": "router", "chunks_removed": 1}
    assert (await client.delete("/documents/router")).status_code == 404


@pytest.mark.asyncio
async def test_document_chunks(client):
    response = await client.get("/documents/printer/chunks")
    assert response.status_code == 200
    body = response.json()
    assert body["document_id"] == "printer"
    assert body["title"] == "Printer Guide"
    assert [c["chunk_index"] for c in body["chunks"]] == [0, 1]
    assert [c["section_title"] for c in body["chunks"]] == ["Connecting to Wi-Fi", "Installing Toner"]
    assert "toner cartridge" in body["chunks"][1]["content"]
    assert body["chunks"][0]["start_offset"] < body["chunks"][1]["start_offset"]

    missing = await client.get("/documents/nope/chunks")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_index_embedding_failure_is_bad_gateway(client, embedder):
    embedder.fail_on = "modem"
    response = await client.put(
        "/documents/modem", json={"title": "Modem", "content": "Restart the modem before calling support."}
    )
    assert response.status_code == 502


@pytest.mark.asyncio
async def test_reindex(client):
    response = await client.post("/documents/reindex")
    assert response.status_code == 200
    assert response.json()["success_count"] == 2
    assert response.json()["error_count"] == 0


@pytest.mark.asyncio
async def test_admin_endpoints(client, indexed_services):
    await indexed_services.cache.set("reset printer", {"answer": "a"})
    await indexed_services.cache.get("reset printer")

    stats = (await client.get("/stats/cache")).json()
    assert stats["entries"] == 1
    top = (await client.get("/stats/cache/top", params={"limit": 5})).json()
    assert top[0]["query"] == "reset printer"
    assert top[0]["hit_count"] == 1

    assert (await client.delete("/cache")).json() == {"removed": 1}

    summary = await client.get("/stats/metrics", params={"days": 7})
    assert summary.status_code == 200
    assert summary.json()["total_searches"] == 0

    cleanup = await client.post("/maintenance/cleanup")
    assert cleanup.json() == {"expired_cache_entries": 0, "old_metrics": 0}
