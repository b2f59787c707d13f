"""Integration tests for document indexing against real SQLite/FAISS/BM25 stores."""

import pytest

from conftest import EXPENSE_POLICY, PRINTER_GUIDE
from manual_rag.exceptions import EmbeddingError, NotFoundError
from manual_rag.ingestion.indexer import compute_content_hash
from manual_rag.services import build_services


def test_content_hash_covers_title_and_content():
    assert compute_content_hash("A", "body") == compute_content_hash("A", "body")
    assert compute_content_hash("A", "body") != compute_content_hash("B", "body")
    assert compute_content_hash("A", "body") != compute_content_hash("A", "body!")
    assert len(compute_content_hash("A", "body")) == 64


@pytest.mark.asyncio
async def test_index_document(services):
    result = await services.indexer.index_document("printer", "Printer Guide", PRINTER_GUIDE)
    assert result.status == "indexed"
    assert result.chunks_created == 2
    assert result.chunks_skipped == 0
    assert result.stats.total_tokens > 0

    chunks = await services.doc_store.get_chunks_by_doc("printer")
    assert [c.section_title for c in chunks] == ["Connecting to Wi-Fi", "Installing Toner"]
    assert services.vector_store.size == 2
    assert services.bm25_index.size == 2


@pytest.mark.asyncio
async def test_unchanged_document_skipped(services, embedder):
    await services.indexer.index_document("printer", "Printer Guide", PRINTER_GUIDE)
    before = await services.doc_store.get_chunks_by_doc("printer")
    calls = len(embedder.calls)

    result = await services.indexer.index_document("printer", "Printer Guide", PRINTER_GUIDE)
    assert result.status == "unchanged"
    assert result.chunks_created == 0
    assert result.chunks_skipped == 2
    assert len(embedder.calls) == calls
    after = await services.doc_store.get_chunks_by_doc("printer")
    assert [c.chunk_id for c in after] == [c.chunk_id for c in before]


@pytest.mark.asyncio
async def test_force_and_title_change_reindex(services):
    await services.indexer.index_document("printer", "Printer Guide", PRINTER_GUIDE)
    original = {c.chunk_id for c in await services.doc_store.get_chunks_by_doc("printer")}

    forced = await services.indexer.index_document(
        "printer", "Printer Guide", PRINTER_GUIDE, force=True
    )
    assert forced.status == "indexed"
    renamed = await services.indexer.index_document("printer", "Printer Manual", PRINTER_GUIDE)
    assert renamed.status == "indexed"

    current = {c.chunk_id for c in await services.doc_store.get_chunks_by_doc("printer")}
    assert len(current) == 2
    assert not current & original
    assert services.vector_store.size == 2
    assert (await services.doc_store.get_document("printer")).title == "Printer Manual"


@pytest.mark.asyncio
async def test_embedding_failure_keeps_previous_chunks(services, embedder):
    await services.indexer.index_document("printer", "Printer Guide", PRINTER_GUIDE)
    before = await services.doc_store.get_chunks_by_doc("printer")
    old_hash = await services.doc_store.get_content_hash("printer")

    embedder.fail_on = "duplex"
    with pytest.raises(EmbeddingError):
        await services.indexer.index_document(
            "printer", "Printer Guide", PRINTER_GUIDE + "\n# Duplex Printing\nEnable duplex in the driver."
        )

    after = await services.doc_store.get_chunks_by_doc("printer")
    assert [c.chunk_id for c in after] == [c.chunk_id for c in before]
    assert await services.doc_store.get_content_hash("printer") == old_hash
    assert services.vector_store.size == 2


@pytest.mark.asyncio
async def test_blank_document_indexed_as_empty(services):
    result = await services.indexer.index_document("blank", "Blank", "   \n\n  ")
    assert result.status == "empty"
    assert result.chunks_created == 0
    stats = await services.indexer.index_stats()
    assert stats.total_documents == 1
    assert stats.documents_without_chunks == 1


@pytest.mark.asyncio
async def test_indexing_invalidates_cache(indexed_services):
    await indexed_services.cache.set("how do i install toner", {"answer": "old"})
    await indexed_services.indexer.index_document(
        "printer", "Printer Guide", PRINTER_GUIDE + "\nCall support if the light blinks red."
    )
    assert await indexed_services.cache.get("how do i install toner") is None


@pytest.mark.asyncio
async def test_delete_document(indexed_services):
    with pytest.raises(NotFoundError):
        await indexed_services.indexer.delete_document("missing")

    removed = await indexed_services.indexer.delete_document("printer")
    assert removed == 2
    assert await indexed_services.doc_store.get_document("printer") is None
    assert indexed_services.vector_store.size == 2
    assert indexed_services.bm25_index.size == 2
    results = await indexed_services.search_engine.search("toner cartridge", limit=10)
    assert all(r.document_id == "expenses" for r in results)


@pytest.mark.asyncio
async def test_reindex_all_continues_after_failure(indexed_services, embedder):
    embedder.fail_on = "fourteen"
    report = await indexed_services.indexer.reindex_all()
    assert report.total == 2
    assert report.success_count == 1
    assert report.error_count == 1
    assert set(report.errors) == {"expenses"}
    assert report.chunks_created == 2
    assert await indexed_services.doc_store.count_chunks("expenses") == 2


@pytest.mark.asyncio
async def test_reindex_all_without_force_skips_unchanged(indexed_services):
    report = await indexed_services.indexer.reindex_all(force=False)
    assert report.success_count == 2
    assert report.chunks_created == 0


@pytest.mark.asyncio
async def test_indexes_rebuilt_on_startup(indexed_services, settings, embedder, llm):
    restarted = await build_services(settings, embedder=embedder, llm=llm)
    assert restarted.vector_store.size == 4
    assert restarted.bm25_index.size == 4
    results = await restarted.search_engine.search("reimbursed receipts", limit=3)
    assert results[0].document_id == "expenses"


@pytest.mark.asyncio
async def test_index_stats(indexed_services):
    stats = await indexed_services.indexer.index_stats()
    assert stats.total_documents == 2
    assert stats.total_chunks == 4
    assert stats.avg_chunks_per_document == 2.0
    assert stats.documents_with_chunks == 2
    assert stats.documents_without_chunks == 0
    assert stats.vector_index_size == 4
    assert stats.keyword_index_size == 4
