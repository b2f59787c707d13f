"""Re-chunk and re-embed every stored document, one at a time."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from manual_rag.config.settings import Settings
from manual_rag.observability.logger import setup_logging
from manual_rag.services import build_services


async def main(force: bool, doc_ids: list[str]) -> int:
    settings = Settings()
    setup_logging(settings.log_level, json_logs=settings.log_json)
    services = await build_services(settings)

    documents = await services.doc_store.list_documents()
    if doc_ids:
        wanted = set(doc_ids)
        documents = [d for d in documents if d.doc_id in wanted]
    print(f"Reindexing {len(documents)} documents (force={force})")

    report = await services.indexer.reindex_all(documents, force=force)
    print(
        f"Done: {report.success_count}/{report.total} succeeded, "
        f"{report.chunks_created} chunks created"
    )
    for doc_id, error in report.errors.items():
        print(f"  FAILED {doc_id}: {error}")
    return 1 if report.error_count else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--no-force",
        action="store_true",
        help="skip documents whose content hash is unchanged",
    )
    parser.add_argument("--doc-id", action="append", default=[], help="limit to these documents")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(force=not args.no_force, doc_ids=args.doc_id)))
