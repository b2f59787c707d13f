"""SQLite-backed document and chunk store."""

from __future__ import annotations

import aiosqlite
import numpy as np

from manual_rag.models.domain import Chunk, Document
from manual_rag.storage.migrations import initialize_doc_db, open_db
from manual_rag.storage.timestamps import to_db, utc_now

_CHUNK_COLUMNS = (
    "chunk_id, doc_id, chunk_index, content, section_title, token_count, start_offset, end_offset"
)


def _encode_embedding(embedding: list[float] | None) -> bytes | None:
    if embedding is None:
        return None
    return np.asarray(embedding, dtype=np.float32).tobytes()


def _decode_embedding(blob: bytes | None) -> list[float] | None:
    if blob is None:
        return None
    return np.frombuffer(blob, dtype=np.float32).tolist()


class SQLiteDocStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_doc_db(self._db_path)

    # --- documents ---

    async def get_document(self, doc_id: str) -> Document | None:
        async with open_db(self._db_path) as db:
            async with db.execute("SELECT * FROM documents WHERE doc_id = ?", (doc_id,)) as cursor:
                row = await cursor.fetchone()
                return self._row_to_document(row) if row else None

    async def list_documents(self) -> list[Document]:
        async with open_db(self._db_path) as db:
            async with db.execute("SELECT * FROM documents ORDER BY doc_id") as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_document(row) for row in rows]

    async def get_content_hash(self, doc_id: str) -> str | None:
        async with open_db(self._db_path) as db:
            async with db.execute(
                "SELECT content_hash FROM documents WHERE doc_id = ?", (doc_id,)
            ) as cursor:
                row = await cursor.fetchone()
                return row["content_hash"] if row else None

    async def get_document_titles(self, doc_ids: list[str]) -> dict[str, str]:
        if not doc_ids:
            return {}
        placeholders = ",".join("?" for _ in doc_ids)
        async with open_db(self._db_path) as db:
            async with db.execute(
                f"SELECT doc_id, title FROM documents WHERE doc_id IN ({placeholders})",
                doc_ids,
            ) as cursor:
                rows = await cursor.fetchall()
                return {row["doc_id"]: row["title"] for row in rows}

    async def delete_document(self, doc_id: str) -> int:
        """Delete a document and its chunks. Returns the number of chunks removed."""
        async with open_db(self._db_path) as db:
            cursor = await db.execute("DELETE FROM chunks WHERE doc_id = ?", (doc_id,))
            removed = cursor.rowcount
            await db.execute("DELETE FROM documents WHERE doc_id = ?", (doc_id,))
            await db.commit()
            return removed

    # --- chunks ---

    async def replace_chunks(
        self, document: Document, chunks: list[Chunk], content_hash: str
    ) -> list[Chunk]:
        """Swap the document's chunk set and record its hash in one transaction.

        Returns the chunks with their store-assigned ``chunk_id``.
        """
        now = to_db(utc_now())
        async with open_db(self._db_path) as db:
            try:
                await db.execute(
                    "INSERT INTO documents (doc_id, title, content, summary, content_hash, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?) "
                    "ON CONFLICT(doc_id) DO UPDATE SET title = excluded.title, "
                    "content = excluded.content, summary = excluded.summary, "
                    "content_hash = excluded.content_hash, updated_at = excluded.updated_at",
                    (
                        document.doc_id,
                        document.title,
                        document.content,
                        document.summary,
                        content_hash,
                        now,
                    ),
                )
                await db.execute("DELETE FROM chunks WHERE doc_id = ?", (document.doc_id,))
                for chunk in chunks:
                    cursor = await db.execute(
                        "INSERT INTO chunks (doc_id, chunk_index, content, section_title, token_count, "
                        "start_offset, end_offset, embedding) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                        (
                            document.doc_id,
                            chunk.chunk_index,
                            chunk.content,
                            chunk.section_title,
                            chunk.token_count,
                            chunk.start_offset,
                            chunk.end_offset,
                            _encode_embedding(chunk.embedding),
                        ),
                    )
                    chunk.chunk_id = cursor.lastrowid
                    chunk.doc_id = document.doc_id
                await db.commit()
            except aiosqlite.Error:
                await db.rollback()
                raise
        document.content_hash = content_hash
        return chunks

    async def get_chunks_by_ids(self, chunk_ids: list[int]) -> dict[int, Chunk]:
        if not chunk_ids:
            return {}
        placeholders = ",".join("?" for _ in chunk_ids)
        async with open_db(self._db_path) as db:
            async with db.execute(
                f"SELECT {_CHUNK_COLUMNS} FROM chunks WHERE chunk_id IN ({placeholders})",
                chunk_ids,
            ) as cursor:
                rows = await cursor.fetchall()
                return {row["chunk_id"]: self._row_to_chunk(row) for row in rows}

    async def get_chunks_by_doc(self, doc_id: str) -> list[Chunk]:
        async with open_db(self._db_path) as db:
            async with db.execute(
                f"SELECT {_CHUNK_COLUMNS} FROM chunks WHERE doc_id = ? ORDER BY chunk_index",
                (doc_id,),
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_chunk(row) for row in rows]

    async def get_all_chunks(self, with_embeddings: bool = False) -> list[Chunk]:
        columns = f"{_CHUNK_COLUMNS}, embedding" if with_embeddings else _CHUNK_COLUMNS
        async with open_db(self._db_path) as db:
            async with db.execute(f"SELECT {columns} FROM chunks ORDER BY chunk_id") as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_chunk(row, with_embeddings) for row in rows]

    async def count_documents(self) -> int:
        async with open_db(self._db_path) as db:
            async with db.execute("SELECT COUNT(*) FROM documents") as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def count_chunks(self, doc_id: str | None = None) -> int:
        async with open_db(self._db_path) as db:
            if doc_id is None:
                query, params = "SELECT COUNT(*) FROM chunks", ()
            else:
                query, params = "SELECT COUNT(*) FROM chunks WHERE doc_id = ?", (doc_id,)
            async with db.execute(query, params) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def chunk_counts_by_document(self) -> dict[str, int]:
        """Chunk count per stored document, including documents with zero chunks."""
        async with open_db(self._db_path) as db:
            async with db.execute(
                "SELECT d.doc_id, COUNT(c.chunk_id) AS n FROM documents d "
                "LEFT JOIN chunks c ON c.doc_id = d.doc_id GROUP BY d.doc_id"
            ) as cursor:
                rows = await cursor.fetchall()
                return {row["doc_id"]: row["n"] for row in rows}

    @staticmethod
    def _row_to_document(row: aiosqlite.Row) -> Document:
        return Document(
            doc_id=row["doc_id"],
            title=row["title"],
            content=row["content"],
            summary=row["summary"],
            content_hash=row["content_hash"],
        )

    @staticmethod
    def _row_to_chunk(row: aiosqlite.Row, with_embedding: bool = False) -> Chunk:
        return Chunk(
            chunk_id=row["chunk_id"],
            doc_id=row["doc_id"],
            chunk_index=row["chunk_index"],
            content=row["content"],
            section_title=row["section_title"],
            token_count=row["token_count"],
            start_offset=row["start_offset"],
            end_offset=row["end_offset"],
            embedding=_decode_embedding(row["embedding"]) if with_embedding else None,
        )
