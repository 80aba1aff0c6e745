"""Vector Store — persists chunk embeddings and answers project-scoped
nearest-neighbour queries.

On PostgreSQL ranking is done by pgvector (`<=>` cosine distance). On other
backends (SQLite for local runs and tests) the project's chunks are loaded and
ranked with numpy using the same cosine distance.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

import numpy as np
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.document import Document, DocumentChunk

logger = logging.getLogger("chat.vector_store")


@dataclass
class RetrievedChunk:
    content: str
    document_name: str


def cosine_distances(query: list[float], matrix: np.ndarray) -> np.ndarray:
    """1 - cosine similarity for each row. Zero-norm rows are at distance 1."""
    q = np.asarray(query, dtype=np.float64)
    q_norm = np.linalg.norm(q)
    row_norms = np.linalg.norm(matrix, axis=1)
    denom = row_norms * q_norm
    sims = np.zeros(len(matrix), dtype=np.float64)
    nonzero = denom > 0
    sims[nonzero] = (matrix[nonzero] @ q) / denom[nonzero]
    return 1.0 - sims


class VectorStore:
    """Chunk persistence and similarity search on one session.

    Writes are added to the session; the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def upsert_chunk(
        self,
        document_id: uuid.UUID,
        text: str,
        vector: list[float],
        chunk_index: int = 0,
    ) -> DocumentChunk:
        chunk = DocumentChunk(
            document_id=document_id,
            chunk_index=chunk_index,
            content=text,
            embedding=[float(x) for x in vector],
        )
        self.session.add(chunk)
        return chunk

    async def delete_chunks_for_document(self, document_id: uuid.UUID) -> int:
        result = await self.session.execute(
            delete(DocumentChunk).where(DocumentChunk.document_id == document_id)
        )
        return result.rowcount or 0

    async def search(
        self,
        project_id: uuid.UUID,
        query_vector: list[float],
        k: int = 5,
    ) -> list[RetrievedChunk]:
        """Top-k chunks of the project by ascending cosine distance.

        Ties keep insertion order. Returns [] when the project has no chunks.
        """
        if k <= 0:
            return []

        if self.session.get_bind().dialect.name == "postgresql":
            stmt = (
                select(DocumentChunk.content, Document.name)
                .join(Document, DocumentChunk.document_id == Document.id)
                .where(Document.project_id == project_id)
                .order_by(DocumentChunk.embedding.cosine_distance(query_vector), DocumentChunk.id)
                .limit(k)
            )
            rows = (await self.session.execute(stmt)).all()
            return [RetrievedChunk(content=c, document_name=n) for c, n in rows]

        stmt = (
            select(DocumentChunk.content, Document.name, DocumentChunk.embedding)
            .join(Document, DocumentChunk.document_id == Document.id)
            .where(Document.project_id == project_id)
            .order_by(DocumentChunk.id)
        )
        rows = (await self.session.execute(stmt)).all()
        if not rows:
            return []

        matrix = np.asarray([r[2] for r in rows], dtype=np.float64)
        distances = cosine_distances(query_vector, matrix)
        order = np.argsort(distances, kind="stable")[:k]
        return [RetrievedChunk(content=rows[i][0], document_name=rows[i][1]) for i in order]
