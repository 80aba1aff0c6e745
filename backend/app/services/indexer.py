"""Indexer — turns document text into stored, embedded chunks.

All embedding happens before anything is written, so an embedding failure
leaves the library untouched. The document row and its full chunk set are
then written in one transaction.
"""
from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from models.document import Document
from services.chunker import chunk_text
from services.embedder import Embedder
from services.vector_store import VectorStore

logger = logging.getLogger("chat.indexer")


class NothingToIndex(ValueError):
    """The text produced no chunks."""


async def embed_chunks(
    embedder: Embedder,
    chunks: list[str],
    batch_size: int = 5,
) -> list[list[float]]:
    """Embed chunks in batches of `batch_size`, preserving order."""
    vectors: list[list[float]] = []
    for i in range(0, len(chunks), batch_size):
        vectors.extend(await embedder.embed_batch(chunks[i:i + batch_size]))
    return vectors


async def _write_chunks(
    store: VectorStore,
    document_id: uuid.UUID,
    chunks: list[str],
    vectors: list[list[float]],
) -> None:
    for index, (text, vector) in enumerate(zip(chunks, vectors)):
        await store.upsert_chunk(document_id, text, vector, chunk_index=index)


async def index_document(
    session: AsyncSession,
    embedder: Embedder,
    project_id: uuid.UUID,
    name: str,
    file_name: str,
    text: str,
    batch_size: int = 5,
) -> tuple[Document, int]:
    """Chunk, embed and store a new document. Returns (document, chunk_count)."""
    chunks = chunk_text(text)
    if not chunks:
        raise NothingToIndex("No chunks produced from document text")

    vectors = await embed_chunks(embedder, chunks, batch_size)

    document = Document(project_id=project_id, name=name, file_name=file_name, content=text)
    session.add(document)
    await session.flush()
    await _write_chunks(VectorStore(session), document.id, chunks, vectors)
    await session.commit()
    await session.refresh(document)

    logger.info("Indexed %s: %d chunks (project %s)", name, len(chunks), project_id)
    return document, len(chunks)


async def reindex_document(
    session: AsyncSession,
    embedder: Embedder,
    document: Document,
    content: str,
    batch_size: int = 5,
) -> int:
    """Replace a document's content and its whole chunk set. Returns chunk_count."""
    chunks = chunk_text(content)
    vectors = await embed_chunks(embedder, chunks, batch_size) if chunks else []

    store = VectorStore(session)
    document.content = content
    removed = await store.delete_chunks_for_document(document.id)
    await _write_chunks(store, document.id, chunks, vectors)
    await session.commit()

    logger.info(
        "Re-indexed %s: %d chunks replaced by %d", document.name, removed, len(chunks),
    )
    return len(chunks)


def display_name(name: Optional[str], file_name: str) -> str:
    """Explicit name if given, else the uploaded file name."""
    return (name or "").strip() or file_name
