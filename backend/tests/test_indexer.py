"""
Tests for services/indexer.py
Indexer - batched embedding and full chunk-set replacement.
"""
import pytest
from sqlalchemy import select

from conftest import FakeEmbedder
from models import DocumentChunk, Project, async_session
from services.chunker import chunk_text
from services.embedder import EmbeddingServiceError
from services.indexer import NothingToIndex, display_name, embed_chunks, index_document, reindex_document


LONG_TEXT = " ".join(f"word{i}" for i in range(600))


async def _project():
    async with async_session() as session:
        project = Project(name="Widget", slug="widget")
        session.add(project)
        await session.commit()
        return project.id


async def _chunk_rows(document_id):
    async with async_session() as session:
        stmt = (
            select(DocumentChunk)
            .where(DocumentChunk.document_id == document_id)
            .order_by(DocumentChunk.chunk_index)
        )
        return (await session.execute(stmt)).scalars().all()


class TestEmbedChunks:

    async def test_batches_of_five(self):
        embedder = FakeEmbedder()
        vectors = await embed_chunks(embedder, [f"c{i}" for i in range(12)], batch_size=5)

        assert [len(b) for b in embedder.batches] == [5, 5, 2]
        assert len(vectors) == 12


class TestIndexDocument:

    async def test_stores_document_and_chunks(self):
        project_id = await _project()
        async with async_session() as session:
            document, count = await index_document(
                session, FakeEmbedder(), project_id, "Manual", "manual.txt", LONG_TEXT,
            )

        expected = chunk_text(LONG_TEXT)
        assert count == len(expected) > 1
        rows = await _chunk_rows(document.id)
        assert [r.content for r in rows] == expected
        assert [r.chunk_index for r in rows] == list(range(len(expected)))
        assert document.content == LONG_TEXT

    async def test_blank_text_is_rejected(self):
        project_id = await _project()
        async with async_session() as session:
            with pytest.raises(NothingToIndex):
                await index_document(session, FakeEmbedder(), project_id, "Empty", "e.txt", "   ")

    async def test_embedding_failure_writes_nothing(self):
        project_id = await _project()
        async with async_session() as session:
            with pytest.raises(EmbeddingServiceError):
                await index_document(
                    session, FakeEmbedder(error=EmbeddingServiceError("down")),
                    project_id, "Manual", "manual.txt", LONG_TEXT,
                )

        async with async_session() as session:
            assert (await session.execute(select(DocumentChunk))).scalars().all() == []


class TestReindexDocument:

    async def test_replaces_whole_chunk_set(self):
        project_id = await _project()
        async with async_session() as session:
            document, _ = await index_document(
                session, FakeEmbedder(), project_id, "Manual", "manual.txt", LONG_TEXT,
            )
            count = await reindex_document(session, FakeEmbedder(), document, "Short new content.")

        rows = await _chunk_rows(document.id)
        assert count == 1
        assert [r.content for r in rows] == ["Short new content."]

    async def test_embedding_failure_keeps_old_chunks(self):
        project_id = await _project()
        async with async_session() as session:
            document, before = await index_document(
                session, FakeEmbedder(), project_id, "Manual", "manual.txt", LONG_TEXT,
            )
            with pytest.raises(EmbeddingServiceError):
                await reindex_document(
                    session, FakeEmbedder(error=EmbeddingServiceError("down")), document, "new text",
                )

        rows = await _chunk_rows(document.id)
        assert len(rows) == before
        assert rows[0].content == chunk_text(LONG_TEXT)[0]


class TestDisplayName:

    def test_explicit_name_wins(self):
        assert display_name("  Setup Guide ", "guide.pdf") == "Setup Guide"

    def test_falls_back_to_file_name(self):
        assert display_name(None, "guide.pdf") == "guide.pdf"
        assert display_name("   ", "guide.pdf") == "guide.pdf"
