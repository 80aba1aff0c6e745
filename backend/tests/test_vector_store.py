"""
Tests for services/vector_store.py
Vector Store - project-scoped cosine ranking over stored chunks (SQLite path).
"""
import uuid

import numpy as np

from models import Document, Project, async_session
from services.vector_store import VectorStore, cosine_distances


async def _project(session, name):
    project = Project(name=name, slug=name.lower())
    session.add(project)
    await session.flush()
    return project


async def _document(session, project, name):
    document = Document(project_id=project.id, name=name, file_name=f"{name}.txt", content=None)
    session.add(document)
    await session.flush()
    return document


class TestCosineDistances:

    def test_identical_orthogonal_opposite(self):
        matrix = np.array([[1.0, 0.0], [0.0, 2.0], [-3.0, 0.0]])
        d = cosine_distances([1.0, 0.0], matrix)
        assert np.allclose(d, [0.0, 1.0, 2.0])

    def test_zero_vector_is_at_distance_one(self):
        d = cosine_distances([1.0, 0.0], np.array([[0.0, 0.0]]))
        assert d[0] == 1.0


class TestSearch:

    async def test_orders_by_ascending_distance(self):
        async with async_session() as session:
            project = await _project(session, "Alpha")
            doc = await _document(session, project, "Manual")
            store = VectorStore(session)
            await store.upsert_chunk(doc.id, "far", [0.0, 1.0, 0.0], 0)
            await store.upsert_chunk(doc.id, "near", [1.0, 0.1, 0.0], 1)
            await store.upsert_chunk(doc.id, "exact", [1.0, 0.0, 0.0], 2)
            await session.commit()

            results = await VectorStore(session).search(project.id, [1.0, 0.0, 0.0], k=5)

        assert [r.content for r in results] == ["exact", "near", "far"]
        assert all(r.document_name == "Manual" for r in results)

    async def test_limited_to_k(self):
        async with async_session() as session:
            project = await _project(session, "Alpha")
            doc = await _document(session, project, "Manual")
            store = VectorStore(session)
            for i in range(8):
                await store.upsert_chunk(doc.id, f"c{i}", [1.0, float(i), 0.0], i)
            await session.commit()

            results = await store.search(project.id, [1.0, 0.0, 0.0], k=5)

        assert [r.content for r in results] == ["c0", "c1", "c2", "c3", "c4"]

    async def test_scoped_to_project(self):
        async with async_session() as session:
            alpha = await _project(session, "Alpha")
            beta = await _project(session, "Beta")
            doc_a = await _document(session, alpha, "A-doc")
            doc_b = await _document(session, beta, "B-doc")
            store = VectorStore(session)
            await store.upsert_chunk(doc_a.id, "alpha text", [0.0, 1.0, 0.0])
            await store.upsert_chunk(doc_b.id, "beta text", [1.0, 0.0, 0.0])
            await session.commit()

            results = await store.search(alpha.id, [1.0, 0.0, 0.0], k=5)

        assert [r.content for r in results] == ["alpha text"]

    async def test_empty_project_and_unknown_project(self):
        async with async_session() as session:
            project = await _project(session, "Empty")
            await session.commit()
            store = VectorStore(session)

            assert await store.search(project.id, [1.0, 0.0, 0.0]) == []
            assert await store.search(uuid.uuid4(), [1.0, 0.0, 0.0]) == []

    async def test_ties_keep_insertion_order(self):
        async with async_session() as session:
            project = await _project(session, "Alpha")
            doc = await _document(session, project, "Manual")
            store = VectorStore(session)
            for name in ("first", "second", "third"):
                await store.upsert_chunk(doc.id, name, [1.0, 1.0, 0.0])
            await session.commit()

            results = await store.search(project.id, [1.0, 1.0, 0.0], k=2)

        assert [r.content for r in results] == ["first", "second"]


class TestDeleteChunks:

    async def test_deletes_only_that_document(self):
        async with async_session() as session:
            project = await _project(session, "Alpha")
            keep = await _document(session, project, "Keep")
            drop = await _document(session, project, "Drop")
            store = VectorStore(session)
            await store.upsert_chunk(keep.id, "kept", [1.0, 0.0, 0.0])
            await store.upsert_chunk(drop.id, "dropped 1", [1.0, 0.0, 0.0])
            await store.upsert_chunk(drop.id, "dropped 2", [1.0, 0.0, 0.0])
            await session.commit()

            removed = await store.delete_chunks_for_document(drop.id)
            await session.commit()
            results = await store.search(project.id, [1.0, 0.0, 0.0])

        assert removed == 2
        assert [r.content for r in results] == ["kept"]
