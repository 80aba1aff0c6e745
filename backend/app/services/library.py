"""Library service — projects and their documents.

Project and document CRUD used by the library HTTP surface. Chunk rows are
owned by services.indexer; here they are only read (content fallback) or
removed together with their document.
"""
from __future__ import annotations

import logging
import re
import uuid
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.document import Document, DocumentChunk
from models.project import Project
from services.context_assembler import CONTEXT_SEPARATOR

logger = logging.getLogger("chat.library")


def slugify(name: str) -> str:
    """Lowercase, spaces to '-', drop everything outside [a-z0-9-]."""
    slug = re.sub(r"\s+", "-", name.strip().lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------
async def list_projects(session: AsyncSession) -> list[Project]:
    result = await session.execute(select(Project).order_by(Project.name))
    return list(result.scalars().all())


async def get_project(session: AsyncSession, project_id: uuid.UUID) -> Optional[Project]:
    return await session.get(Project, project_id)


async def create_project(
    session: AsyncSession,
    name: str,
    description: Optional[str] = None,
) -> Project:
    """Create a project, or update name/description of the one with the same slug."""
    slug = slugify(name)
    result = await session.execute(select(Project).where(Project.slug == slug))
    project = result.scalar_one_or_none()

    if project is None:
        project = Project(name=name.strip(), slug=slug, description=description)
        session.add(project)
        logger.info("Project created: %s", slug)
    else:
        project.name = name.strip()
        project.description = description
        logger.info("Project updated: %s", slug)

    await session.commit()
    await session.refresh(project)
    return project


async def update_project_description(
    session: AsyncSession,
    project: Project,
    description: Optional[str],
) -> Project:
    project.description = description
    await session.commit()
    await session.refresh(project)
    return project


async def delete_project(session: AsyncSession, project: Project) -> None:
    """Delete a project with all of its documents and chunks."""
    doc_ids = select(Document.id).where(Document.project_id == project.id)
    await session.execute(delete(DocumentChunk).where(DocumentChunk.document_id.in_(doc_ids)))
    await session.execute(delete(Document).where(Document.project_id == project.id))
    await session.delete(project)
    await session.commit()
    logger.info("Project deleted: %s", project.slug)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------
async def list_documents(session: AsyncSession, project_id: uuid.UUID) -> list[Document]:
    stmt = (
        select(Document)
        .where(Document.project_id == project_id)
        .order_by(Document.created_at.desc(), Document.name)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_document(session: AsyncSession, document_id: uuid.UUID) -> Optional[Document]:
    return await session.get(Document, document_id)


async def get_document_content(session: AsyncSession, document: Document) -> str:
    """Stored raw content, or the chunk texts in order when none is stored."""
    if document.content:
        return document.content
    stmt = (
        select(DocumentChunk.content)
        .where(DocumentChunk.document_id == document.id)
        .order_by(DocumentChunk.chunk_index, DocumentChunk.id)
    )
    result = await session.execute(stmt)
    return "\n\n".join(result.scalars().all())


async def delete_document(session: AsyncSession, document: Document) -> None:
    await session.execute(delete(DocumentChunk).where(DocumentChunk.document_id == document.id))
    await session.delete(document)
    await session.commit()
    logger.info("Document deleted: %s (%s)", document.name, document.id)


async def get_project_documentation(session: AsyncSession, project_id: uuid.UUID) -> str:
    """All document texts of a project as "[name]\\ncontent" blocks."""
    blocks = []
    for document in await list_documents(session, project_id):
        content = await get_document_content(session, document)
        if content.strip():
            blocks.append(f"[{document.name}]\n{content}")
    return CONTEXT_SEPARATOR.join(blocks)
