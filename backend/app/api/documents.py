"""Documents API — upload, read, edit and delete project documentation.

GET    /api/documents?projectId=      — list a project's documents
POST   /api/documents/upload          — upload .txt/.md/.pdf/.docx → extract → chunk → embed → store
GET    /api/documents/{id}/content    — raw text (falls back to chunk texts)
PATCH  /api/documents/{id}/content    — replace text and re-index
DELETE /api/documents/{id}            — delete document and its chunks
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from core.auth import require_library_auth
from models import Document, get_session
from services import library
from services.embedder import Embedder, EmbeddingServiceError, get_embedder
from services.indexer import NothingToIndex, display_name, index_document, reindex_document
from services.text_extraction import UnsupportedFileType, extract_text

router = APIRouter(prefix="/api/documents", tags=["documents"])
logger = logging.getLogger("chat.api.documents")


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class DocumentOut(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    name: str
    file_name: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class UploadResult(DocumentOut):
    chunk_count: int


class DocumentContent(BaseModel):
    content: str


class ReindexResult(BaseModel):
    ok: bool
    chunk_count: int


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _get_or_404(session: AsyncSession, document_id: uuid.UUID) -> Document:
    document = await library.get_document(session, document_id)
    if not document:
        raise HTTPException(404, "Document not found")
    return document


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("", response_model=list[DocumentOut])
async def list_documents(
    project_id: Optional[uuid.UUID] = Query(None, alias="projectId"),
    session: AsyncSession = Depends(get_session),
):
    if project_id is None:
        raise HTTPException(400, "projectId is required")
    return await library.list_documents(session, project_id)


@router.post("/upload", response_model=UploadResult, dependencies=[Depends(require_library_auth)])
async def upload_document(
    project_id: Optional[str] = Form(None, alias="projectId"),
    file: Optional[UploadFile] = File(None),
    name: Optional[str] = Form(None),
    session: AsyncSession = Depends(get_session),
    embedder: Embedder = Depends(get_embedder),
) -> UploadResult:
    """Extract text, chunk, embed in batches and store document + chunks."""
    if not project_id:
        raise HTTPException(400, "projectId is required")
    if file is None:
        raise HTTPException(400, "file is required")
    try:
        project_uuid = uuid.UUID(project_id)
    except ValueError:
        raise HTTPException(400, "projectId must be a UUID")

    filename = file.filename or "unknown"
    logger.info("Document upload: %s (project=%s)", filename, project_uuid)

    if not await library.get_project(session, project_uuid):
        raise HTTPException(404, "Project not found")

    file_bytes = await file.read()
    max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if len(file_bytes) > max_bytes:
        raise HTTPException(
            413, f"File too large ({len(file_bytes) // 1024 // 1024} MB). Max {settings.MAX_UPLOAD_SIZE_MB} MB.",
        )

    try:
        text = extract_text(file_bytes, filename)
    except UnsupportedFileType as e:
        raise HTTPException(415, str(e))
    except Exception as e:
        logger.warning("Text extraction failed for %s: %s", filename, e)
        raise HTTPException(400, f"Could not read file: {str(e)[:200]}")

    if not text.strip():
        raise HTTPException(400, "No text extracted from file")

    try:
        document, chunk_count = await index_document(
            session, embedder, project_uuid,
            name=display_name(name, filename),
            file_name=filename,
            text=text,
            batch_size=settings.EMBEDDING_BATCH_SIZE,
        )
    except NothingToIndex:
        raise HTTPException(400, "No content to index")
    except EmbeddingServiceError as e:
        logger.error("Embedding failed for %s: %s", filename, e)
        raise HTTPException(502, f"Embedding failed: {e}")

    return UploadResult(
        id=document.id,
        project_id=document.project_id,
        name=document.name,
        file_name=document.file_name,
        created_at=document.created_at,
        chunk_count=chunk_count,
    )


@router.get("/{document_id}/content", response_model=DocumentContent)
async def get_document_content(
    document_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> DocumentContent:
    document = await _get_or_404(session, document_id)
    return DocumentContent(content=await library.get_document_content(session, document))


@router.patch(
    "/{document_id}/content",
    response_model=ReindexResult,
    dependencies=[Depends(require_library_auth)],
)
async def update_document_content(
    document_id: uuid.UUID,
    data: DocumentContent,
    session: AsyncSession = Depends(get_session),
    embedder: Embedder = Depends(get_embedder),
) -> ReindexResult:
    """Replace the document text and regenerate its whole chunk set."""
    document = await _get_or_404(session, document_id)
    try:
        chunk_count = await reindex_document(
            session, embedder, document, data.content,
            batch_size=settings.EMBEDDING_BATCH_SIZE,
        )
    except EmbeddingServiceError as e:
        logger.error("Re-index embedding failed for %s: %s", document_id, e)
        raise HTTPException(502, f"Embedding failed: {e}")
    return ReindexResult(ok=True, chunk_count=chunk_count)


@router.delete("/{document_id}", dependencies=[Depends(require_library_auth)])
async def delete_document(document_id: uuid.UUID, session: AsyncSession = Depends(get_session)):
    document = await _get_or_404(session, document_id)
    await library.delete_document(session, document)
    return {"ok": True}
