"""Documents and their embedded chunks.

Document.content is the authoritative raw text; DocumentChunk rows are derived
from it and always regenerated as a full set (see services.indexer).
"""
from __future__ import annotations

import uuid

from pgvector.sqlalchemy import Vector
from sqlalchemy import JSON, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from config import settings
from models.base import Base, TimestampMixin


class Document(TimestampMixin, Base):
    __tablename__ = "documents"

    __table_args__ = (
        Index("ix_documents_project_id", "project_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE")
    )
    name: Mapped[str] = mapped_column(String(500))        # display name
    file_name: Mapped[str] = mapped_column(String(500))   # original upload name
    content: Mapped[str | None] = mapped_column(Text, default=None)


class DocumentChunk(Base):
    __tablename__ = "document_chunks"

    __table_args__ = (
        Index("ix_document_chunks_document_id", "document_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    document_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("documents.id", ondelete="CASCADE")
    )
    chunk_index: Mapped[int] = mapped_column(default=0)   # order within document
    content: Mapped[str] = mapped_column(Text)            # ~500 chars text window
    # pgvector on PostgreSQL, plain JSON array on SQLite (local runs / tests)
    embedding: Mapped[list[float]] = mapped_column(
        Vector(settings.EMBEDDING_DIMENSIONS).with_variant(JSON(), "sqlite")
    )
