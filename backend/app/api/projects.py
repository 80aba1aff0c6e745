"""Projects API — the products a chat widget can be scoped to.

GET    /api/projects                           — list (by name)
POST   /api/projects                           — create or update by slug
GET    /api/projects/{id}                      — one project
PATCH  /api/projects/{id}                      — set description
DELETE /api/projects/{id}                      — delete with documents and chunks
POST   /api/projects/{id}/generate-description — one-sentence summary of the docs
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from core.auth import require_library_auth
from models import Project, get_session
from services import library
from services.llm_client import GenerativeModel, LLMError, get_generative_model
from services.prompts import build_summary_prompt

router = APIRouter(prefix="/api/projects", tags=["projects"])
logger = logging.getLogger("chat.api.projects")

NO_SUMMARY = "No summary generated."


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class ProjectCreate(BaseModel):
    name: str
    description: str | None = None


class ProjectUpdate(BaseModel):
    description: str | None = None


class ProjectOut(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    description: str | None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class GeneratedDescription(BaseModel):
    description: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _get_or_404(session: AsyncSession, project_id: uuid.UUID) -> Project:
    project = await library.get_project(session, project_id)
    if not project:
        raise HTTPException(404, "Project not found")
    return project


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("", response_model=list[ProjectOut])
async def list_projects(session: AsyncSession = Depends(get_session)):
    return await library.list_projects(session)


@router.post("", response_model=ProjectOut, dependencies=[Depends(require_library_auth)])
async def create_project(data: ProjectCreate, session: AsyncSession = Depends(get_session)):
    name = data.name.strip()
    if not name:
        raise HTTPException(400, "name is required")
    if not library.slugify(name):
        raise HTTPException(400, "name must contain at least one letter or digit")
    description = data.description.strip() if data.description else None
    return await library.create_project(session, name, description or None)


@router.get("/{project_id}", response_model=ProjectOut)
async def get_project(project_id: uuid.UUID, session: AsyncSession = Depends(get_session)):
    return await _get_or_404(session, project_id)


@router.patch("/{project_id}", response_model=ProjectOut, dependencies=[Depends(require_library_auth)])
async def update_project(
    project_id: uuid.UUID,
    data: ProjectUpdate,
    session: AsyncSession = Depends(get_session),
):
    project = await _get_or_404(session, project_id)
    description = data.description.strip() if data.description else None
    return await library.update_project_description(session, project, description or None)


@router.delete("/{project_id}", dependencies=[Depends(require_library_auth)])
async def delete_project(project_id: uuid.UUID, session: AsyncSession = Depends(get_session)):
    project = await _get_or_404(session, project_id)
    await library.delete_project(session, project)
    return {"ok": True}


@router.post(
    "/{project_id}/generate-description",
    response_model=GeneratedDescription,
    dependencies=[Depends(require_library_auth)],
)
async def generate_description(
    project_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    model: GenerativeModel = Depends(get_generative_model),
) -> GeneratedDescription:
    """Summarize the project's documentation. The result is returned, not saved."""
    await _get_or_404(session, project_id)

    documentation = await library.get_project_documentation(session, project_id)
    if not documentation.strip():
        raise HTTPException(400, "Project has no document content yet")

    prompt = build_summary_prompt(documentation, settings.SUMMARY_MAX_CHARS)
    try:
        summary = await model.generate(prompt)
    except LLMError as e:
        logger.warning("Description generation failed for %s: %s", project_id, e)
        raise HTTPException(502, str(e))

    return GeneratedDescription(description=(summary or "").strip() or NO_SUMMARY)
