"""REST API for the chat event log (widget activity feed).

GET    /api/events?productId=  — newest first, at most 100
POST   /api/events             — record a widget event (open, close, ...)
DELETE /api/events/{id}        — remove one event
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models.base import get_session
from services.event_log import append_event, delete_event, list_events

router = APIRouter(prefix="/api/events", tags=["events"])

ChatEventType = Literal["message_sent", "message_received", "search", "error", "open", "close"]


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ChatEventIn(_CamelModel):
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    type: ChatEventType
    payload: Optional[Any] = None


class ChatEventOut(_CamelModel):
    id: int
    product_id: str
    product_name: str | None = None
    type: str
    payload: Any = None
    created_at: datetime | None = None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("", response_model=list[ChatEventOut], response_model_by_alias=True)
async def get_events(
    product_id: Optional[str] = Query(None, alias="productId"),
    session: AsyncSession = Depends(get_session),
):
    return await list_events(session, product_id)


@router.post("", status_code=201)
async def create_event(data: ChatEventIn, session: AsyncSession = Depends(get_session)):
    await append_event(
        session,
        product_id=data.product_id or "",
        product_name=data.product_name,
        type=data.type,
        payload=data.payload,
        max_events=settings.MAX_CHAT_EVENTS,
    )
    return {"ok": True}


@router.delete("/{event_id}")
async def remove_event(event_id: int, session: AsyncSession = Depends(get_session)):
    if not await delete_event(session, event_id):
        raise HTTPException(404, "Event not found")
    return {"ok": True}
