"""Chat endpoint — streams one answer as server-sent events.

POST /api/chat  {product_id?, messages: [{role, content}]}

Frames are `data: <json>\\n\\n`, one lifecycle event each:
status, search, content, sources, done. The stream always ends with done.
"""
from __future__ import annotations

import json
import logging
from contextlib import aclosing
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from config import settings
from models import async_session
from services.answer_streamer import AnswerStreamer
from services.embedder import Embedder, get_embedder
from services.event_log import EventLog
from services.llm_client import GenerativeModel, get_generative_model

router = APIRouter(prefix="/api/chat", tags=["chat"])
logger = logging.getLogger("chat.api.chat")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class ChatMessageIn(BaseModel):
    role: str                       # "user"; anything else is treated as the assistant
    content: str


class ChatRequest(BaseModel):
    product_id: Optional[str] = None
    messages: list[ChatMessageIn] = []


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_answer_streamer(
    model: GenerativeModel = Depends(get_generative_model),
    embedder: Embedder = Depends(get_embedder),
) -> AnswerStreamer:
    return AnswerStreamer(
        model=model,
        embedder=embedder,
        session_factory=async_session,
        event_log=EventLog(async_session, max_events=settings.MAX_CHAT_EVENTS),
        top_k=settings.RETRIEVAL_TOP_K,
        extraction_timeout=settings.EXTRACTION_TIMEOUT,
        embedding_timeout=settings.EMBEDDING_TIMEOUT,
    )


def sse_frame(event: dict) -> str:
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("")
async def chat(
    body: ChatRequest,
    streamer: AnswerStreamer = Depends(get_answer_streamer),
) -> StreamingResponse:
    messages = [m.model_dump() for m in body.messages]
    logger.info(
        "Chat request: product_id=%s messages=%d", body.product_id or "-", len(messages),
    )

    async def event_stream() -> AsyncIterator[str]:
        async with aclosing(streamer.stream(messages, body.product_id)) as events:
            async for event in events:
                yield sse_frame(event)

    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=SSE_HEADERS)
