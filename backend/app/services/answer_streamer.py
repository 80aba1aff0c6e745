"""
Answer Streamer — orchestrates one chat turn.

Flow per request:
  1. find the last user message and (optionally) the product it is about
  2. retrieval: extract search terms -> embed -> vector search -> context
  3. stream the answer with the context in the system instruction
  4. finish with exactly one `sources` frame and one `done` frame

Everything before generation degrades to "answer without context". A
generation failure is reported to the user as content, never as a broken
stream. Lifecycle transitions are mirrored to the chat event log.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import aclosing
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from models.project import Project
from services.context_assembler import assemble_context
from services.embedder import Embedder
from services.event_log import EventLog
from services.intent_extractor import IntentExtractor
from services.llm_client import GenerativeModel, format_llm_error
from services.prompts import build_chat_system
from services.vector_store import VectorStore

logger = logging.getLogger("chat.answer_streamer")

STATUS_LOOKING_UP = "Looking up guidance…"


def last_user_text(messages: list[dict]) -> str:
    for msg in reversed(messages):
        if msg.get("role") == "user":
            return msg.get("content") or ""
    return ""


class AnswerStreamer:
    def __init__(
        self,
        model: GenerativeModel,
        embedder: Embedder,
        session_factory: async_sessionmaker,
        event_log: EventLog,
        top_k: int = 5,
        extraction_timeout: float = 15.0,
        embedding_timeout: float = 15.0,
    ):
        self.model = model
        self.embedder = embedder
        self.session_factory = session_factory
        self.event_log = event_log
        self.top_k = top_k
        self.embedding_timeout = embedding_timeout
        self.extractor = IntentExtractor(model, timeout=extraction_timeout)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _load_project(self, product_id: Optional[str]) -> Optional[Project]:
        if not product_id:
            return None
        try:
            project_uuid = uuid.UUID(str(product_id))
        except ValueError:
            logger.info("Chat for unknown product id %r", product_id)
            return None
        try:
            async with self.session_factory() as session:
                return await session.get(Project, project_uuid)
        except Exception as e:
            logger.warning("Project lookup failed for %s: %s", product_id, e)
            return None

    async def _retrieve(self, project: Project, terms: list[str]) -> tuple[str, list[dict]]:
        query = " ".join(terms)
        vector = await asyncio.wait_for(self.embedder.embed(query), timeout=self.embedding_timeout)
        async with self.session_factory() as session:
            chunks = await VectorStore(session).search(project.id, vector, k=self.top_k)
        logger.info("Retrieved %d chunks for project %s", len(chunks), project.id)
        if not chunks:
            return "", []
        return assemble_context(chunks)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    async def stream(
        self,
        messages: list[dict],
        product_id: Optional[str] = None,
    ) -> AsyncIterator[dict]:
        """Yield lifecycle events (`status`, `search`, `content`, `sources`, `done`)."""
        text = last_user_text(messages)
        project = await self._load_project(product_id)
        product_name = project.name if project else None

        async def register(type: str, payload: Optional[dict] = None) -> None:
            await self.event_log.record(product_id or "", product_name, type, payload)

        if text.strip():
            await register("message_sent", {"content": text})

        context_block = ""
        sources: list[dict] = []

        if product_id and text.strip() and project is not None:
            try:
                terms = await self.extractor.extract(project.name, project.description, text)
                logger.info("product_id=%s extracted_search_terms=%s", product_id, terms)
                if terms:
                    await register("search", {"searchTerms": terms})
                    yield {"type": "search", "searchTerms": terms}
                    yield {"type": "status", "message": STATUS_LOOKING_UP}
                    context_block, sources = await self._retrieve(project, terms)
            except Exception as e:
                logger.warning("Retrieval failed for product %s: %s", product_id, e)
                context_block, sources = "", []

        system_instruction = build_chat_system(context_block)

        try:
            async with aclosing(self.model.stream(messages, system_instruction)) as fragments:
                async for fragment in fragments:
                    yield {"type": "content", "content": fragment}
        except Exception as e:
            logger.error("Generation failed for product %r: %s", product_id, e, exc_info=True)
            message = format_llm_error(getattr(self.model, "provider", ""), e)
            await register("error", {"error": message})
            yield {"type": "content", "content": f"Error: {message}"}
            yield {"type": "sources", "sources": []}
            yield {"type": "done"}
            return

        yield {"type": "sources", "sources": sources}
        yield {"type": "done"}
        await register("message_received", {"sources": sources})
