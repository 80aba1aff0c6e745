"""Chat event log — append-only, capped trail of chat activity per product.

Appends are self-contained (own session, own transaction) so they can be
called from inside a streaming response. A failed append is logged and
dropped; it never interrupts the caller.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.chat_event import ChatEvent

logger = logging.getLogger("chat.event_log")

LIST_LIMIT = 100


async def append_event(
    session: AsyncSession,
    product_id: str,
    product_name: Optional[str],
    type: str,
    payload: Any,
    max_events: int,
) -> ChatEvent:
    """Insert one event and prune the oldest rows beyond `max_events`. Commits."""
    event = ChatEvent(
        product_id=product_id or "",
        product_name=product_name,
        type=type,
        payload=payload,
    )
    session.add(event)
    await session.flush()

    total = (await session.execute(select(func.count(ChatEvent.id)))).scalar_one()
    excess = total - max_events
    if excess > 0:
        oldest = select(ChatEvent.id).order_by(ChatEvent.id).limit(excess)
        old_ids = list((await session.execute(oldest)).scalars())
        await session.execute(delete(ChatEvent).where(ChatEvent.id.in_(old_ids)))

    await session.commit()
    return event


async def list_events(session: AsyncSession, product_id: Optional[str] = None) -> list[ChatEvent]:
    """Newest first, at most LIST_LIMIT rows, optionally for one product."""
    stmt = select(ChatEvent).order_by(ChatEvent.id.desc()).limit(LIST_LIMIT)
    if product_id:
        stmt = stmt.where(ChatEvent.product_id == product_id)
    return list((await session.execute(stmt)).scalars())


async def delete_event(session: AsyncSession, event_id: int) -> bool:
    event = await session.get(ChatEvent, event_id)
    if event is None:
        return False
    await session.delete(event)
    await session.commit()
    return True


class EventLog:
    """Fire-and-forget event recorder used by the chat pipeline."""

    def __init__(self, session_factory: async_sessionmaker, max_events: int = 500):
        self.session_factory = session_factory
        self.max_events = max_events

    async def record(
        self,
        product_id: Optional[str],
        product_name: Optional[str],
        type: str,
        payload: Optional[dict] = None,
    ) -> None:
        try:
            async with self.session_factory() as session:
                await append_event(
                    session, product_id or "", product_name, type, payload, self.max_events,
                )
        except Exception as e:
            logger.warning("Failed to record %s event for product %r: %s", type, product_id, e)
