"""Chat event log — append-only operational trail of widget/chat activity.

Types: message_sent, message_received, search, error, open, close.
Capped at settings.MAX_CHAT_EVENTS rows; oldest rows are pruned on insert.
"""
from __future__ import annotations

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin

CHAT_EVENT_TYPES = (
    "message_sent",
    "message_received",
    "search",
    "error",
    "open",
    "close",
)


class ChatEvent(TimestampMixin, Base):
    __tablename__ = "chat_events"

    __table_args__ = (
        Index("ix_chat_events_product_id", "product_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    product_id: Mapped[str] = mapped_column(String(100), default="")
    product_name: Mapped[str | None] = mapped_column(String(200), default=None)
    type: Mapped[str] = mapped_column(String(30))
    payload: Mapped[dict | None] = mapped_column(JSON, default=None)
