from models.base import Base, async_session, engine, get_session, init_db
from models.project import Project
from models.document import Document, DocumentChunk
from models.chat_event import CHAT_EVENT_TYPES, ChatEvent

__all__ = [
    "Base",
    "async_session",
    "engine",
    "get_session",
    "init_db",
    "Project",
    "Document",
    "DocumentChunk",
    "ChatEvent",
    "CHAT_EVENT_TYPES",
]
