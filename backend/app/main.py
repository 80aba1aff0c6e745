import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from core.auth import require_library_auth
from models import engine, init_db
from api.chat import router as chat_router
from api.projects import router as projects_router
from api.documents import router as documents_router
from api.events import router as events_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("chat.main")

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Unified Chat backend starting... DEBUG=%s provider=%s origins=%s",
        settings.DEBUG, settings.AI_PROVIDER, settings.allowed_origins or "same-origin",
    )

    yield

    logger.info("Unified Chat backend shutting down...")
    await engine.dispose()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Unified Chat API",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=86400,
)

app.include_router(chat_router)
app.include_router(projects_router)
app.include_router(documents_router)
app.include_router(events_router)


@app.get("/health")
async def health():
    return {"status": "ok", "version": VERSION}


@app.post("/api/init-db", dependencies=[Depends(require_library_auth)])
async def initialize_database():
    """Create the vector extension and all tables. Safe to call repeatedly."""
    await init_db()
    logger.info("Database schema initialized")
    return {"ok": True, "message": "Schema initialized"}
