"""FastAPI main application for WorldForge."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from worldforge import __version__
from worldforge.db.session import init_db
from worldforge.logging_config import setup_logging

from .routes import worlds

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    setup_logging()
    init_db()
    logger.info("WorldForge starting up")
    yield
    logger.info("WorldForge shut down cleanly")


app = FastAPI(
    title="WorldForge API",
    description="Phased world generation, lore browsing and discovery",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for web frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(worlds.router, prefix="/api/worlds", tags=["Worlds"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


@app.get("/api/providers")
async def list_providers():
    """List available LLM providers."""
    from worldforge.llm import get_llm_manager

    manager = get_llm_manager()
    return {
        "available": manager.list_available_providers(),
        "primary": manager.primary_provider,
    }
