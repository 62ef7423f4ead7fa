"""
FastAPI application factory.

Creates and configures the FastAPI app with:
- CORS middleware (origins from settings.CORS_ORIGINS)
- Lifespan startup/shutdown of the application context
- Document, search, progress and engine routes
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import initialize_components, shutdown_components
from api.routes.documents import router as documents_router
from api.routes.engine import router as engine_router
from api.routes.progress import router as progress_router
from api.routes.search import router as search_router
from config.settings import settings
from core.context import AppContext

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """Create and return the configured FastAPI application.

    Args:
        context: Pre-built context; a default one is created at startup otherwise
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Starting up, initializing components...")
        await initialize_components(context)
        logger.info("Startup complete. API is ready.")
        try:
            yield
        finally:
            logger.info("Shutting down.")
            await shutdown_components()

    app = FastAPI(
        title="Document Mirror API",
        description=(
            "Local full-text document mirror. Ingest PDF and text files into a "
            "search index and query them."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(documents_router)
    app.include_router(search_router)
    app.include_router(progress_router)
    app.include_router(engine_router)

    @app.get("/health", tags=["health"], summary="Health check")
    def health() -> dict:
        return {"status": "ok", "service": "document-mirror"}

    return app
