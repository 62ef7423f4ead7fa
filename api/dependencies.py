"""
Shared dependencies and application state for the FastAPI server.
The application context (record store, index client, engine supervisor,
pipeline, ...) is built once at startup and reused across requests.
"""
from __future__ import annotations

import logging
from typing import Optional

from core.context import AppContext
from core.service import DocumentService
from ingestion.progress import ProgressBroadcaster

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Global singletons, populated during lifespan startup
# ---------------------------------------------------------------------------

_context: Optional[AppContext] = None
_document_service: Optional[DocumentService] = None


def get_context() -> AppContext:
    """FastAPI dependency: returns the started AppContext."""
    if _context is None:
        raise RuntimeError("AppContext not initialized. Server may still be starting.")
    return _context


def get_document_service() -> DocumentService:
    """FastAPI dependency: returns the DocumentService facade."""
    if _document_service is None:
        raise RuntimeError("DocumentService not initialized. Server may still be starting.")
    return _document_service


def get_broadcaster() -> ProgressBroadcaster:
    return get_context().broadcaster


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

async def initialize_components(context: Optional[AppContext] = None) -> None:
    """Build (or adopt) the context and start it.
    Called once during FastAPI lifespan startup.
    """
    global _context, _document_service

    logger.info("Initializing application components...")
    _context = context or AppContext()
    await _context.startup()
    _document_service = DocumentService(_context)
    logger.info("All components initialized successfully")


async def shutdown_components() -> None:
    global _context, _document_service

    if _context is not None:
        await _context.shutdown()
    _context = None
    _document_service = None
