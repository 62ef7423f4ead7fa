"""
Engine status and user configuration.

Endpoints
---------
GET /api/engine/status - Whether the search engine is running, host and port
GET /api/config        - User configuration and whether it is complete
PUT /api/config        - Update one configuration key
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import get_document_service
from core.service import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["engine"])


class ConfigUpdate(BaseModel):
    """Request body for PUT /api/config."""
    key: str
    value: Any


@router.get("/engine/status", summary="Search engine status")
async def engine_status(service: DocumentService = Depends(get_document_service)) -> dict:
    return (await service.engine_status()).to_dict()


@router.get("/config", summary="Read the user configuration")
async def get_config(service: DocumentService = Depends(get_document_service)) -> dict:
    return (await service.get_config()).to_dict()


@router.put("/config", summary="Update one configuration key")
async def set_config(
    body: ConfigUpdate,
    service: DocumentService = Depends(get_document_service),
) -> dict:
    return (await service.set_config(body.key, body.value)).to_dict()
