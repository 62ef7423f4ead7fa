"""
Documents routes, REST endpoints for ingesting and deleting files.

Endpoints
---------
POST   /api/documents                   - Ingest files by path
GET    /api/documents/supported-types   - Supported file extensions
GET    /api/documents/records           - Upload records, most recent first
GET    /api/documents/records/{file_id} - One upload record
DELETE /api/documents/{file_id}         - Delete a file from the index and the records
"""
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from api.dependencies import get_document_service
from core.service import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"])


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class IngestRequest(BaseModel):
    """Request body for POST /api/documents."""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"filePaths": ["/home/me/docs/informe.pdf"]}},
    )

    file_paths: List[str] = Field(
        ..., alias="filePaths", min_length=1, description="Absolute paths of the files to ingest"
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("", summary="Parse and index files")
async def ingest_documents(
    body: IngestRequest,
    service: DocumentService = Depends(get_document_service),
) -> dict:
    """Files are processed one after another; progress is published on
    /api/progress/stream."""
    result = await service.ingest(body.file_paths)
    return result.to_dict()


@router.get("/supported-types", summary="List supported file extensions")
async def supported_types(service: DocumentService = Depends(get_document_service)) -> dict:
    return (await service.list_supported_extensions()).to_dict()


@router.get("/records", summary="List upload records")
async def list_records(service: DocumentService = Depends(get_document_service)) -> dict:
    return (await service.list_records()).to_dict()


@router.get("/records/{file_id}", summary="Get one upload record")
async def get_record(
    file_id: str,
    service: DocumentService = Depends(get_document_service),
) -> dict:
    return (await service.get_record(file_id)).to_dict()


@router.delete("/{file_id}", summary="Delete a file and all its chunks")
async def delete_document(
    file_id: str,
    service: DocumentService = Depends(get_document_service),
) -> dict:
    return (await service.delete_file(file_id)).to_dict()
