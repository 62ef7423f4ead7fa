"""
Search routes.

Endpoints
---------
POST   /api/search        - Full-text query
GET    /api/search/stats  - Index statistics
POST   /api/search/init   - Create/configure the index
DELETE /api/search/index  - Remove every document from the index
"""
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from api.dependencies import get_document_service
from core.service import DocumentService
from domain.models import SearchOptions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/search", tags=["search"])


class SearchRequest(BaseModel):
    """Request body for POST /api/search."""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"query": "contrato", "filter": 'fileType = "pdf"'}},
    )

    query: str = Field(..., description="Search terms")
    limit: Optional[int] = Field(default=None, ge=0)
    offset: int = Field(default=0, ge=0)
    filter: Optional[str] = None
    sort: Optional[List[str]] = None
    batch_size: Optional[int] = Field(default=None, alias="batchSize", gt=0)
    include_content: bool = Field(default=False, alias="includeContent")
    fetch_all_hits: bool = Field(default=True, alias="fetchAllHits")

    def to_options(self) -> SearchOptions:
        return SearchOptions(
            limit=self.limit,
            offset=self.offset,
            filter=self.filter,
            sort=self.sort,
            batch_size=self.batch_size,
            include_content=self.include_content,
            fetch_all_hits=self.fetch_all_hits,
        )


@router.post("", summary="Search the indexed documents")
async def search(
    body: SearchRequest,
    service: DocumentService = Depends(get_document_service),
) -> dict:
    return (await service.search(body.query, body.to_options())).to_dict()


@router.get("/stats", summary="Index statistics")
async def stats(service: DocumentService = Depends(get_document_service)) -> dict:
    return (await service.index_stats()).to_dict()


@router.post("/init", summary="Create and configure the index")
async def init_index(service: DocumentService = Depends(get_document_service)) -> dict:
    return (await service.init_index()).to_dict()


@router.delete("/index", summary="Remove every document from the index")
async def clear_index(service: DocumentService = Depends(get_document_service)) -> dict:
    return (await service.clear_index()).to_dict()
