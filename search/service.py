"""
Search query service.

Runs a two-phase query against the index: a cheap count query (``limit=0`` with a
``fileId`` facet) that yields the total hit count, then paginated retrieval
of the hits with cropped and highlighted snippets.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from domain.models import SearchOptions, SearchResult
from searchindex.base import BaseIndexClient

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500

HIT_ATTRIBUTES = [
    "id",
    "fileId",
    "fileName",
    "fileType",
    "pageRange",
    "totalPages",
    "chunkIndex",
    "totalChunks",
    "filePath",
    "createdAt",
]


class SearchService:
    """
    Servicio de búsqueda sobre el índice de chunks.

    Example:
        service = SearchService(index_client)
        result = await service.search("contrato", SearchOptions(filter='fileType = "pdf"'))
    """

    def __init__(
        self,
        index_client: BaseIndexClient,
        batch_size: int = DEFAULT_BATCH_SIZE,
        crop_length: int = 50,
        crop_marker: str = "...",
        highlight_pre_tag: str = "<mark>",
        highlight_post_tag: str = "</mark>",
    ):
        if batch_size <= 0:
            raise ValueError("batch_size must be greater than 0")
        self.index_client = index_client
        self.batch_size = batch_size
        self.crop_length = crop_length
        self.crop_marker = crop_marker
        self.highlight_pre_tag = highlight_pre_tag
        self.highlight_post_tag = highlight_post_tag

    def _retrieval_params(self, options: SearchOptions, limit: int, offset: int) -> Dict[str, Any]:
        attributes = list(HIT_ATTRIBUTES)
        if options.include_content:
            attributes.append("content")
        return {
            "filter": options.filter,
            "sort": options.sort,
            "limit": limit,
            "offset": offset,
            "attributesToRetrieve": attributes,
            "attributesToCrop": ["content"],
            "cropLength": self.crop_length,
            "cropMarker": self.crop_marker,
            "attributesToHighlight": ["content", "fileName"],
            "highlightPreTag": self.highlight_pre_tag,
            "highlightPostTag": self.highlight_post_tag,
            "showMatchesPosition": True,
        }

    async def search(self, query: str, options: Optional[SearchOptions] = None) -> SearchResult:
        """
        Search the index.

        With ``fetch_all_hits`` (the default) every hit is retrieved in
        batches of ``batch_size``; otherwise a single page at
        ``limit``/``offset`` is returned.

        Raises:
            IndexClientError: If the engine rejects the query or is unreachable
        """
        options = options or SearchOptions()
        batch_size = options.batch_size or self.batch_size

        counted = await self.index_client.search(
            query,
            {
                "filter": options.filter,
                "sort": options.sort,
                "limit": 0,
                "offset": 0,
                "facets": ["fileId"],
            },
        )
        total_hits = int(counted.get("estimatedTotalHits") or 0)
        facets = counted.get("facetDistribution")
        processing_time = int(counted.get("processingTimeMs") or 0)
        resolved_query = counted.get("query") or query

        if total_hits == 0:
            return SearchResult(
                hits=[],
                query=resolved_query,
                processing_time_ms=processing_time,
                estimated_total_hits=0,
                facet_distribution=facets,
            )

        hits: List[Dict[str, Any]] = []
        batches = 0

        async def fetch_batch(limit: int, offset: int) -> int:
            nonlocal processing_time, batches
            page = await self.index_client.search(
                query, self._retrieval_params(options, limit, offset)
            )
            processing_time += int(page.get("processingTimeMs") or 0)
            batches += 1
            page_hits = page.get("hits") or []
            hits.extend(page_hits)
            return len(page_hits)

        if not options.fetch_all_hits:
            limit = options.limit if options.limit is not None else batch_size
            await fetch_batch(limit, options.offset)
        else:
            retrieved = 0
            offset = 0
            while retrieved < total_hits:
                current_limit = min(batch_size, total_hits - retrieved)
                fetched = await fetch_batch(current_limit, offset)
                retrieved += fetched
                offset += current_limit
                # A short page means the estimate overshot
                if fetched < current_limit:
                    break

        logger.info(
            f"Search '{query}': {len(hits)} hits in {batches} batch(es), "
            f"estimated total {total_hits}, "
            f"files {len((facets or {}).get('fileId') or {})}"
        )

        return SearchResult(
            hits=hits,
            query=resolved_query,
            processing_time_ms=processing_time,
            estimated_total_hits=total_hits,
            facet_distribution=facets,
        )
