"""
Progress stream.

GET /api/progress/stream - server-sent events, one ``ParseProgress``
snapshot per event, for every file being ingested.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from api.dependencies import get_broadcaster
from ingestion.progress import ProgressBroadcaster

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/progress", tags=["progress"])

KEEPALIVE_SECONDS = 15.0


async def progress_events(
    broadcaster: ProgressBroadcaster,
    max_events: Optional[int] = None,
    keepalive: float = KEEPALIVE_SECONDS,
) -> AsyncGenerator[str, None]:
    """Yield SSE frames until the client goes away or ``max_events`` were sent."""
    queue = broadcaster.subscribe()
    sent = 0
    try:
        while max_events is None or sent < max_events:
            try:
                progress = await asyncio.wait_for(queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield f"event: progress\ndata: {json.dumps(progress.to_dict(), ensure_ascii=False)}\n\n"
            sent += 1
    finally:
        broadcaster.unsubscribe(queue)
        logger.debug("Progress subscriber disconnected")


@router.get("/stream", summary="Server-sent stream of ingestion progress")
async def stream(
    limit: Optional[int] = Query(default=None, ge=1, description="Close after this many events"),
    broadcaster: ProgressBroadcaster = Depends(get_broadcaster),
) -> StreamingResponse:
    return StreamingResponse(
        progress_events(broadcaster, max_events=limit),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
