"""SSE (Server-Sent Events) endpoint for live league activity."""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from padeliga.api.deps import EventBusDep
from padeliga.core.event_bus import (
    MATCH_SCHEDULED,
    RANKINGS_RECALCULATED,
    RESULT_RECORDED,
    SCHEDULE_CLEARED,
    SCHEDULE_GENERATED,
    STATUS_CHANGED,
)

router = APIRouter(prefix="/api/events", tags=["events"])
logger = logging.getLogger(__name__)

_HEARTBEAT_INTERVAL = 15  # seconds

# Anonymous clients can hold streams open indefinitely; cap them.
_MAX_SSE_CONNECTIONS = 100
_connection_semaphore = asyncio.Semaphore(_MAX_SSE_CONNECTIONS)

ALLOWED_EVENT_TYPES: frozenset[str] = frozenset(
    {
        SCHEDULE_GENERATED,
        SCHEDULE_CLEARED,
        STATUS_CHANGED,
        MATCH_SCHEDULED,
        RESULT_RECORDED,
        RANKINGS_RECALCULATED,
    }
)


def format_sse(event: dict) -> str:
    data = json.dumps(event, default=str)
    return f"event: {event['type']}\ndata: {data}\n\n"


@router.get("/stream")
async def sse_stream(
    request: Request,
    bus: EventBusDep,
    event_type: str | None = None,
    league_id: str | None = None,
) -> StreamingResponse:
    """Server-Sent Events stream, optionally filtered by event type and league.

    Errors:
        400: unknown event_type value
        429: connection limit reached
    """
    if event_type is not None and event_type not in ALLOWED_EVENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Unknown event_type {event_type!r}. "
                f"Valid values: {sorted(ALLOWED_EVENT_TYPES)}"
            ),
        )
    if _connection_semaphore.locked():
        raise HTTPException(
            status_code=429,
            detail=f"Too many concurrent SSE connections (limit: {_MAX_SSE_CONNECTIONS})",
        )

    async def generate():
        async with _connection_semaphore:
            yield ": connected\n\n"
            logger.debug("sse_connected event_type=%s league=%s", event_type, league_id)
            async with bus.subscribe(event_type) as sub:
                while not await request.is_disconnected():
                    event = await sub.get(timeout=_HEARTBEAT_INTERVAL)
                    if event is None:
                        yield ": heartbeat\n\n"
                    elif league_id is None or event["data"].get("league_id") == league_id:
                        yield format_sse(event)

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
