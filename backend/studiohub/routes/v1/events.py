# backend/studiohub/routes/v1/events.py
"""
Real-time change stream - API v1

Endpoints:
    GET /stream?item_id=...   → SSE of the caller's reservation updates plus
                                availability updates of the listed items
"""

import logging
from typing import AsyncGenerator, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sse_starlette.sse import EventSourceResponse

from ...api.dependencies.auth import get_current_user_id_optional
from ...core.broadcast import availability_channel, is_broadcast_initialized, user_channel
from ...services.notifications.sse_stream import create_event_stream

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events-v1"])

MAX_ITEM_SUBSCRIPTIONS = 20


@router.get("/stream")
async def stream_events(
    item_id: Optional[List[str]] = Query(default=None),
    user_id: Optional[str] = Depends(get_current_user_id_optional),
) -> EventSourceResponse:
    channels = [availability_channel(i) for i in dict.fromkeys(item_id or [])]
    if len(channels) > MAX_ITEM_SUBSCRIPTIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": f"At most {MAX_ITEM_SUBSCRIPTIONS} items per stream",
                "code": "TOO_MANY_SUBSCRIPTIONS",
            },
        )
    if user_id:
        channels.insert(0, user_channel(user_id))
    if not channels:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Nothing to subscribe to", "code": "NO_CHANNELS"},
        )
    if not is_broadcast_initialized():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": "Real-time service unavailable", "code": "BROADCAST_UNAVAILABLE"},
        )

    logger.info(f"[SSE] Stream requested for {len(channels)} channel(s), user={user_id or 'guest'}")

    async def event_generator() -> AsyncGenerator[dict, None]:
        async for event in create_event_stream(channels):
            yield event

    return EventSourceResponse(
        event_generator(),
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
