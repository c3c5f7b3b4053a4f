# backend/studiohub/services/notifications/sse_stream.py
"""
SSE stream over the shared Broadcaster.

A client subscribes to its own user channel plus the availability channel
of every item it is looking at. Each channel gets a reader task feeding a
single queue, so one slow channel never holds up the others and the
heartbeat timer never cancels a subscriber mid-read.
"""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack
from datetime import datetime, timezone
import json
import logging
from typing import Any, AsyncGenerator, Dict, List, Optional, Sequence, Tuple

from broadcaster import Broadcast

from ...core.broadcast import get_broadcast
from ...core.config import settings

logger = logging.getLogger(__name__)


def format_event(event: Dict[str, Any]) -> Dict[str, str]:
    return {"event": str(event.get("type", "message")), "data": json.dumps(event, default=str)}


def _heartbeat() -> Dict[str, str]:
    return {
        "event": "heartbeat",
        "data": json.dumps(
            {"type": "heartbeat", "timestamp": datetime.now(timezone.utc).isoformat()}
        ),
    }


async def create_event_stream(
    channels: Sequence[str],
    broadcast: Optional[Broadcast] = None,
    heartbeat_interval: Optional[float] = None,
) -> AsyncGenerator[Dict[str, str], None]:
    """
    Yield SSE event dicts (``event``, ``data``) for the given channels.

    Raises:
        RuntimeError: if no broadcaster is connected
    """
    source = broadcast or get_broadcast()
    interval = heartbeat_interval or settings.sse_heartbeat_interval
    subscribed = list(dict.fromkeys(channels))

    yield {
        "event": "connected",
        "data": json.dumps({"status": "connected", "channels": subscribed}),
    }

    queue: asyncio.Queue[Tuple[str, Any]] = asyncio.Queue()

    async def reader(subscriber: Any, channel: str) -> None:
        try:
            async for event in subscriber:
                await queue.put(("message", event))
        except Exception as e:
            await queue.put(("error", e))
        finally:
            await queue.put(("done", channel))

    async with AsyncExitStack() as stack:
        readers: List[asyncio.Task[None]] = []
        for channel in subscribed:
            subscriber = await stack.enter_async_context(source.subscribe(channel=channel))
            readers.append(asyncio.create_task(reader(subscriber, channel)))
        logger.info(f"[SSE] Subscribed to {subscribed}")

        open_readers = len(readers)
        try:
            while open_readers:
                try:
                    kind, data = await asyncio.wait_for(queue.get(), timeout=interval)
                except asyncio.TimeoutError:
                    yield _heartbeat()
                    continue

                if kind == "message":
                    try:
                        yield format_event(json.loads(data.message))
                    except json.JSONDecodeError as e:
                        logger.warning(f"[SSE] Invalid JSON on {data.channel}: {e}")
                elif kind == "error":
                    logger.error(f"[SSE] Subscriber error: {data}")
                    break
                else:
                    open_readers -= 1
        finally:
            for task in readers:
                task.cancel()
            await asyncio.gather(*readers, return_exceptions=True)
            logger.info(f"[SSE] Stream closed for {subscribed}")
