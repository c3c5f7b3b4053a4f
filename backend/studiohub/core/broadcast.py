# backend/studiohub/core/broadcast.py
"""
Shared broadcast manager for availability and reservation events.

One Broadcaster instance per worker process. With a redis:// URL the
instance multiplexes every channel subscription over a single PubSub
connection; memory:// keeps everything in-process (development, tests).

Channels:
- item:{item_id}:availability  availability changes for a bookable item
- user:{user_id}               reservation updates for a customer or studio owner
"""
import logging
from typing import Optional

from broadcaster import Broadcast

from .config import settings

logger = logging.getLogger(__name__)

_broadcast: Optional[Broadcast] = None


def availability_channel(item_id: str) -> str:
    return f"item:{item_id}:availability"


def user_channel(user_id: str) -> str:
    return f"user:{user_id}"


def get_broadcast() -> Broadcast:
    """
    Get the shared broadcast instance.

    Raises:
        RuntimeError: If broadcast is not initialized (call connect_broadcast first)
    """
    if _broadcast is None:
        raise RuntimeError("Broadcast not initialized. Call connect_broadcast() during startup.")
    return _broadcast


def is_broadcast_initialized() -> bool:
    return _broadcast is not None


async def connect_broadcast(url: Optional[str] = None) -> Broadcast:
    """
    Connect the shared Broadcaster.

    Call during application startup (in lifespan manager).
    """
    global _broadcast

    broadcast_url = url or settings.broadcast_url or "memory://"
    _broadcast = Broadcast(broadcast_url)
    await _broadcast.connect()
    logger.info("[BROADCAST] Connected: %s", broadcast_url)
    return _broadcast


async def disconnect_broadcast() -> None:
    """
    Disconnect the shared Broadcaster.

    Call during application shutdown.
    """
    global _broadcast

    if _broadcast is not None:
        await _broadcast.disconnect()
        _broadcast = None
        logger.info("[BROADCAST] Disconnected")
