# backend/studiohub/services/notifications/change_notifier.py
"""
Fire-and-forget publishing of availability and reservation changes.

Services run synchronously (request handlers call them through
``asyncio.to_thread``, the scheduler runs in its own thread), while
Broadcaster is asyncio based. The notifier therefore keeps a handle to the
event loop that owns the Broadcaster and hands each publish over to it
without waiting for the result. Delivery is best effort: failures are
logged and never reach the caller, and an unbound notifier drops events.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Iterable, Optional, Set

from broadcaster import Broadcast

from ...core.broadcast import availability_channel, user_channel
from .events import (
    build_availability_updated_event,
    build_reservation_expired_event,
    build_reservation_updated_event,
)

logger = logging.getLogger(__name__)


class ChangeNotifier:
    def __init__(
        self,
        broadcast: Optional[Broadcast] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._broadcast = broadcast
        self._loop = loop
        self._pending: Set["asyncio.Task[None]"] = set()

    def bind(self, broadcast: Broadcast, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Attach a connected Broadcaster and the loop it runs on."""
        self._broadcast = broadcast
        self._loop = loop or asyncio.get_running_loop()
        logger.info("[NOTIFY] Change notifier bound to broadcaster")

    def unbind(self) -> None:
        self._broadcast = None
        self._loop = None

    @property
    def is_bound(self) -> bool:
        return self._broadcast is not None and self._loop is not None and not self._loop.is_closed()

    def emit_availability_update(self, item_id: str, booking_date: Optional[str] = None) -> None:
        self.publish(availability_channel(item_id), build_availability_updated_event(item_id, booking_date))

    def emit_reservation_update(
        self,
        reservation_ids: Iterable[str],
        user_id: Optional[str],
        status: Optional[str] = None,
    ) -> None:
        ids = list(dict.fromkeys(reservation_ids))
        if not user_id or not ids:
            return
        self.publish(user_channel(user_id), build_reservation_updated_event(ids, status))

    def notify_reservation_expired(
        self,
        customer_id: Optional[str],
        reservation_id: str,
        item_id: str,
        booking_date: Optional[str],
        time_slots: Iterable[str],
    ) -> None:
        if not customer_id:
            return
        self.publish(
            user_channel(customer_id),
            build_reservation_expired_event(reservation_id, item_id, booking_date, list(time_slots)),
        )

    def publish(self, channel: str, event: Dict[str, Any]) -> None:
        loop = self._loop
        if loop is None or not self.is_bound:
            logger.debug(f"[NOTIFY] Not bound, dropping {event.get('type')} for {channel}")
            return

        coro = self._publish(channel, json.dumps(event, default=str))
        try:
            running: Optional[asyncio.AbstractEventLoop] = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        try:
            if running is loop:
                task = loop.create_task(coro)
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)
            else:
                asyncio.run_coroutine_threadsafe(coro, loop)
        except RuntimeError as e:
            coro.close()
            logger.warning(f"[NOTIFY] Event loop unavailable, dropping event for {channel}: {e}")

    async def _publish(self, channel: str, message: str) -> None:
        broadcast = self._broadcast
        if broadcast is None:
            return
        try:
            await broadcast.publish(channel=channel, message=message)
            logger.debug(f"[NOTIFY] Published to {channel}")
        except Exception as e:
            logger.error(f"[NOTIFY] Failed to publish to {channel}: {e}")
