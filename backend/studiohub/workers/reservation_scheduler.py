# backend/studiohub/workers/reservation_scheduler.py
"""
Background scheduler for reservation housekeeping.

Two independent loops run in dedicated threads:
- expiry sweep every ``expiry_sweep_interval_seconds`` (default 60s)
- cleanup of old expired reservations once a day at ``cleanup_hour_utc``

The scheduler is built and started by the application lifespan and
stopped on shutdown. A job that is still running when its next tick comes
around is skipped for that tick; an exception in one tick is logged and
the loop keeps going.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
import threading
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..database import SessionLocal
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..services.notifications.change_notifier import ChangeNotifier
from ..services.reservation_service import ReservationService

logger = logging.getLogger(__name__)


def next_daily_run(now: datetime, hour: int) -> datetime:
    """Next occurrence of ``hour``:00 UTC strictly after ``now``."""
    reference = now.astimezone(timezone.utc) if now.tzinfo else now.replace(tzinfo=timezone.utc)
    next_run = reference.replace(hour=hour, minute=0, second=0, microsecond=0)
    if next_run <= reference:
        next_run += timedelta(days=1)
    return next_run


class ReservationScheduler:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        notifier: Optional[ChangeNotifier] = None,
        *,
        sweep_interval_seconds: Optional[float] = None,
        cleanup_hour: Optional[int] = None,
        retention_days: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._session_factory = session_factory
        self._notifier = notifier or ChangeNotifier()
        self.sweep_interval = float(
            sweep_interval_seconds
            if sweep_interval_seconds is not None
            else settings.expiry_sweep_interval_seconds
        )
        self.cleanup_hour = cleanup_hour if cleanup_hour is not None else settings.cleanup_hour_utc
        self.retention_days = (
            retention_days if retention_days is not None else settings.cleanup_retention_days
        )
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._stop_event = threading.Event()
        self._sweep_lock = threading.Lock()
        self._cleanup_lock = threading.Lock()
        self._threads: List[threading.Thread] = []

    @property
    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def start(self) -> None:
        if self.is_running:
            logger.warning("[SCHEDULER] Already running")
            return
        self._stop_event.clear()
        self._threads = [
            threading.Thread(target=self._expiry_loop, name="reservation-expiry", daemon=True),
            threading.Thread(target=self._cleanup_loop, name="reservation-cleanup", daemon=True),
        ]
        for thread in self._threads:
            thread.start()
        logger.info(
            f"[SCHEDULER] Started: expiry every {self.sweep_interval:g}s, "
            f"cleanup daily at {self.cleanup_hour:02d}:00 UTC"
        )

    def stop(self, timeout: float = 10.0) -> None:
        self._stop_event.set()
        for thread in self._threads:
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"[SCHEDULER] Thread {thread.name} did not stop within {timeout}s")
        self._threads = []
        logger.info("[SCHEDULER] Stopped")

    def _service(self, db: Session) -> ReservationService:
        return ReservationService(db, notifier=self._notifier, clock=self._clock)

    def run_expiry_sweep(self) -> Optional[int]:
        """One expiry tick. Returns the expired count, or None if skipped or failed."""
        if not self._sweep_lock.acquire(blocking=False):
            logger.info("[SCHEDULER] Previous expiry sweep still running, skipping tick")
            prometheus_metrics.record_scheduler_run("expiry", "skipped")
            return None
        try:
            db = self._session_factory()
            try:
                expired = self._service(db).expire_pending_reservations()
            finally:
                db.close()
            prometheus_metrics.record_scheduler_run("expiry", "success")
            if expired:
                logger.info(f"[SCHEDULER] Expiry sweep expired {expired} reservation(s)")
            return expired
        except Exception as e:
            logger.error(f"[SCHEDULER] Expiry sweep failed: {e}", exc_info=True)
            prometheus_metrics.record_scheduler_run("expiry", "error")
            return None
        finally:
            self._sweep_lock.release()

    def run_cleanup(self) -> Optional[int]:
        """One cleanup run. Returns the deleted count, or None if skipped or failed."""
        if not self._cleanup_lock.acquire(blocking=False):
            prometheus_metrics.record_scheduler_run("cleanup", "skipped")
            return None
        try:
            db = self._session_factory()
            try:
                deleted = self._service(db).cleanup_old_expired_reservations(self.retention_days)
            finally:
                db.close()
            prometheus_metrics.record_scheduler_run("cleanup", "success")
            return deleted
        except Exception as e:
            logger.error(f"[SCHEDULER] Cleanup failed: {e}", exc_info=True)
            prometheus_metrics.record_scheduler_run("cleanup", "error")
            return None
        finally:
            self._cleanup_lock.release()

    def _expiry_loop(self) -> None:
        while not self._stop_event.wait(self.sweep_interval):
            self.run_expiry_sweep()

    def _cleanup_loop(self) -> None:
        while not self._stop_event.is_set():
            now = self._clock()
            delay = (next_daily_run(now, self.cleanup_hour) - now).total_seconds()
            if self._stop_event.wait(max(delay, 1.0)):
                break
            self.run_cleanup()
