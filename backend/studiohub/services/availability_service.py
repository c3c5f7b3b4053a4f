# backend/studiohub/services/availability_service.py
"""
Availability Service.

Owns every change to an item's open slots. Acquisition removes slots only
if all of them are still open, release adds them back; both are applied
as a versioned compare-and-set on the (item, date) row and retried when a
concurrent writer got there first.

Methods here never commit. They run inside the caller's transaction so a
reservation and the availability change it depends on are committed (or
rolled back) together.
"""

from __future__ import annotations

from datetime import date
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import DEFAULT_HOURS
from ..core.exceptions import NotFoundException, ServiceException, SlotUnavailableException
from ..models.item import Item
from ..models.reservation import Reservation
from ..models.studio import Studio
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.item_availability_repository import ItemAvailabilityRepository
from ..repositories.item_repository import ItemRepository
from ..repositories.studio_repository import StudioRepository
from ..utils.time_slots import (
    add_time_slots,
    are_all_slots_available,
    is_operating_day,
    missing_slots,
    remove_time_slots,
    generate_hours_from_time_ranges,
)
from .base import BaseService

logger = logging.getLogger(__name__)


class AvailabilityService(BaseService):
    def __init__(
        self,
        db: Session,
        availability_repository: Optional[ItemAvailabilityRepository] = None,
        item_repository: Optional[ItemRepository] = None,
        studio_repository: Optional[StudioRepository] = None,
    ):
        super().__init__(db)
        self.availability_repository = availability_repository or ItemAvailabilityRepository(db)
        self.item_repository = item_repository or ItemRepository(db)
        self.studio_repository = studio_repository or StudioRepository(db)
        self.max_attempts = max(1, int(settings.availability_cas_retries))

    def get_studio_operating_hours(self, studio: Optional[Studio]) -> List[str]:
        """Slots a studio opens each day; all 24 hours when unknown or unconfigured."""
        if studio is None:
            return list(DEFAULT_HOURS)
        return generate_hours_from_time_ranges(studio.operating_hours)

    def operating_hours_for_item(self, item: Item) -> List[str]:
        return self.get_studio_operating_hours(self.studio_repository.get_by_id(item.studio_id))

    def _require_item(self, item_id: str) -> Item:
        item = self.item_repository.get_by_id(item_id)
        if item is None:
            raise NotFoundException(f"Item {item_id} not found", code="ITEM_NOT_FOUND")
        return item

    def open_slots(self, item: Item, day: date, hours: Optional[Sequence[str]] = None) -> List[str]:
        """Open slots for a date without creating its row."""
        current = self.availability_repository.read_slots(item.id, day)
        if current is not None:
            return current[0]
        return list(hours) if hours is not None else self.operating_hours_for_item(item)

    @BaseService.measure_operation("get_item_availability")
    def get_item_availability(self, item_id: str, day: date) -> Dict[str, Any]:
        item = self._require_item(item_id)
        studio = self.studio_repository.get_by_id(item.studio_id)
        operating = is_operating_day(day, studio.operating_days if studio else None)
        times = self.open_slots(item, day, self.get_studio_operating_hours(studio)) if operating else []
        return {
            "item_id": item.id,
            "date": day.isoformat(),
            "is_operating_day": operating,
            "times": times,
        }

    @BaseService.measure_operation("check_slots_available")
    def check_slots_available(self, item_id: str, day: date, time_slots: Sequence[str]) -> Dict[str, Any]:
        """Read-only availability check; nothing is held."""
        item = self._require_item(item_id)
        available = self.open_slots(item, day)
        unavailable = missing_slots(time_slots, available)
        return {
            "item_id": item.id,
            "date": day.isoformat(),
            "available": not unavailable and bool(time_slots),
            "unavailable_slots": unavailable,
        }

    def _apply(
        self,
        item_id: str,
        day: date,
        default_hours: Sequence[str],
        change: Callable[[List[str]], List[str]],
        operation: str,
    ) -> List[str]:
        for attempt in range(1, self.max_attempts + 1):
            self.availability_repository.ensure_row(item_id, day, default_hours)
            current = self.availability_repository.read_slots(item_id, day)
            if current is None:
                raise ServiceException(f"Availability row for {item_id} {day} disappeared")
            times, version = current

            updated = change(times)
            if updated == times:
                return times
            if self.availability_repository.compare_and_set(item_id, day, version, updated):
                return updated

            prometheus_metrics.inc_availability_retry(operation)
            self.logger.info(
                f"[AVAILABILITY] Concurrent update on {item_id} {day} during {operation}, "
                f"retrying ({attempt}/{self.max_attempts})"
            )

        if operation == "acquire":
            prometheus_metrics.inc_slot_conflict("contention")
            raise SlotUnavailableException(
                item_id,
                day.isoformat(),
                [],
                message="Time slots are being booked by someone else, please try again",
            )
        raise ServiceException(f"Could not update availability for {item_id} {day}")

    def acquire_slots(
        self,
        item_id: str,
        day: date,
        time_slots: Sequence[str],
        default_hours: Sequence[str],
    ) -> List[str]:
        """
        Remove ``time_slots`` from the date's open slots, all or nothing.

        Raises:
            SlotUnavailableException: if any requested slot is not open
        """
        requested = list(time_slots)

        def _remove(times: List[str]) -> List[str]:
            if not are_all_slots_available(requested, times):
                prometheus_metrics.inc_slot_conflict("unavailable")
                raise SlotUnavailableException(item_id, day.isoformat(), missing_slots(requested, times))
            return remove_time_slots(times, requested)

        return self._apply(item_id, day, default_hours, _remove, "acquire")

    def restore_slots(
        self,
        item_id: str,
        day: date,
        time_slots: Sequence[str],
        default_hours: Sequence[str],
    ) -> List[str]:
        """Union ``time_slots`` back into the date's open slots. Idempotent."""
        released = list(time_slots)
        return self._apply(
            item_id,
            day,
            default_hours,
            lambda times: add_time_slots(times, released),
            "release",
        )

    def release_slots(self, reservation: Reservation) -> bool:
        """
        Return a reservation's slots to its item's availability.

        A missing item is logged and skipped; the caller still transitions
        the reservation. Returns True when availability was written.
        """
        item = self.item_repository.get_by_id(reservation.item_id)
        if item is None:
            self.logger.warning(
                f"[AVAILABILITY] Item {reservation.item_id} for reservation {reservation.id} "
                "not found, nothing to release"
            )
            return False

        self.restore_slots(
            item.id,
            reservation.booking_date,
            list(reservation.time_slots or []),
            self.operating_hours_for_item(item),
        )
        self.logger.info(
            f"[AVAILABILITY] Released {reservation.time_slots} on {reservation.booking_date} "
            f"for item {item.id} (reservation {reservation.id})"
        )
        return True
