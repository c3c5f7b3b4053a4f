# backend/studiohub/services/reschedule_service.py
"""
Reschedule Service.

Moves a pending or confirmed reservation to another date and/or set of
slots. The old slots are released and the new ones acquired in the same
transaction, so a failed acquisition leaves the original booking intact.
"""

from __future__ import annotations

from datetime import date, timedelta
import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import InvalidReservationStateException, NotFoundException, ValidationException
from ..models.reservation import Reservation
from ..utils.time_slots import (
    find_or_create_date_availability,
    initialize_availability,
    is_operating_day,
    missing_slots,
)
from .base import BaseService
from .reservation_service import ReservationService

logger = logging.getLogger(__name__)


class RescheduleService(BaseService):
    def __init__(self, db: Session, reservation_service: Optional[ReservationService] = None):
        super().__init__(db)
        self.reservation_service = reservation_service or ReservationService(db)
        self.availability_service = self.reservation_service.availability_service
        self.reservation_repository = self.reservation_service.reservation_repository

    def _get(self, reservation_id: str) -> Reservation:
        return self.reservation_service.get_reservation(reservation_id)

    @BaseService.measure_operation("get_available_slots_for_reschedule")
    def get_available_slots_for_reschedule(
        self, reservation_id: str, days_ahead: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Open slots for the reservation's item over the coming days.

        The reservation's own date is skipped; dates the studio is closed
        or that have nothing open are left out. Stored rows for the window
        are read in one query; dates without a row are seeded from the
        studio's hours without being written.
        """
        reservation = self._get(reservation_id)
        item = self.availability_service.item_repository.get_by_id(reservation.item_id)
        if item is None:
            raise NotFoundException(f"Item {reservation.item_id} not found", code="ITEM_NOT_FOUND")
        studio = self.availability_service.studio_repository.get_by_id(item.studio_id)
        hours = self.availability_service.get_studio_operating_hours(studio)
        operating_days = studio.operating_days if studio else None

        original_slot_count = len(reservation.time_slots or []) or 1
        today = self.reservation_service.today()
        span = days_ahead if days_ahead is not None else settings.reschedule_days_ahead

        availability = initialize_availability(
            self.availability_service.availability_repository.list_for_item(
                item.id, today, today + timedelta(days=max(0, span - 1))
            )
        )

        slots: List[Dict[str, Any]] = []
        for offset in range(max(0, span)):
            day = today + timedelta(days=offset)
            if day == reservation.booking_date or not is_operating_day(day, operating_days):
                continue
            availability, entry = find_or_create_date_availability(availability, day, hours)
            times = sorted(entry.times)
            if not times:
                continue
            slots.append(
                {
                    "date": day.isoformat(),
                    "time_slots": times,
                    "is_fully_available": len(times) >= original_slot_count,
                }
            )

        return {
            "reservation_id": reservation.id,
            "original_slot_count": original_slot_count,
            "slots": slots,
        }

    def check_reschedule_availability(
        self, reservation_id: str, new_date: date, new_time_slots: Sequence[str]
    ) -> Dict[str, Any]:
        """
        Whether the reservation could move to ``new_date``/``new_time_slots``.

        On the same date the reservation's current slots count as free,
        since they would be released by the move.
        """
        reservation = self._get(reservation_id)
        item = self.availability_service.item_repository.get_by_id(reservation.item_id)
        if item is None:
            raise NotFoundException(f"Item {reservation.item_id} not found", code="ITEM_NOT_FOUND")

        requested = list(new_time_slots)
        if new_date == reservation.booking_date:
            own = set(reservation.time_slots or [])
            requested = [slot for slot in requested if slot not in own]
        conflicting = missing_slots(requested, self.availability_service.open_slots(item, new_date))
        return {"available": not conflicting, "conflicting_slots": conflicting}

    @BaseService.measure_operation("reschedule_reservation")
    def reschedule_reservation(
        self,
        reservation_id: str,
        new_date: date,
        new_time_slots: Sequence[str],
        actor_id: Optional[str] = None,
    ) -> Reservation:
        """
        Move a reservation; the total is re-priced when the slot count changes.

        Raises:
            InvalidReservationStateException: reservation is not pending/confirmed
            ForbiddenException: actor is neither the customer nor the studio owner
            ValidationException: past date, closed day or malformed slots
            SlotUnavailableException: a new slot is taken (the original is kept)
        """
        service = self.reservation_service
        slots = service.validate_slots(new_time_slots)
        if new_date < service.today():
            raise ValidationException("Cannot reschedule to a past date", code="PAST_BOOKING_DATE")

        with self.transaction():
            reservation = service.lock_reservation(reservation_id)
            if not reservation.holds_slots or reservation.is_hold_expired(service.now()):
                raise InvalidReservationStateException(
                    reservation.id,
                    "expired" if reservation.is_pending else reservation.status,
                    "reschedule",
                )
            service.authorize_actor(reservation, actor_id)

            item = self.availability_service.item_repository.get_by_id(reservation.item_id)
            if item is None:
                raise NotFoundException(f"Item {reservation.item_id} not found", code="ITEM_NOT_FOUND")
            studio = self.availability_service.studio_repository.get_by_id(item.studio_id)
            if not is_operating_day(new_date, studio.operating_days if studio else None):
                raise ValidationException(
                    "The studio is closed on the selected date", code="STUDIO_CLOSED"
                )
            hours = self.availability_service.get_studio_operating_hours(studio)

            previous_date = reservation.booking_date
            previous_slots = list(reservation.time_slots or [])

            self.availability_service.restore_slots(item.id, previous_date, previous_slots, hours)
            self.availability_service.acquire_slots(item.id, new_date, slots, hours)

            reservation.booking_date = new_date
            reservation.time_slots = slots
            if len(slots) != len(previous_slots):
                reservation.total_price = service.pricing_service.calculate_reservation_price(
                    reservation.item_price, slots, list(reservation.add_on_ids or [])
                )
            self.db.flush()

        self.db.refresh(reservation)
        service.publish_changes(
            [reservation],
            [(item.id, previous_date), (item.id, new_date)],
            reservation.status,
        )
        self.logger.info(
            f"[RESCHEDULE] Reservation {reservation.id} moved from {previous_date} {previous_slots} "
            f"to {new_date} {slots}"
        )
        return reservation
