# backend/studiohub/services/reservation_service.py
"""
Reservation Service.

The only writer of reservation status and of the availability changes a
reservation implies. Each transition commits the status change together
with its slot acquisition or release; change events are published only
after that commit succeeds.

Transitions:
- create: slots acquired, reservation stored as pending (15 min hold), or
  confirmed straight away for instant-book items
- confirm: pending -> confirmed, slots stay consumed
- cancel / reject: slots released, cart pointers pruned
- expire (sweep, lazy read, late confirm/update): slots released, cart
  pointers pruned
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
import logging
import re
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, cast

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import (
    ForbiddenException,
    InvalidReservationStateException,
    NotFoundException,
    ReservationExpiredException,
    ValidationException,
)
from ..models.reservation import SLOT_HOLDING_STATUSES, Reservation, ReservationStatus, as_utc
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.cart_repository import CartRepository
from ..repositories.item_repository import ItemRepository
from ..repositories.reservation_repository import ReservationRepository
from ..repositories.studio_repository import StudioRepository
from ..utils.time_slots import is_operating_day
from .availability_service import AvailabilityService
from .base import BaseService
from .notifications.change_notifier import ChangeNotifier
from .pricing_service import PricingService

logger = logging.getLogger(__name__)

SLOT_LABEL_PATTERN = re.compile(r"^([01]\d|2[0-3]):00$")

ReleasedSlots = Tuple[str, date]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReservationService(BaseService):
    def __init__(
        self,
        db: Session,
        notifier: Optional[ChangeNotifier] = None,
        availability_service: Optional[AvailabilityService] = None,
        pricing_service: Optional[PricingService] = None,
        reservation_repository: Optional[ReservationRepository] = None,
        cart_repository: Optional[CartRepository] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(db)
        self.notifier = notifier or ChangeNotifier()
        self.availability_service = availability_service or AvailabilityService(db)
        self.pricing_service = pricing_service or PricingService(db)
        self.reservation_repository = reservation_repository or ReservationRepository(db)
        self.cart_repository = cart_repository or CartRepository(db)
        self.item_repository: ItemRepository = self.availability_service.item_repository
        self.studio_repository: StudioRepository = self.availability_service.studio_repository
        self.hold_duration = timedelta(minutes=settings.reservation_hold_minutes)
        self._clock = clock or _utc_now

    def now(self) -> datetime:
        return self._clock()

    def today(self) -> date:
        """
        Current calendar date in UTC.

        Studios carry no timezone, so "past date" checks use the UTC day:
        near midnight a studio away from UTC can see its own today refused
        or its yesterday accepted until a per-studio timezone exists.
        """
        return cast(datetime, as_utc(self.now())).date()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_reservation(self, reservation_id: str) -> Reservation:
        """Fetch a reservation, expiring it first if its hold has lapsed."""
        reservation = self.reservation_repository.get_by_id(reservation_id)
        if reservation is None:
            raise NotFoundException(
                f"Reservation {reservation_id} not found", code="RESERVATION_NOT_FOUND"
            )
        if reservation.is_hold_expired(self.now()):
            with self.transaction():
                locked = self.lock_reservation(reservation_id)
                released = self._expire_locked(locked) if locked.is_hold_expired(self.now()) else None
            self.db.refresh(reservation)
            if released is not None:
                self.publish_changes([reservation], released, ReservationStatus.EXPIRED.value)
        return reservation

    def list_reservations(
        self,
        *,
        customer_id: Optional[str] = None,
        item_id: Optional[str] = None,
        studio_id: Optional[str] = None,
        status: Optional[str] = None,
        booking_date: Optional[date] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Reservation]:
        return self.reservation_repository.list_reservations(
            customer_id=customer_id,
            item_id=item_id,
            studio_id=studio_id,
            status=status,
            booking_date=booking_date,
            limit=limit,
            offset=offset,
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def validate_slots(self, time_slots: Sequence[str]) -> List[str]:
        slots = [str(slot).strip() for slot in time_slots or []]
        if not slots:
            raise ValidationException("At least one time slot is required", code="NO_TIME_SLOTS")
        malformed = [slot for slot in slots if not SLOT_LABEL_PATTERN.match(slot)]
        if malformed:
            raise ValidationException(
                "Time slots must be hour labels between 00:00 and 23:00",
                code="INVALID_TIME_SLOT",
                details={"invalid_slots": malformed},
            )
        if len(set(slots)) != len(slots):
            raise ValidationException("Duplicate time slots requested", code="DUPLICATE_TIME_SLOT")
        return sorted(slots)

    @BaseService.measure_operation("create_reservation")
    def create_reservation(
        self,
        *,
        item_id: str,
        booking_date: date,
        time_slots: Sequence[str],
        studio_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        add_on_ids: Optional[List[str]] = None,
        customer_name: Optional[str] = None,
        customer_phone: Optional[str] = None,
        comment: Optional[str] = None,
    ) -> Reservation:
        """
        Hold slots for a customer (or a guest when customer_id is None).

        All requested slots are taken or none are: if any slot is no longer
        open, SlotUnavailableException is raised and nothing is stored.

        Raises:
            ValidationException: bad slots, past date, inactive item/studio, closed day
            NotFoundException: unknown item or studio
            SlotUnavailableException: a requested slot is held or booked
            ServiceException: storage failure (nothing was written)
        """
        # 1. Validate the request itself
        slots = self.validate_slots(time_slots)
        now = self.now()
        if booking_date < self.today():
            raise ValidationException("Cannot book a date in the past", code="PAST_BOOKING_DATE")

        # 2. Resolve item and studio
        item = self.item_repository.get_by_id(item_id)
        if item is None:
            raise NotFoundException(f"Item {item_id} not found", code="ITEM_NOT_FOUND")
        if studio_id and item.studio_id != studio_id:
            raise ValidationException(
                "Item does not belong to the given studio", code="ITEM_STUDIO_MISMATCH"
            )
        studio = self.studio_repository.get_by_id(item.studio_id)
        if studio is None:
            raise NotFoundException(f"Studio {item.studio_id} not found", code="STUDIO_NOT_FOUND")
        if not item.is_active or not studio.is_active:
            raise ValidationException("This item is not available for booking", code="ITEM_INACTIVE")
        if not is_operating_day(booking_date, studio.operating_days):
            raise ValidationException(
                "The studio is closed on the selected date",
                code="STUDIO_CLOSED",
                details={"booking_date": booking_date.isoformat()},
            )

        # 3. Price and initial status
        unique_add_on_ids = list(dict.fromkeys(add_on_ids or []))
        total_price = self.pricing_service.calculate_reservation_price(
            item.price, slots, unique_add_on_ids
        )
        instant = bool(item.instant_book)
        status = ReservationStatus.CONFIRMED.value if instant else ReservationStatus.PENDING.value
        hours = self.availability_service.get_studio_operating_hours(studio)

        # 4. Acquire slots and store the reservation in one transaction
        with self.transaction():
            self.availability_service.acquire_slots(item.id, booking_date, slots, hours)
            reservation = self.reservation_repository.create(
                item_id=item.id,
                studio_id=studio.id,
                customer_id=customer_id,
                customer_name=customer_name,
                customer_phone=customer_phone,
                comment=comment,
                booking_date=booking_date,
                time_slots=slots,
                status=status,
                expiration=None if instant else now + self.hold_duration,
                item_price=item.price,
                total_price=total_price,
                add_on_ids=unique_add_on_ids,
                created_at=now,
                confirmed_at=now if instant else None,
            )

        # 5. Announce after commit
        self.notifier.emit_availability_update(item.id, booking_date.isoformat())
        self.publish_changes([reservation], [], status)

        self.logger.info(
            f"[RESERVATION] Created {reservation.id} ({status}) for item {item.id} on "
            f"{booking_date} slots={slots} total={total_price}"
        )
        return reservation

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def lock_reservation(self, reservation_id: str) -> Reservation:
        reservation = self.reservation_repository.get_for_update(reservation_id)
        if reservation is None:
            raise NotFoundException(
                f"Reservation {reservation_id} not found", code="RESERVATION_NOT_FOUND"
            )
        return reservation

    def authorize_actor(
        self, reservation: Reservation, actor_id: Optional[str], allow_customer: bool = True
    ) -> None:
        """Customer or studio owner may act; actor None is the system itself."""
        if actor_id is None:
            return
        if allow_customer and reservation.customer_id and reservation.customer_id == actor_id:
            return
        if self.studio_repository.get_owner_id(reservation.studio_id) == actor_id:
            return
        raise ForbiddenException(
            "Not authorized to modify this reservation",
            code="RESERVATION_FORBIDDEN",
            details={"reservation_id": reservation.id},
        )

    def _release_and_prune(self, reservation: Reservation) -> List[ReleasedSlots]:
        released = self.availability_service.release_slots(reservation)
        self.cart_repository.delete_by_reservation_ids([reservation.id])
        return [(reservation.item_id, reservation.booking_date)] if released else []

    def _expire_locked(self, reservation: Reservation) -> Optional[List[ReleasedSlots]]:
        """Expire one locked reservation; None when another actor already moved it."""
        won = self.reservation_repository.transition_status(
            reservation.id,
            [ReservationStatus.PENDING.value],
            ReservationStatus.EXPIRED.value,
        )
        if not won:
            return None
        self.logger.info(f"[EXPIRY] Reservation {reservation.id} expired on access")
        return self._release_and_prune(reservation)

    @BaseService.measure_operation("confirm_reservation")
    def confirm_reservation(self, reservation_id: str, actor_id: Optional[str] = None) -> Reservation:
        """
        Confirm a pending hold.

        A hold past its deadline is expired instead (slots released) and
        ReservationExpiredException is raised.
        """
        hold_expired = False
        released: Optional[List[ReleasedSlots]] = None
        with self.transaction():
            reservation = self.lock_reservation(reservation_id)
            self.authorize_actor(reservation, actor_id)
            if not reservation.is_pending:
                raise InvalidReservationStateException(reservation.id, reservation.status, "confirm")
            now = self.now()
            if reservation.is_hold_expired(now):
                hold_expired = True
                released = self._expire_locked(reservation)
            else:
                self.reservation_repository.transition_status(
                    reservation.id,
                    [ReservationStatus.PENDING.value],
                    ReservationStatus.CONFIRMED.value,
                    confirmed_at=now,
                )
        self.db.refresh(reservation)

        if hold_expired:
            if released is not None:
                self.publish_changes([reservation], released, ReservationStatus.EXPIRED.value)
            raise ReservationExpiredException(reservation.id)

        self.publish_changes([reservation], [], reservation.status)
        self.logger.info(f"[RESERVATION] Confirmed {reservation.id}")
        return reservation

    @BaseService.measure_operation("cancel_reservation")
    def cancel_reservation(self, reservation_id: str, actor_id: Optional[str] = None) -> Reservation:
        """
        Cancel a pending or confirmed reservation and release its slots.

        Already cancelled, rejected or expired reservations are returned as-is.
        """
        released: Optional[List[ReleasedSlots]] = None
        with self.transaction():
            reservation = self.lock_reservation(reservation_id)
            if reservation.is_final:
                return reservation
            self.authorize_actor(reservation, actor_id)
            won = self.reservation_repository.transition_status(
                reservation.id,
                SLOT_HOLDING_STATUSES,
                ReservationStatus.CANCELLED.value,
                cancelled_at=self.now(),
                cancelled_by_id=actor_id,
            )
            if won:
                released = self._release_and_prune(reservation)
        self.db.refresh(reservation)

        if released is not None:
            self.publish_changes([reservation], released, reservation.status)
            self.logger.info(
                f"[RESERVATION] Cancelled {reservation.id} by {actor_id or 'system'}"
            )
        return reservation

    @BaseService.measure_operation("reject_reservation")
    def reject_reservation(self, reservation_id: str, actor_id: Optional[str] = None) -> Reservation:
        """Vendor declines a pending reservation; slots are released."""
        released: Optional[List[ReleasedSlots]] = None
        with self.transaction():
            reservation = self.lock_reservation(reservation_id)
            self.authorize_actor(reservation, actor_id, allow_customer=False)
            if not reservation.is_pending:
                raise InvalidReservationStateException(reservation.id, reservation.status, "reject")
            won = self.reservation_repository.transition_status(
                reservation.id,
                [ReservationStatus.PENDING.value],
                ReservationStatus.REJECTED.value,
            )
            if won:
                released = self._release_and_prune(reservation)
        self.db.refresh(reservation)

        if released is not None:
            self.publish_changes([reservation], released, reservation.status)
            self.logger.info(f"[RESERVATION] Rejected {reservation.id}")
        return reservation

    @BaseService.measure_operation("update_reservation")
    def update_reservation(
        self,
        reservation_id: str,
        actor_id: Optional[str] = None,
        *,
        customer_name: Optional[str] = None,
        customer_phone: Optional[str] = None,
        comment: Optional[str] = None,
        add_on_ids: Optional[List[str]] = None,
    ) -> Reservation:
        """Edit contact details or add-ons; the total is re-priced when add-ons change."""
        hold_expired = False
        released: Optional[List[ReleasedSlots]] = None
        with self.transaction():
            reservation = self.lock_reservation(reservation_id)
            self.authorize_actor(reservation, actor_id)
            if reservation.is_final:
                raise InvalidReservationStateException(reservation.id, reservation.status, "update")
            if reservation.is_hold_expired(self.now()):
                hold_expired = True
                released = self._expire_locked(reservation)
            else:
                if customer_name is not None:
                    reservation.customer_name = customer_name
                if customer_phone is not None:
                    reservation.customer_phone = customer_phone
                if comment is not None:
                    reservation.comment = comment
                if add_on_ids is not None:
                    reservation.add_on_ids = list(dict.fromkeys(add_on_ids))
                    reservation.total_price = self.pricing_service.calculate_reservation_price(
                        reservation.item_price, reservation.time_slots, reservation.add_on_ids
                    )
                self.db.flush()
        self.db.refresh(reservation)

        if hold_expired:
            if released is not None:
                self.publish_changes([reservation], released, ReservationStatus.EXPIRED.value)
            raise ReservationExpiredException(reservation.id)

        self.publish_changes([reservation], [], reservation.status)
        return reservation

    # ------------------------------------------------------------------
    # Scheduled jobs
    # ------------------------------------------------------------------

    @BaseService.measure_operation("expire_pending_reservations")
    def expire_pending_reservations(self, limit: Optional[int] = None) -> int:
        """
        Sweep pending reservations past their deadline.

        Every reservation is released in its own savepoint: one that fails
        is logged and stays pending for the next sweep, the others carry
        on. Successful ones are pruned from carts and marked expired in a
        single update, committed together with their releases.

        Returns:
            Number of reservations transitioned to expired
        """
        now = self.now()
        succeeded: List[Reservation] = []
        released: List[ReleasedSlots] = []
        failed = 0

        with self.transaction():
            candidates = self.reservation_repository.find_expired_pending(now, limit=limit)
            for reservation in candidates:
                try:
                    with self.db.begin_nested():
                        if self.availability_service.release_slots(reservation):
                            released.append((reservation.item_id, reservation.booking_date))
                    succeeded.append(reservation)
                except Exception as e:
                    failed += 1
                    self.logger.error(
                        f"[EXPIRY] Failed to release slots for reservation {reservation.id}, "
                        f"leaving it pending: {e}",
                        exc_info=True,
                    )

            expired_ids = [reservation.id for reservation in succeeded]
            pruned = self.cart_repository.delete_by_reservation_ids(expired_ids)
            expired_count = self.reservation_repository.mark_expired(expired_ids)

        prometheus_metrics.record_expiry_sweep(expired_count, failed)
        if not candidates:
            return 0

        for reservation in succeeded:
            self.db.refresh(reservation)
        self.publish_changes(succeeded, released, ReservationStatus.EXPIRED.value)
        for reservation in succeeded:
            self.notifier.notify_reservation_expired(
                reservation.customer_id,
                reservation.id,
                reservation.item_id,
                reservation.booking_date.isoformat() if reservation.booking_date else None,
                reservation.time_slots or [],
            )

        self.logger.info(
            f"[EXPIRY] Expired {expired_count} reservation(s), pruned {pruned} cart item(s), "
            f"{failed} release failure(s)"
        )
        return expired_count

    @BaseService.measure_operation("cleanup_old_expired_reservations")
    def cleanup_old_expired_reservations(self, retention_days: Optional[int] = None) -> int:
        """Delete expired reservations whose deadline is older than the retention window."""
        days = retention_days if retention_days is not None else settings.cleanup_retention_days
        cutoff = self.now() - timedelta(days=days)
        with self.transaction():
            deleted = self.reservation_repository.delete_expired_before(cutoff)
        self.logger.info(f"[CLEANUP] Deleted {deleted} expired reservation(s) older than {days} days")
        return deleted

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def publish_changes(
        self,
        reservations: Sequence[Reservation],
        released: Iterable[ReleasedSlots],
        status: Optional[str],
    ) -> None:
        for item_id, day in dict.fromkeys(released):
            self.notifier.emit_availability_update(item_id, day.isoformat())

        owners: Dict[str, Optional[str]] = {}
        by_user: Dict[str, List[str]] = {}
        for reservation in reservations:
            studio_id = reservation.studio_id
            if studio_id not in owners:
                owners[studio_id] = self.studio_repository.get_owner_id(studio_id)
            for user_id in (reservation.customer_id, owners[studio_id]):
                if user_id:
                    by_user.setdefault(user_id, []).append(reservation.id)

        for user_id, reservation_ids in by_user.items():
            self.notifier.emit_reservation_update(reservation_ids, user_id, status)
