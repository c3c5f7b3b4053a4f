# backend/studiohub/models/reservation.py
"""
Reservation model.

A reservation holds one or more hourly slots of a studio item on a single
date. Creation removes the slots from the item's availability; expiry,
cancellation and rejection return them. Confirmation keeps them consumed.

Lifecycle:
    pending -> confirmed | expired | cancelled | rejected
    confirmed -> cancelled
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, cast

from sqlalchemy import JSON, Column, Date, DateTime, Index, Numeric, String, Text
import ulid

from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round trip)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ReservationStatus(str, Enum):
    """Reservation lifecycle statuses."""

    PENDING = "pending"  # Hold; slots consumed until expiration
    CONFIRMED = "confirmed"  # Approved or paid; slots stay consumed
    EXPIRED = "expired"  # Hold timed out; slots released
    CANCELLED = "cancelled"  # Cancelled by customer or vendor; slots released
    REJECTED = "rejected"  # Declined by vendor; slots released


SLOT_HOLDING_STATUSES = frozenset({ReservationStatus.PENDING.value, ReservationStatus.CONFIRMED.value})
FINAL_STATUSES = frozenset(
    {
        ReservationStatus.EXPIRED.value,
        ReservationStatus.CANCELLED.value,
        ReservationStatus.REJECTED.value,
    }
)


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    # References by id only; consistency is kept by ReservationService
    item_id = Column(String(26), nullable=False, index=True)
    studio_id = Column(String(26), nullable=False, index=True)
    customer_id = Column(String(26), nullable=True, index=True)

    # Guest contact details
    customer_name = Column(String(200), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    comment = Column(Text, nullable=True)

    booking_date = Column(Date, nullable=False)
    time_slots = Column(JSON, nullable=False)

    status = Column(String(20), nullable=False, default=ReservationStatus.PENDING.value, index=True)
    # Hold deadline; only meaningful while pending
    expiration = Column(DateTime(timezone=True), nullable=True)

    item_price = Column(Numeric(10, 2), nullable=False, default=0)
    total_price = Column(Numeric(10, 2), nullable=False, default=0)
    add_on_ids = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_now_utc)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by_id = Column(String(26), nullable=True)

    __table_args__ = (
        Index("ix_reservations_status_expiration", "status", "expiration"),
        Index("ix_reservations_item_date", "item_id", "booking_date"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Reservation {self.id}: item={self.item_id}, date={self.booking_date}, "
            f"slots={self.time_slots}, status={self.status}>"
        )

    @property
    def is_pending(self) -> bool:
        return self.status == ReservationStatus.PENDING.value

    @property
    def holds_slots(self) -> bool:
        """True while the reservation's slots are missing from availability."""
        return self.status in SLOT_HOLDING_STATUSES

    @property
    def is_final(self) -> bool:
        return self.status in FINAL_STATUSES

    def is_hold_expired(self, now: Optional[datetime] = None) -> bool:
        """Pending and past its hold deadline."""
        if not self.is_pending or self.expiration is None:
            return False
        reference = now or _now_utc()
        return cast(datetime, as_utc(self.expiration)) < reference
