# backend/studiohub/schemas/reservation.py
"""Reservation request and response schemas."""

import datetime as dt
from datetime import date, datetime
import re
from typing import Any, List, Optional

from pydantic import Field, field_validator, model_validator

from ..models.reservation import as_utc
from ..utils.time_slots import generate_time_slots
from .base import Money, StandardizedModel, StrictRequestModel

SLOT_REGEX = re.compile(r"^([01]\d|2[0-3]):00$")


def _check_slots(value: List[str]) -> List[str]:
    cleaned = [slot.strip() for slot in value]
    invalid = [slot for slot in cleaned if not SLOT_REGEX.fullmatch(slot)]
    if invalid:
        raise ValueError(f"time slots must be HH:00 hour labels, got {invalid}")
    if len(set(cleaned)) != len(cleaned):
        raise ValueError("time slots must be unique")
    return cleaned


class ReservationCreate(StrictRequestModel):
    """Create a hold on one or more hourly slots of an item."""

    studio_id: Optional[str] = Field(default=None, max_length=26)
    item_id: str = Field(..., min_length=1, max_length=26)
    customer_id: Optional[str] = Field(default=None, max_length=26)
    booking_date: date
    time_slots: List[str] = Field(..., min_length=1, max_length=24)
    add_on_ids: List[str] = Field(default_factory=list)
    customer_name: Optional[str] = Field(default=None, max_length=200)
    customer_phone: Optional[str] = Field(default=None, max_length=50)
    comment: Optional[str] = Field(default=None, max_length=2000)
    # Alternative to time_slots: consecutive hours from start_time
    start_time: Optional[str] = Field(default=None, pattern=r"^\d{1,2}:\d{2}$")
    duration_hours: Optional[int] = Field(default=None, ge=1, le=24)

    @model_validator(mode="before")
    @classmethod
    def _expand_start_time(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("start_time") is None:
            return data
        if data.get("time_slots"):
            raise ValueError("Provide either time_slots or start_time, not both")
        hours = data.get("duration_hours") or 1
        return {**data, "time_slots": generate_time_slots(str(data["start_time"]), int(hours))}

    @field_validator("time_slots")
    @classmethod
    def _validate_slots(cls, value: List[str]) -> List[str]:
        return _check_slots(value)


class ReservationUpdate(StrictRequestModel):
    customer_name: Optional[str] = Field(default=None, max_length=200)
    customer_phone: Optional[str] = Field(default=None, max_length=50)
    comment: Optional[str] = Field(default=None, max_length=2000)
    add_on_ids: Optional[List[str]] = None


class RescheduleRequest(StrictRequestModel):
    new_date: date
    new_time_slots: List[str] = Field(..., min_length=1, max_length=24)

    @field_validator("new_time_slots")
    @classmethod
    def _validate_slots(cls, value: List[str]) -> List[str]:
        return _check_slots(value)


class ReservationResponse(StandardizedModel):
    id: str
    item_id: str
    studio_id: str
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    comment: Optional[str] = None
    booking_date: date
    time_slots: List[str]
    status: str
    expiration: Optional[datetime] = None
    item_price: Money
    total_price: Money
    add_on_ids: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("expiration", "created_at", "updated_at", mode="before")
    @classmethod
    def _normalize_utc(cls, value: object) -> object:
        return as_utc(value) if isinstance(value, datetime) else value


class RescheduleDay(StandardizedModel):
    date: dt.date
    time_slots: List[str]
    is_fully_available: bool


class RescheduleAvailabilityResponse(StandardizedModel):
    reservation_id: str
    original_slot_count: int
    slots: List[RescheduleDay]


class RescheduleCheckResponse(StandardizedModel):
    available: bool
    conflicting_slots: List[str]
