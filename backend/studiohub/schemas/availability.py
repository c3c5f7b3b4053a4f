# backend/studiohub/schemas/availability.py
import datetime as dt
from typing import List

from pydantic import Field

from .base import StandardizedModel, StrictRequestModel


class ItemAvailabilityResponse(StandardizedModel):
    item_id: str
    date: dt.date
    is_operating_day: bool
    times: List[str]


class SlotCheckRequest(StrictRequestModel):
    date: dt.date
    time_slots: List[str] = Field(..., min_length=1, max_length=24)


class SlotCheckResponse(StandardizedModel):
    item_id: str
    date: dt.date
    available: bool
    unavailable_slots: List[str]
