# backend/studiohub/schemas/cart.py
from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from .base import StandardizedModel, StrictRequestModel


class CartAdd(StrictRequestModel):
    reservation_id: str = Field(..., min_length=1, max_length=26)


class CartItemResponse(StandardizedModel):
    id: str
    reservation_id: str
    item_id: str
    booking_date: date
    created_at: Optional[datetime] = None


class CartResponse(StandardizedModel):
    user_id: str
    items: List[CartItemResponse]
