# backend/studiohub/models/item.py
"""Bookable studio item (a room, a booth, a piece of rentable equipment)."""

from sqlalchemy import Boolean, Column, DateTime, Numeric, String
from sqlalchemy.sql import func
import ulid

from ..database import Base


class Item(Base):
    __tablename__ = "items"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    studio_id = Column(String(26), nullable=False, index=True)
    name = Column(String(200), nullable=False)

    # Price per booked hour slot
    price = Column(Numeric(10, 2), nullable=False, default=0)
    # Instant-book items skip the pending hold and are confirmed on creation
    instant_book = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<Item {self.id}: {self.name} studio={self.studio_id}>"
