# backend/studiohub/models/item_availability.py
from __future__ import annotations

from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import JSON, Column, Date, DateTime, Integer, String

from studiohub.database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class ItemAvailability(Base):
    """
    Open hourly slots for one item on one date.

    A slot listed in ``times`` is bookable; a missing slot is held or booked.
    ``version`` increments on every write so updates can be applied as a
    compare-and-set against the version that was read.
    """

    __tablename__ = "item_availability"

    item_id = Column(String(26), primary_key=True)
    day_date = Column(Date, primary_key=True)
    times = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_now_utc,
        onupdate=_now_utc,
        server_default=sa.func.now(),
    )

    def __repr__(self) -> str:
        return f"<ItemAvailability {self.item_id} {self.day_date} v{self.version}: {self.times}>"
