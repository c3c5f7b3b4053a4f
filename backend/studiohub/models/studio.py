# backend/studiohub/models/studio.py
"""
Studio model.

A studio is the resource that owns bookable items. Its operating days and
hour ranges decide which slots a date starts out with when an item has no
availability row for that date yet.
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, String
from sqlalchemy.sql import func
import ulid

from ..database import Base


class Studio(Base):
    __tablename__ = "studios"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    name = Column(String(200), nullable=False)
    owner_id = Column(String(26), nullable=True, index=True)

    # Weekday names ("monday"...); empty means open every day
    operating_days = Column(JSON, nullable=False, default=list)
    # [{"start": "09:00", "end": "18:00"}, ...]; empty means all 24 hours
    operating_hours = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<Studio {self.id}: {self.name}>"
