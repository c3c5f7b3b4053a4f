# backend/studiohub/models/add_on.py
from sqlalchemy import Boolean, Column, Numeric, String
import ulid

from ..database import Base


class AddOn(Base):
    """Optional extra attached to a reservation (engineer, gear, catering)."""

    __tablename__ = "add_ons"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    item_id = Column(String(26), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    # "hour" scales with the number of booked slots; anything else is charged once
    price_per = Column(String(20), nullable=False, default="session")
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<AddOn {self.id}: {self.name} {self.price}/{self.price_per}>"
