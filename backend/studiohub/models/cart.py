# backend/studiohub/models/cart.py
from sqlalchemy import Column, Date, DateTime, String, UniqueConstraint
from sqlalchemy.sql import func
import ulid

from ..database import Base


class CartItem(Base):
    """Pointer from a user's cart to a pending reservation."""

    __tablename__ = "cart_items"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(26), nullable=False, index=True)
    reservation_id = Column(String(26), nullable=False, index=True)
    item_id = Column(String(26), nullable=False)
    booking_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (UniqueConstraint("user_id", "reservation_id", name="uq_cart_user_reservation"),)

    def __repr__(self) -> str:
        return f"<CartItem {self.id}: user={self.user_id} reservation={self.reservation_id}>"
