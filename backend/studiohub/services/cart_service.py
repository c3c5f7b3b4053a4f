# backend/studiohub/services/cart_service.py
"""
Cart Service.

A cart holds pointers to a user's pending reservations. Pointers are
pruned by ReservationService whenever a reservation leaves pending
without being confirmed.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import ConflictException, ForbiddenException, NotFoundException
from ..models.cart import CartItem
from ..repositories.cart_repository import CartRepository
from .base import BaseService
from .reservation_service import ReservationService


class CartService(BaseService):
    def __init__(
        self,
        db: Session,
        reservation_service: Optional[ReservationService] = None,
        cart_repository: Optional[CartRepository] = None,
    ):
        super().__init__(db)
        self.reservation_service = reservation_service or ReservationService(db)
        self.cart_repository = cart_repository or self.reservation_service.cart_repository

    def get_cart(self, user_id: str) -> List[CartItem]:
        return self.cart_repository.get_for_user(user_id)

    @BaseService.measure_operation("add_to_cart")
    def add_to_cart(self, user_id: str, reservation_id: str) -> CartItem:
        # get_reservation expires a lapsed hold before we look at its status
        reservation = self.reservation_service.get_reservation(reservation_id)
        if reservation.customer_id != user_id:
            raise ForbiddenException(
                "Reservation belongs to another customer", code="CART_FORBIDDEN"
            )
        if not reservation.is_pending:
            raise ConflictException(
                f"Only pending reservations can be added to a cart (status: {reservation.status})",
                code="CART_RESERVATION_NOT_PENDING",
            )

        existing = self.cart_repository.find_entry(user_id, reservation.id)
        if existing is not None:
            return existing

        with self.transaction():
            entry = self.cart_repository.create(
                user_id=user_id,
                reservation_id=reservation.id,
                item_id=reservation.item_id,
                booking_date=reservation.booking_date,
            )
        self.logger.info(f"[CART] Reservation {reservation.id} added to cart of {user_id}")
        return entry

    def remove_from_cart(self, user_id: str, reservation_id: str) -> None:
        with self.transaction():
            removed = self.cart_repository.remove(user_id, reservation_id)
        if not removed:
            raise NotFoundException("Cart item not found", code="CART_ITEM_NOT_FOUND")

    def remove_by_reservation_ids(self, reservation_ids: List[str]) -> int:
        with self.transaction():
            return self.cart_repository.delete_by_reservation_ids(reservation_ids)
