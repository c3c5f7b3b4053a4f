# backend/studiohub/repositories/cart_repository.py
from typing import Iterable, List, Optional

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.cart import CartItem
from .base_repository import BaseRepository


class CartRepository(BaseRepository[CartItem]):
    def __init__(self, db: Session):
        super().__init__(db, CartItem)

    def get_for_user(self, user_id: str) -> List[CartItem]:
        return (
            self.db.query(CartItem)
            .filter(CartItem.user_id == user_id)
            .order_by(CartItem.created_at)
            .all()
        )

    def find_entry(self, user_id: str, reservation_id: str) -> Optional[CartItem]:
        return (
            self.db.query(CartItem)
            .filter(CartItem.user_id == user_id, CartItem.reservation_id == reservation_id)
            .one_or_none()
        )

    def remove(self, user_id: str, reservation_id: str) -> bool:
        entry = self.find_entry(user_id, reservation_id)
        if entry is None:
            return False
        self.db.delete(entry)
        self.db.flush()
        return True

    def delete_by_reservation_ids(self, reservation_ids: Iterable[str]) -> int:
        """Drop every cart pointer to the given reservations, across all users."""
        ids = list(dict.fromkeys(reservation_ids))
        if not ids:
            return 0
        try:
            result = self.db.execute(
                delete(CartItem)
                .where(CartItem.reservation_id.in_(ids))
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error pruning cart entries for {ids}: {str(e)}")
            raise RepositoryException(f"Failed to prune cart entries: {str(e)}") from e
        return int(result.rowcount or 0)
