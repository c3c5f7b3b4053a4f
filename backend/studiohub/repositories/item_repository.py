# backend/studiohub/repositories/item_repository.py
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.add_on import AddOn
from ..models.item import Item
from .base_repository import BaseRepository


class ItemRepository(BaseRepository[Item]):
    def __init__(self, db: Session):
        super().__init__(db, Item)


class AddOnRepository(BaseRepository[AddOn]):
    def __init__(self, db: Session):
        super().__init__(db, AddOn)

    def get_active_by_ids(self, ids: List[str]) -> List[AddOn]:
        if not ids:
            return []
        try:
            return (
                self.db.query(AddOn)
                .filter(AddOn.id.in_(ids), AddOn.is_active.is_(True))
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading add-ons {ids}: {str(e)}")
            raise RepositoryException(f"Failed to load add-ons: {str(e)}") from e
