# backend/studiohub/repositories/studio_repository.py
from typing import Optional

from sqlalchemy.orm import Session

from ..models.studio import Studio
from .base_repository import BaseRepository


class StudioRepository(BaseRepository[Studio]):
    def __init__(self, db: Session):
        super().__init__(db, Studio)

    def get_owner_id(self, studio_id: Optional[str]) -> Optional[str]:
        if not studio_id:
            return None
        studio = self.get_by_id(studio_id)
        return studio.owner_id if studio else None
