# backend/studiohub/repositories/item_availability_repository.py
"""
Data access for per-date item availability rows.

Writes are versioned: callers read ``(times, version)`` and apply their
change with ``compare_and_set``, which only succeeds when nobody else has
written the row in between. Each write targets a single (item, date) row
so updates for different dates never clobber each other.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.item_availability import ItemAvailability
from ..utils.time_slots import DateAvailability

logger = logging.getLogger(__name__)


class ItemAvailabilityRepository:
    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    def read_slots(self, item_id: str, day: date) -> Optional[Tuple[List[str], int]]:
        """Current ``(times, version)`` straight from the database, bypassing the identity map."""
        try:
            row = self.db.execute(
                select(ItemAvailability.times, ItemAvailability.version).where(
                    ItemAvailability.item_id == item_id,
                    ItemAvailability.day_date == day,
                )
            ).one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error reading availability for {item_id} {day}: {str(e)}")
            raise RepositoryException(f"Failed to read availability: {str(e)}") from e
        if row is None:
            return None
        return list(row.times or []), int(row.version)

    def ensure_row(self, item_id: str, day: date, default_hours: Sequence[str]) -> None:
        """Seed the date with ``default_hours`` unless a row already exists."""
        if self.read_slots(item_id, day) is not None:
            return
        try:
            with self.db.begin_nested():
                self.db.execute(
                    insert(ItemAvailability).values(
                        item_id=item_id,
                        day_date=day,
                        times=list(default_hours),
                        version=1,
                        updated_at=datetime.now(timezone.utc),
                    )
                )
        except IntegrityError:
            # Another writer seeded the same date first; its row wins
            self.logger.debug(f"[AVAILABILITY] Row for {item_id} {day} created concurrently")
        except SQLAlchemyError as e:
            self.logger.error(f"Error seeding availability for {item_id} {day}: {str(e)}")
            raise RepositoryException(f"Failed to seed availability: {str(e)}") from e

    def compare_and_set(
        self, item_id: str, day: date, expected_version: int, times: Sequence[str]
    ) -> bool:
        """Write ``times`` only if the row is still at ``expected_version``."""
        try:
            result = self.db.execute(
                update(ItemAvailability)
                .where(
                    ItemAvailability.item_id == item_id,
                    ItemAvailability.day_date == day,
                    ItemAvailability.version == expected_version,
                )
                .values(
                    times=list(times),
                    version=ItemAvailability.version + 1,
                    updated_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error writing availability for {item_id} {day}: {str(e)}")
            raise RepositoryException(f"Failed to write availability: {str(e)}") from e
        return bool(result.rowcount == 1)

    def list_for_item(
        self,
        item_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[DateAvailability]:
        stmt = select(ItemAvailability.day_date, ItemAvailability.times).where(
            ItemAvailability.item_id == item_id
        )
        if start_date is not None:
            stmt = stmt.where(ItemAvailability.day_date >= start_date)
        if end_date is not None:
            stmt = stmt.where(ItemAvailability.day_date <= end_date)
        try:
            rows = self.db.execute(stmt.order_by(ItemAvailability.day_date)).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing availability for {item_id}: {str(e)}")
            raise RepositoryException(f"Failed to list availability: {str(e)}") from e
        return [
            DateAvailability(date=row.day_date.isoformat(), times=tuple(row.times or []))
            for row in rows
        ]
