# backend/studiohub/repositories/reservation_repository.py
"""
Reservation Repository.

Status transitions that release slots go through conditional updates
(``... WHERE status IN (...)``) so two concurrent actors can never both
win the same transition and release the same slots twice.
"""

from datetime import date, datetime, timezone
import logging
from typing import Any, Iterable, List, Optional

from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.reservation import Reservation, ReservationStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ReservationRepository(BaseRepository[Reservation]):
    def __init__(self, db: Session):
        super().__init__(db, Reservation)

    def get_for_update(self, reservation_id: str) -> Optional[Reservation]:
        """Load and row-lock a reservation for a status transition."""
        try:
            return (
                self.db.query(Reservation)
                .filter(Reservation.id == reservation_id)
                .populate_existing()
                .with_for_update()
                .one_or_none()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking reservation {reservation_id}: {str(e)}")
            raise RepositoryException(f"Failed to load reservation: {str(e)}") from e

    def list_reservations(
        self,
        *,
        customer_id: Optional[str] = None,
        item_id: Optional[str] = None,
        studio_id: Optional[str] = None,
        status: Optional[str] = None,
        booking_date: Optional[date] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Reservation]:
        query = self.db.query(Reservation)
        if customer_id:
            query = query.filter(Reservation.customer_id == customer_id)
        if item_id:
            query = query.filter(Reservation.item_id == item_id)
        if studio_id:
            query = query.filter(Reservation.studio_id == studio_id)
        if status:
            query = query.filter(Reservation.status == status)
        if booking_date:
            query = query.filter(Reservation.booking_date == booking_date)
        return (
            query.order_by(Reservation.created_at.desc(), Reservation.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def find_expired_pending(self, now: datetime, limit: Optional[int] = None) -> List[Reservation]:
        """
        Pending reservations whose hold deadline has passed.

        Rows already locked by another sweeper are skipped.
        """
        try:
            query = (
                self.db.query(Reservation)
                .filter(
                    Reservation.status == ReservationStatus.PENDING.value,
                    Reservation.expiration.isnot(None),
                    Reservation.expiration < now,
                )
                .order_by(Reservation.expiration)
                .populate_existing()
                .with_for_update(skip_locked=True)
            )
            if limit:
                query = query.limit(limit)
            return query.all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error querying expired reservations: {str(e)}")
            raise RepositoryException(f"Failed to query expired reservations: {str(e)}") from e

    def transition_status(
        self,
        reservation_id: str,
        from_statuses: Iterable[str],
        to_status: str,
        **values: Any,
    ) -> bool:
        """Set ``to_status`` only when the row is still in one of ``from_statuses``."""
        try:
            result = self.db.execute(
                update(Reservation)
                .where(
                    Reservation.id == reservation_id,
                    Reservation.status.in_(list(from_statuses)),
                )
                .values(status=to_status, updated_at=datetime.now(timezone.utc), **values)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating reservation {reservation_id}: {str(e)}")
            raise RepositoryException(f"Failed to update reservation: {str(e)}") from e
        return bool(result.rowcount == 1)

    def mark_expired(self, reservation_ids: Iterable[str]) -> int:
        """Bulk-expire reservations that are still pending."""
        ids = list(dict.fromkeys(reservation_ids))
        if not ids:
            return 0
        try:
            result = self.db.execute(
                update(Reservation)
                .where(
                    Reservation.id.in_(ids),
                    Reservation.status == ReservationStatus.PENDING.value,
                )
                .values(
                    status=ReservationStatus.EXPIRED.value,
                    updated_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error expiring reservations {ids}: {str(e)}")
            raise RepositoryException(f"Failed to expire reservations: {str(e)}") from e
        return int(result.rowcount or 0)

    def delete_expired_before(self, cutoff: datetime) -> int:
        try:
            result = self.db.execute(
                delete(Reservation)
                .where(
                    Reservation.status == ReservationStatus.EXPIRED.value,
                    Reservation.expiration < cutoff,
                )
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting expired reservations: {str(e)}")
            raise RepositoryException(f"Failed to delete expired reservations: {str(e)}") from e
        return int(result.rowcount or 0)
