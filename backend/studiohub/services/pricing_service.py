# backend/studiohub/services/pricing_service.py
"""
Reservation pricing.

total = item price x booked slots + add-ons, where hourly add-ons are
multiplied by the number of booked slots and every other add-on is
charged once.
"""

from decimal import Decimal
from typing import Any, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.constants import ADD_ON_PER_HOUR
from ..core.exceptions import RepositoryException
from ..repositories.item_repository import AddOnRepository
from .base import BaseService


def _money(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value or 0))


def calculate_total_price(item_price: Any, slot_count: int, add_ons: Iterable[Any] = ()) -> Decimal:
    """Pure price computation over loaded add-ons (anything with ``price`` and ``price_per``)."""
    hours = max(0, int(slot_count))
    total = _money(item_price) * hours
    for add_on in add_ons:
        price = _money(getattr(add_on, "price", 0))
        per = (getattr(add_on, "price_per", "") or "").lower()
        total += price * hours if per == ADD_ON_PER_HOUR else price
    return total


class PricingService(BaseService):
    def __init__(self, db: Session, add_on_repository: Optional[AddOnRepository] = None):
        super().__init__(db)
        self.add_on_repository = add_on_repository or AddOnRepository(db)

    def calculate_reservation_price(
        self,
        item_price: Any,
        time_slots: Sequence[str],
        add_on_ids: Optional[List[str]] = None,
    ) -> Decimal:
        """
        Price a reservation.

        Unknown or inactive add-on ids are ignored. If the add-on lookup
        itself fails, the base price (item price x slots) is returned.
        """
        slot_count = len(time_slots)
        if not add_on_ids:
            return calculate_total_price(item_price, slot_count)

        try:
            add_ons = self.add_on_repository.get_active_by_ids(list(add_on_ids))
        except RepositoryException as e:
            self.logger.error(f"[PRICING] Add-on lookup failed, using base price: {e}")
            return calculate_total_price(item_price, slot_count)

        return calculate_total_price(item_price, slot_count, add_ons)
