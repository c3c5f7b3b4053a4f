# backend/studiohub/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Services are built per request around the request's database session.
The change notifier is application wide: it is created and bound to the
broadcaster by the lifespan and read from ``app.state``.
"""

import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ...services.availability_service import AvailabilityService
from ...services.cart_service import CartService
from ...services.notifications.change_notifier import ChangeNotifier
from ...services.reservation_service import ReservationService
from ...services.reschedule_service import RescheduleService
from .database import get_db

logger = logging.getLogger(__name__)


def get_change_notifier(request: Request) -> ChangeNotifier:
    notifier = getattr(request.app.state, "change_notifier", None)
    if notifier is None:
        logger.debug("[DEPS] No change notifier on app state, events will be dropped")
        notifier = ChangeNotifier()
        request.app.state.change_notifier = notifier
    return notifier


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def get_reservation_service(
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_change_notifier),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> ReservationService:
    """Get ReservationService instance with proper dependencies."""
    return ReservationService(db, notifier=notifier, availability_service=availability_service)


def get_reschedule_service(
    db: Session = Depends(get_db),
    reservation_service: ReservationService = Depends(get_reservation_service),
) -> RescheduleService:
    return RescheduleService(db, reservation_service=reservation_service)


def get_cart_service(
    db: Session = Depends(get_db),
    reservation_service: ReservationService = Depends(get_reservation_service),
) -> CartService:
    return CartService(db, reservation_service=reservation_service)
