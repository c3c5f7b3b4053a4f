# backend/studiohub/api/dependencies/__init__.py
"""
Central export point for all dependencies.
"""

from .auth import get_current_user_id, get_current_user_id_optional
from .database import get_db
from .services import (
    get_availability_service,
    get_cart_service,
    get_change_notifier,
    get_reschedule_service,
    get_reservation_service,
)

__all__ = [
    # Auth
    "get_current_user_id",
    "get_current_user_id_optional",
    # Database
    "get_db",
    # Services
    "get_availability_service",
    "get_cart_service",
    "get_change_notifier",
    "get_reschedule_service",
    "get_reservation_service",
]
