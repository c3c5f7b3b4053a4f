# backend/studiohub/models/__init__.py
"""
Database models for the studiohub reservation backend.

Importing this package registers every table on ``Base.metadata``.
"""

from .add_on import AddOn
from .cart import CartItem
from .item import Item
from .item_availability import ItemAvailability
from .reservation import Reservation, ReservationStatus
from .studio import Studio

__all__ = [
    "AddOn",
    "CartItem",
    "Item",
    "ItemAvailability",
    "Reservation",
    "ReservationStatus",
    "Studio",
]
