"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import cart, events, items, reservations

__all__ = ["cart", "events", "items", "reservations"]
