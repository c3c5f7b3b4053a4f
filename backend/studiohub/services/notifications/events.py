"""
Reservation event type definitions and builders.

All events follow this structure:
{
    "type": str,           # Event type identifier
    "schema_version": int, # Schema version (currently 1)
    "timestamp": str,      # ISO 8601 timestamp
    "payload": dict        # Event-specific data
}
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class EventType(str, Enum):
    """Valid reservation event types."""

    AVAILABILITY_UPDATED = "availability_updated"
    RESERVATION_UPDATED = "reservation_updated"
    RESERVATION_EXPIRED = "reservation_expired"


# Current schema version - increment when payload structure changes
SCHEMA_VERSION = 1


def build_event(event_type: EventType, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build a properly structured event.

    Args:
        event_type: The type of event
        payload: Event-specific payload data

    Returns:
        Complete event dict ready for publishing
    """
    return {
        "type": event_type.value,
        "schema_version": SCHEMA_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "payload": payload,
    }


def build_availability_updated_event(item_id: str, booking_date: Optional[str] = None) -> Dict[str, Any]:
    return build_event(
        EventType.AVAILABILITY_UPDATED,
        {"item_id": item_id, "booking_date": booking_date},
    )


def build_reservation_updated_event(
    reservation_ids: List[str], status: Optional[str] = None
) -> Dict[str, Any]:
    return build_event(
        EventType.RESERVATION_UPDATED,
        {"reservation_ids": list(reservation_ids), "status": status},
    )


def build_reservation_expired_event(
    reservation_id: str,
    item_id: str,
    booking_date: Optional[str],
    time_slots: List[str],
) -> Dict[str, Any]:
    return build_event(
        EventType.RESERVATION_EXPIRED,
        {
            "reservation_id": reservation_id,
            "item_id": item_id,
            "booking_date": booking_date,
            "time_slots": list(time_slots),
        },
    )
