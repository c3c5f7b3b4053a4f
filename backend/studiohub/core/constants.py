"""Application-wide constants for the studiohub reservation backend."""

from __future__ import annotations

BRAND_NAME = "StudioHub"

# Hourly slot labels a studio offers when it has no configured hours
DEFAULT_HOURS: tuple[str, ...] = tuple(f"{hour:02d}:00" for hour in range(24))

# Pending holds keep their slots for this long before the sweep releases them
RESERVATION_HOLD_MINUTES = 15

# Housekeeping: expired reservations older than this are deleted
EXPIRED_RESERVATION_RETENTION_DAYS = 30

# Add-on price unit that scales with the number of booked hours
ADD_ON_PER_HOUR = "hour"

WEEKDAY_NAMES: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

SSE_PATH_PREFIX = "/api/v1/events/stream"
