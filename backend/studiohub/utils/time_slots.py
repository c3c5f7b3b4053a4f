"""
Slot algebra for hourly availability.

A slot is the zero-padded start hour of a one-hour block ("09:00"). An
item's availability for a date is the list of slots still open. All
helpers here are pure: they never mutate their inputs and always return
new lists, so callers persist exactly the value they computed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
import re
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..core.constants import DEFAULT_HOURS, WEEKDAY_NAMES

_LEADING_DIGITS = re.compile(r"^\s*(\d+)")

DateLike = Union[str, date]


@dataclass(frozen=True)
class DateAvailability:
    """Open slots for a single date."""

    date: str
    times: Tuple[str, ...]


def parse_hour(label: Optional[str]) -> int:
    """Hour component of "HH:MM"; malformed input reads as hour 0."""
    if not label:
        return 0
    match = _LEADING_DIGITS.match(str(label).split(":")[0])
    if not match:
        return 0
    return int(match.group(1))


def format_hour(hour: int) -> str:
    return f"{hour:02d}:00"


def to_iso_date(value: DateLike) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def initialize_availability(existing: Optional[Iterable[DateAvailability]]) -> List[DateAvailability]:
    return list(existing) if existing else []


def find_or_create_date_availability(
    availability: Sequence[DateAvailability],
    day: DateLike,
    default_hours: Sequence[str],
) -> Tuple[List[DateAvailability], DateAvailability]:
    """
    Return ``(availability', entry)`` for ``day``.

    When the date is missing, ``entry`` is seeded with ``default_hours`` and
    ``availability'`` is a new list with the entry appended. The input
    sequence is left untouched.
    """
    key = to_iso_date(day)
    for entry in availability:
        if entry.date == key:
            return list(availability), entry
    entry = DateAvailability(date=key, times=tuple(default_hours))
    return [*availability, entry], entry


def generate_time_slots(start_time: str, duration_hours: int) -> List[str]:
    """
    Consecutive hour labels starting at ``start_time``'s hour.

    Labels do not wrap past midnight: "22:00" for 3 hours yields
    ["22:00", "23:00", "24:00"], and "24:00" is never an open slot.
    """
    start = parse_hour(start_time)
    return [format_hour(start + offset) for offset in range(max(0, int(duration_hours)))]


def are_all_slots_available(requested: Iterable[str], available: Iterable[str]) -> bool:
    open_slots = set(available)
    return all(slot in open_slots for slot in requested)


def missing_slots(requested: Iterable[str], available: Iterable[str]) -> List[str]:
    """Requested slots that are not open, in request order."""
    open_slots = set(available)
    return [slot for slot in requested if slot not in open_slots]


def remove_time_slots(available: Iterable[str], to_remove: Iterable[str]) -> List[str]:
    removal = set(to_remove)
    return [slot for slot in available if slot not in removal]


def add_time_slots(available: Iterable[str], to_add: Iterable[str]) -> List[str]:
    # All labels share the "HH:00" shape, so string order is hour order
    return sorted(set(available) | set(to_add))


def _range_bound(time_range: Any, key: str) -> Optional[str]:
    if isinstance(time_range, Mapping):
        return time_range.get(key)
    return getattr(time_range, key, None)


def generate_hours_from_time_ranges(ranges: Optional[Iterable[Any]]) -> List[str]:
    """
    Expand operating-hour ranges into hourly slots.

    Each range covers ``[start, end)``. An end at or before the start runs to
    midnight ("18:00"-"00:00" is the evening until close). No ranges means
    the studio is open around the clock.
    """
    range_list = list(ranges or [])
    if not range_list:
        return list(DEFAULT_HOURS)

    hours: set[int] = set()
    for time_range in range_list:
        start = min(parse_hour(_range_bound(time_range, "start")), 24)
        end = min(parse_hour(_range_bound(time_range, "end")), 24)
        if end <= start:
            end = 24
        hours.update(range(start, end))
    return [format_hour(hour) for hour in sorted(hours)]


def weekday_name(day: DateLike) -> Optional[str]:
    try:
        parsed = day if isinstance(day, date) else date.fromisoformat(to_iso_date(day))
    except ValueError:
        return None
    return WEEKDAY_NAMES[parsed.weekday()]


def is_operating_day(day: DateLike, operating_days: Optional[Iterable[str]]) -> bool:
    """True when ``day`` falls on a configured weekday, or when none are configured."""
    configured = {str(name).strip().lower() for name in (operating_days or []) if name}
    if not configured:
        return True
    name = weekday_name(day)
    return name is not None and name in configured
