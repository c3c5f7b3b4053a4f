from datetime import date

import pytest

from studiohub.core.constants import DEFAULT_HOURS
from studiohub.utils.time_slots import (
    DateAvailability,
    add_time_slots,
    are_all_slots_available,
    find_or_create_date_availability,
    generate_hours_from_time_ranges,
    generate_time_slots,
    initialize_availability,
    is_operating_day,
    missing_slots,
    parse_hour,
    remove_time_slots,
)


def test_initialize_availability_handles_missing_input() -> None:
    assert initialize_availability(None) == []
    existing = [DateAvailability(date="2026-01-15", times=("10:00",))]
    assert initialize_availability(existing) == existing


def test_find_or_create_returns_existing_entry() -> None:
    entry = DateAvailability(date="2026-01-15", times=("10:00", "11:00"))
    availability, found = find_or_create_date_availability([entry], date(2026, 1, 15), DEFAULT_HOURS)
    assert found is entry
    assert availability == [entry]


def test_find_or_create_seeds_missing_date_without_mutating_input() -> None:
    original = [DateAvailability(date="2026-01-14", times=("09:00",))]
    availability, entry = find_or_create_date_availability(original, "2026-01-15", ["10:00", "11:00"])
    assert entry == DateAvailability(date="2026-01-15", times=("10:00", "11:00"))
    assert availability[-1] == entry
    assert len(original) == 1


def test_generate_time_slots_consecutive_hours() -> None:
    assert generate_time_slots("14:00", 3) == ["14:00", "15:00", "16:00"]


def test_generate_time_slots_does_not_wrap_past_midnight() -> None:
    assert generate_time_slots("22:00", 3) == ["22:00", "23:00", "24:00"]


def test_generate_time_slots_zero_duration() -> None:
    assert generate_time_slots("10:00", 0) == []


def test_are_all_slots_available() -> None:
    available = ["10:00", "11:00", "12:00"]
    assert are_all_slots_available(["10:00", "12:00"], available)
    assert not are_all_slots_available(["12:00", "13:00"], available)
    assert are_all_slots_available([], available)


def test_missing_slots_keeps_request_order() -> None:
    assert missing_slots(["16:00", "15:00", "14:00"], ["15:00"]) == ["16:00", "14:00"]


def test_remove_time_slots_is_set_difference() -> None:
    assert remove_time_slots(["10:00", "11:00", "12:00"], ["11:00", "18:00"]) == ["10:00", "12:00"]


def test_add_time_slots_returns_sorted_union_without_duplicates() -> None:
    result = add_time_slots(["15:00", "09:00"], ["14:00", "09:00"])
    assert result == ["09:00", "14:00", "15:00"]


def test_remove_then_add_restores_original() -> None:
    available = ["10:00", "11:00", "12:00", "13:00"]
    taken = ["11:00", "12:00"]
    assert add_time_slots(remove_time_slots(available, taken), taken) == available


def test_generate_hours_from_time_ranges_half_open() -> None:
    assert generate_hours_from_time_ranges([{"start": "09:00", "end": "12:00"}]) == [
        "09:00",
        "10:00",
        "11:00",
    ]


def test_generate_hours_end_before_start_runs_to_midnight() -> None:
    hours = generate_hours_from_time_ranges([{"start": "21:00", "end": "00:00"}])
    assert hours == ["21:00", "22:00", "23:00"]


def test_generate_hours_merges_overlapping_ranges() -> None:
    hours = generate_hours_from_time_ranges(
        [{"start": "10:00", "end": "12:00"}, {"start": "11:00", "end": "13:00"}]
    )
    assert hours == ["10:00", "11:00", "12:00"]


@pytest.mark.parametrize("ranges", [None, []])
def test_generate_hours_defaults_to_whole_day(ranges) -> None:
    assert generate_hours_from_time_ranges(ranges) == list(DEFAULT_HOURS)
    assert len(DEFAULT_HOURS) == 24


@pytest.mark.parametrize(
    "label,expected",
    [("14:00", 14), ("07:30", 7), ("9", 9), ("abc", 0), ("", 0), (None, 0)],
)
def test_parse_hour_degrades_to_zero(label, expected) -> None:
    assert parse_hour(label) == expected


def test_malformed_range_does_not_raise() -> None:
    hours = generate_hours_from_time_ranges([{"start": "garbage", "end": "02:00"}])
    assert hours == ["00:00", "01:00"]


def test_is_operating_day() -> None:
    thursday = date(2026, 1, 15)
    assert is_operating_day(thursday, ["Thursday", "friday"])
    assert not is_operating_day(thursday, ["saturday", "sunday"])
    assert is_operating_day(thursday, [])
    assert is_operating_day("2026-01-15", None)


def test_is_operating_day_malformed_date() -> None:
    assert not is_operating_day("not-a-date", ["monday"])
