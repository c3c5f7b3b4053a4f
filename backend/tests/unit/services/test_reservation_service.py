from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from studiohub.core.broadcast import availability_channel, user_channel
from studiohub.core.constants import DEFAULT_HOURS
from studiohub.core.exceptions import (
    ForbiddenException,
    InvalidReservationStateException,
    NotFoundException,
    ReservationExpiredException,
    SlotUnavailableException,
    ValidationException,
)
from studiohub.models.reservation import ReservationStatus, as_utc
from studiohub.repositories.item_availability_repository import ItemAvailabilityRepository

from tests.utils.reservation_builders import (
    BOOKING_DATE,
    CUSTOMER_ID,
    OTHER_USER_ID,
    OWNER_ID,
    UNKNOWN_ID,
)


def _open_slots(unit_db, item, day=BOOKING_DATE):
    current = ItemAvailabilityRepository(unit_db).read_slots(item.id, day)
    return current[0] if current else None


def _create(service, item, slots, **kwargs):
    return service.create_reservation(
        item_id=item.id,
        booking_date=kwargs.pop("booking_date", BOOKING_DATE),
        time_slots=slots,
        customer_id=kwargs.pop("customer_id", CUSTOMER_ID),
        **kwargs,
    )


def test_create_cancel_rebook_scenario(unit_db, reservation_service, item) -> None:
    first = _create(reservation_service, item, ["14:00", "15:00"])
    assert first.status == ReservationStatus.PENDING.value
    remaining = _open_slots(unit_db, item)
    assert "14:00" not in remaining and "15:00" not in remaining
    assert "16:00" in remaining

    with pytest.raises(SlotUnavailableException) as exc_info:
        _create(reservation_service, item, ["15:00", "16:00"], customer_id=OTHER_USER_ID)
    assert exc_info.value.details["unavailable_slots"] == ["15:00"]
    assert "16:00" in _open_slots(unit_db, item)

    reservation_service.cancel_reservation(first.id, CUSTOMER_ID)
    restored = _open_slots(unit_db, item)
    assert "14:00" in restored and "15:00" in restored

    second = _create(reservation_service, item, ["15:00", "16:00"], customer_id=OTHER_USER_ID)
    assert second.status == ReservationStatus.PENDING.value


def test_create_sets_hold_deadline_and_price(reservation_service, item, clock, make_add_on) -> None:
    add_on = make_add_on(item, price="20.00", price_per="hour")
    reservation = _create(reservation_service, item, ["11:00", "10:00"], add_on_ids=[add_on.id])

    assert reservation.time_slots == ["10:00", "11:00"]
    assert as_utc(reservation.expiration) == clock.now + timedelta(minutes=15)
    assert reservation.total_price == Decimal("240.00")
    assert reservation.item_price == Decimal("100.00")


def test_create_seeds_new_date_from_studio_hours(unit_db, reservation_service, make_studio, make_item) -> None:
    studio = make_studio(operating_hours=[{"start": "09:00", "end": "13:00"}])
    item = make_item(studio)

    _create(reservation_service, item, ["10:00"])

    assert _open_slots(unit_db, item) == ["09:00", "11:00", "12:00"]


def test_slot_outside_operating_hours_is_unavailable(reservation_service, make_studio, make_item) -> None:
    item = make_item(make_studio(operating_hours=[{"start": "09:00", "end": "12:00"}]))
    with pytest.raises(SlotUnavailableException):
        _create(reservation_service, item, ["20:00"])


def test_create_emits_availability_and_user_updates(reservation_service, item, notifier) -> None:
    reservation = _create(reservation_service, item, ["10:00"])

    availability = notifier.events("availability_updated", availability_channel(item.id))
    assert availability and availability[0]["payload"]["booking_date"] == "2026-01-15"
    for user_id in (CUSTOMER_ID, OWNER_ID):
        updates = notifier.events("reservation_updated", user_channel(user_id))
        assert updates[0]["payload"]["reservation_ids"] == [reservation.id]


def test_failed_create_stores_nothing(unit_db, reservation_service, item, notifier) -> None:
    _create(reservation_service, item, ["10:00"])
    notifier.clear()

    with pytest.raises(SlotUnavailableException):
        _create(reservation_service, item, ["09:00", "10:00"], customer_id=OTHER_USER_ID)

    assert len(reservation_service.list_reservations(item_id=item.id)) == 1
    assert "09:00" in _open_slots(unit_db, item)
    assert notifier.published == []


def test_guest_booking_without_customer(reservation_service, item) -> None:
    reservation = _create(reservation_service, item, ["10:00"], customer_id=None, customer_name="Guest")
    assert reservation.customer_id is None
    assert reservation.customer_name == "Guest"


@pytest.mark.parametrize(
    "slots,code",
    [([], "NO_TIME_SLOTS"), (["10:30"], "INVALID_TIME_SLOT"), (["10:00", "10:00"], "DUPLICATE_TIME_SLOT")],
)
def test_create_rejects_malformed_slots(reservation_service, item, slots, code) -> None:
    with pytest.raises(ValidationException) as exc_info:
        _create(reservation_service, item, slots)
    assert exc_info.value.code == code


def test_create_rejects_past_date(reservation_service, item) -> None:
    with pytest.raises(ValidationException) as exc_info:
        _create(reservation_service, item, ["10:00"], booking_date=date(2026, 1, 9))
    assert exc_info.value.code == "PAST_BOOKING_DATE"


def test_past_date_check_uses_the_utc_day(reservation_service, item, clock) -> None:
    # 00:30 on the 11th at UTC+2 is still the 10th in UTC
    clock.now = datetime(2026, 1, 11, 0, 30, tzinfo=timezone(timedelta(hours=2)))
    assert reservation_service.today() == date(2026, 1, 10)

    reservation = _create(reservation_service, item, ["23:00"], booking_date=date(2026, 1, 10))
    assert reservation.booking_date == date(2026, 1, 10)

    with pytest.raises(ValidationException) as exc_info:
        _create(reservation_service, item, ["10:00"], booking_date=date(2026, 1, 9))
    assert exc_info.value.code == "PAST_BOOKING_DATE"


def test_create_unknown_item(reservation_service) -> None:
    with pytest.raises(NotFoundException):
        reservation_service.create_reservation(
            item_id=UNKNOWN_ID, booking_date=BOOKING_DATE, time_slots=["10:00"]
        )


def test_create_rejects_studio_mismatch(reservation_service, item) -> None:
    with pytest.raises(ValidationException) as exc_info:
        _create(reservation_service, item, ["10:00"], studio_id=UNKNOWN_ID)
    assert exc_info.value.code == "ITEM_STUDIO_MISMATCH"


def test_create_rejects_inactive_item(reservation_service, studio, make_item) -> None:
    item = make_item(studio, is_active=False)
    with pytest.raises(ValidationException) as exc_info:
        _create(reservation_service, item, ["10:00"])
    assert exc_info.value.code == "ITEM_INACTIVE"


def test_create_rejects_closed_day(reservation_service, make_studio, make_item) -> None:
    # 2026-01-15 is a Thursday
    item = make_item(make_studio(operating_days=["monday", "tuesday"]))
    with pytest.raises(ValidationException) as exc_info:
        _create(reservation_service, item, ["10:00"])
    assert exc_info.value.code == "STUDIO_CLOSED"


def test_instant_book_is_confirmed_without_deadline(unit_db, reservation_service, studio, make_item) -> None:
    item = make_item(studio, instant_book=True)
    reservation = _create(reservation_service, item, ["10:00"])

    assert reservation.status == ReservationStatus.CONFIRMED.value
    assert reservation.expiration is None
    assert "10:00" not in _open_slots(unit_db, item)


def test_confirm_keeps_slots_consumed(unit_db, reservation_service, item) -> None:
    reservation = _create(reservation_service, item, ["10:00", "11:00"])
    confirmed = reservation_service.confirm_reservation(reservation.id, OWNER_ID)

    assert confirmed.status == ReservationStatus.CONFIRMED.value
    assert confirmed.confirmed_at is not None
    remaining = _open_slots(unit_db, item)
    assert "10:00" not in remaining and "11:00" not in remaining


def test_confirm_after_deadline_expires_and_releases(unit_db, reservation_service, item, clock, notifier) -> None:
    reservation = _create(reservation_service, item, ["10:00"])
    notifier.clear()
    clock.advance(minutes=16)

    with pytest.raises(ReservationExpiredException):
        reservation_service.confirm_reservation(reservation.id)

    assert reservation_service.reservation_repository.get_by_id(reservation.id).status == "expired"
    assert "10:00" in _open_slots(unit_db, item)
    assert notifier.events("availability_updated", availability_channel(item.id))


def test_confirm_rejects_non_pending(reservation_service, item) -> None:
    reservation = _create(reservation_service, item, ["10:00"])
    reservation_service.cancel_reservation(reservation.id)
    with pytest.raises(InvalidReservationStateException):
        reservation_service.confirm_reservation(reservation.id)


def test_confirm_by_stranger_is_forbidden(reservation_service, item) -> None:
    reservation = _create(reservation_service, item, ["10:00"])
    with pytest.raises(ForbiddenException):
        reservation_service.confirm_reservation(reservation.id, OTHER_USER_ID)


def test_cancel_confirmed_releases_slots(unit_db, reservation_service, item) -> None:
    reservation = _create(reservation_service, item, ["10:00"])
    reservation_service.confirm_reservation(reservation.id)

    cancelled = reservation_service.cancel_reservation(reservation.id, OWNER_ID)

    assert cancelled.status == ReservationStatus.CANCELLED.value
    assert cancelled.cancelled_by_id == OWNER_ID
    assert "10:00" in _open_slots(unit_db, item)


def test_cancel_twice_is_a_noop(unit_db, reservation_service, item, notifier) -> None:
    reservation = _create(reservation_service, item, ["10:00"])
    reservation_service.cancel_reservation(reservation.id, CUSTOMER_ID)
    version_after_first = ItemAvailabilityRepository(unit_db).read_slots(item.id, BOOKING_DATE)[1]
    notifier.clear()

    again = reservation_service.cancel_reservation(reservation.id, CUSTOMER_ID)

    assert again.status == ReservationStatus.CANCELLED.value
    assert ItemAvailabilityRepository(unit_db).read_slots(item.id, BOOKING_DATE)[1] == version_after_first
    assert notifier.published == []


def test_cancel_by_stranger_is_forbidden(reservation_service, item) -> None:
    reservation = _create(reservation_service, item, ["10:00"])
    with pytest.raises(ForbiddenException):
        reservation_service.cancel_reservation(reservation.id, OTHER_USER_ID)
    assert reservation_service.get_reservation(reservation.id).is_pending


def test_cancel_unknown_reservation(reservation_service) -> None:
    with pytest.raises(NotFoundException):
        reservation_service.cancel_reservation(UNKNOWN_ID)


def test_reject_is_owner_only(unit_db, reservation_service, item) -> None:
    reservation = _create(reservation_service, item, ["10:00"])

    with pytest.raises(ForbiddenException):
        reservation_service.reject_reservation(reservation.id, CUSTOMER_ID)

    rejected = reservation_service.reject_reservation(reservation.id, OWNER_ID)
    assert rejected.status == ReservationStatus.REJECTED.value
    assert "10:00" in _open_slots(unit_db, item)


def test_reject_confirmed_is_invalid(reservation_service, item) -> None:
    reservation = _create(reservation_service, item, ["10:00"])
    reservation_service.confirm_reservation(reservation.id)
    with pytest.raises(InvalidReservationStateException):
        reservation_service.reject_reservation(reservation.id, OWNER_ID)


def test_release_with_missing_item_still_transitions(unit_db, reservation_service, item, notifier) -> None:
    reservation = _create(reservation_service, item, ["10:00"])
    unit_db.delete(item)
    unit_db.commit()
    notifier.clear()

    cancelled = reservation_service.cancel_reservation(reservation.id)

    assert cancelled.status == ReservationStatus.CANCELLED.value
    assert notifier.events("availability_updated") == []


def test_conservation_over_mixed_lifecycle(unit_db, reservation_service, item, clock) -> None:
    a = _create(reservation_service, item, ["08:00", "09:00"])
    b = _create(reservation_service, item, ["12:00"], customer_id=OTHER_USER_ID)
    c = _create(reservation_service, item, ["18:00", "19:00", "20:00"])
    reservation_service.confirm_reservation(b.id)
    reservation_service.cancel_reservation(a.id)
    reservation_service.reject_reservation(c.id, OWNER_ID)

    held = {"12:00"}
    assert set(_open_slots(unit_db, item)) == set(DEFAULT_HOURS) - held


def test_update_contact_and_add_ons(reservation_service, item, make_add_on) -> None:
    add_on = make_add_on(item, price="20.00", price_per="session")
    reservation = _create(reservation_service, item, ["10:00", "11:00"])

    updated = reservation_service.update_reservation(
        reservation.id,
        CUSTOMER_ID,
        customer_phone="+1 555 0100",
        comment="Bring the tape machine",
        add_on_ids=[add_on.id],
    )

    assert updated.customer_phone == "+1 555 0100"
    assert updated.comment == "Bring the tape machine"
    assert updated.total_price == Decimal("220.00")


def test_update_after_deadline_expires(unit_db, reservation_service, item, clock) -> None:
    reservation = _create(reservation_service, item, ["10:00"])
    clock.advance(minutes=20)

    with pytest.raises(ReservationExpiredException):
        reservation_service.update_reservation(reservation.id, CUSTOMER_ID, comment="late")

    assert "10:00" in _open_slots(unit_db, item)


def test_update_final_reservation_is_invalid(reservation_service, item) -> None:
    reservation = _create(reservation_service, item, ["10:00"])
    reservation_service.cancel_reservation(reservation.id)
    with pytest.raises(InvalidReservationStateException):
        reservation_service.update_reservation(reservation.id, CUSTOMER_ID, comment="x")


def test_list_reservations_filters(reservation_service, item) -> None:
    mine = _create(reservation_service, item, ["10:00"])
    _create(reservation_service, item, ["11:00"], customer_id=OTHER_USER_ID)
    reservation_service.confirm_reservation(mine.id)

    assert [r.id for r in reservation_service.list_reservations(customer_id=CUSTOMER_ID)] == [mine.id]
    assert [r.id for r in reservation_service.list_reservations(status="confirmed")] == [mine.id]
    assert len(reservation_service.list_reservations(studio_id=item.studio_id)) == 2


def test_operation_timings_are_recorded(reservation_service, item) -> None:
    before = reservation_service.get_metrics().get("create_reservation", {}).get("count", 0)
    _create(reservation_service, item, ["10:00"])
    with pytest.raises(SlotUnavailableException):
        _create(reservation_service, item, ["10:00"], customer_id=OTHER_USER_ID)

    stats = reservation_service.get_metrics()["create_reservation"]
    assert stats["count"] == before + 2
    assert stats["failure_count"] >= 1
    assert 0.0 < stats["success_rate"] < 1.0


def test_release_twice_equals_release_once(unit_db, reservation_service, item) -> None:
    neighbour = _create(reservation_service, item, ["09:00"], customer_id=OTHER_USER_ID)
    before = _open_slots(unit_db, item)
    reservation = _create(reservation_service, item, ["10:00", "11:00"])
    assert "10:00" not in _open_slots(unit_db, item)

    availability = reservation_service.availability_service
    repository = ItemAvailabilityRepository(unit_db)

    with reservation_service.transaction():
        assert availability.release_slots(reservation) is True
    once, version_once = repository.read_slots(item.id, BOOKING_DATE)

    with reservation_service.transaction():
        availability.release_slots(reservation)
    twice, version_twice = repository.read_slots(item.id, BOOKING_DATE)

    assert once == twice == before
    assert "09:00" not in twice
    # A release that changes nothing leaves the row untouched
    assert version_twice == version_once
    assert neighbour.status == ReservationStatus.PENDING.value
