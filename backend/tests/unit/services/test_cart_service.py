import pytest

from studiohub.core.exceptions import ConflictException, ForbiddenException, NotFoundException
from studiohub.services.cart_service import CartService
from tests.utils.reservation_builders import BOOKING_DATE, CUSTOMER_ID, OTHER_USER_ID


@pytest.fixture
def cart_service(unit_db, reservation_service):
    return CartService(unit_db, reservation_service=reservation_service)


@pytest.fixture
def pending(reservation_service, item):
    return reservation_service.create_reservation(
        item_id=item.id, booking_date=BOOKING_DATE, time_slots=["10:00"], customer_id=CUSTOMER_ID
    )


def test_add_and_get_cart(cart_service, pending) -> None:
    entry = cart_service.add_to_cart(CUSTOMER_ID, pending.id)

    assert entry.reservation_id == pending.id
    assert entry.item_id == pending.item_id
    assert entry.booking_date == BOOKING_DATE
    assert [e.reservation_id for e in cart_service.get_cart(CUSTOMER_ID)] == [pending.id]
    assert cart_service.get_cart(OTHER_USER_ID) == []


def test_add_is_idempotent(cart_service, pending) -> None:
    first = cart_service.add_to_cart(CUSTOMER_ID, pending.id)
    second = cart_service.add_to_cart(CUSTOMER_ID, pending.id)
    assert first.id == second.id
    assert len(cart_service.get_cart(CUSTOMER_ID)) == 1


def test_add_someone_elses_reservation(cart_service, pending) -> None:
    with pytest.raises(ForbiddenException):
        cart_service.add_to_cart(OTHER_USER_ID, pending.id)


def test_add_non_pending_reservation(cart_service, reservation_service, pending) -> None:
    reservation_service.confirm_reservation(pending.id)
    with pytest.raises(ConflictException):
        cart_service.add_to_cart(CUSTOMER_ID, pending.id)


def test_add_lapsed_hold_expires_it(cart_service, pending, clock) -> None:
    clock.advance(minutes=16)
    with pytest.raises(ConflictException):
        cart_service.add_to_cart(CUSTOMER_ID, pending.id)
    assert pending.status == "expired"


def test_remove_from_cart(cart_service, pending) -> None:
    cart_service.add_to_cart(CUSTOMER_ID, pending.id)
    cart_service.remove_from_cart(CUSTOMER_ID, pending.id)
    assert cart_service.get_cart(CUSTOMER_ID) == []

    with pytest.raises(NotFoundException):
        cart_service.remove_from_cart(CUSTOMER_ID, pending.id)


def test_cancel_prunes_cart(cart_service, reservation_service, pending) -> None:
    cart_service.add_to_cart(CUSTOMER_ID, pending.id)
    reservation_service.cancel_reservation(pending.id, CUSTOMER_ID)
    assert cart_service.get_cart(CUSTOMER_ID) == []


def test_confirm_keeps_cart_pointer(cart_service, reservation_service, pending) -> None:
    cart_service.add_to_cart(CUSTOMER_ID, pending.id)
    reservation_service.confirm_reservation(pending.id)
    assert len(cart_service.get_cart(CUSTOMER_ID)) == 1


def test_remove_by_reservation_ids_across_users(cart_service, reservation_service, item) -> None:
    mine = reservation_service.create_reservation(
        item_id=item.id, booking_date=BOOKING_DATE, time_slots=["11:00"], customer_id=CUSTOMER_ID
    )
    theirs = reservation_service.create_reservation(
        item_id=item.id, booking_date=BOOKING_DATE, time_slots=["12:00"], customer_id=OTHER_USER_ID
    )
    cart_service.add_to_cart(CUSTOMER_ID, mine.id)
    cart_service.add_to_cart(OTHER_USER_ID, theirs.id)

    assert cart_service.remove_by_reservation_ids([mine.id, theirs.id]) == 2
    assert cart_service.remove_by_reservation_ids([]) == 0
