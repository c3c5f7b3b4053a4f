from datetime import datetime, timezone
import threading

import pytest
from sqlalchemy.orm import Session

from studiohub.models.reservation import Reservation, ReservationStatus
from studiohub.workers.reservation_scheduler import ReservationScheduler, next_daily_run
from tests.utils.reservation_builders import BOOKING_DATE, CUSTOMER_ID


@pytest.fixture
def session_factory(unit_db):
    connection = unit_db.get_bind()

    def _factory() -> Session:
        return Session(bind=connection, expire_on_commit=False, join_transaction_mode="create_savepoint")

    return _factory


@pytest.fixture
def scheduler(session_factory, notifier, clock):
    return ReservationScheduler(
        session_factory,
        notifier,
        sweep_interval_seconds=0.01,
        cleanup_hour=3,
        retention_days=30,
        clock=clock,
    )


def _hold(reservation_service, item):
    return reservation_service.create_reservation(
        item_id=item.id, booking_date=BOOKING_DATE, time_slots=["10:00"], customer_id=CUSTOMER_ID
    )


@pytest.mark.parametrize(
    "now,expected",
    [
        (datetime(2026, 1, 10, 1, 30, tzinfo=timezone.utc), datetime(2026, 1, 10, 3, 0, tzinfo=timezone.utc)),
        (datetime(2026, 1, 10, 3, 0, tzinfo=timezone.utc), datetime(2026, 1, 11, 3, 0, tzinfo=timezone.utc)),
        (datetime(2026, 1, 10, 23, 59), datetime(2026, 1, 11, 3, 0, tzinfo=timezone.utc)),
    ],
)
def test_next_daily_run(now, expected) -> None:
    assert next_daily_run(now, 3) == expected


def test_expiry_tick_expires_lapsed_holds(unit_db, scheduler, reservation_service, item, clock) -> None:
    reservation = _hold(reservation_service, item)
    clock.advance(minutes=16)

    assert scheduler.run_expiry_sweep() == 1

    unit_db.expire_all()
    assert unit_db.get(Reservation, reservation.id).status == ReservationStatus.EXPIRED.value


def test_overlapping_tick_is_skipped(scheduler) -> None:
    scheduler._sweep_lock.acquire()
    try:
        assert scheduler.run_expiry_sweep() is None
    finally:
        scheduler._sweep_lock.release()


def test_failed_tick_is_logged_and_swallowed(notifier, clock, caplog) -> None:
    def _broken_factory() -> Session:
        raise RuntimeError("database is down")

    scheduler = ReservationScheduler(_broken_factory, notifier, clock=clock)

    assert scheduler.run_expiry_sweep() is None
    assert scheduler.run_cleanup() is None
    assert "Expiry sweep failed" in caplog.text
    assert "Cleanup failed" in caplog.text
    # The lock is released so the next tick can run
    assert scheduler._sweep_lock.acquire(blocking=False)
    scheduler._sweep_lock.release()


def test_cleanup_run_deletes_old_expired(scheduler, reservation_service, item, clock) -> None:
    _hold(reservation_service, item)
    clock.advance(minutes=16)
    reservation_service.expire_pending_reservations()
    clock.advance(days=31)

    assert scheduler.run_cleanup() == 1


def test_start_and_stop(scheduler, monkeypatch) -> None:
    ticked = threading.Event()
    monkeypatch.setattr(scheduler, "run_expiry_sweep", ticked.set)

    scheduler.start()
    try:
        assert scheduler.is_running
        assert ticked.wait(timeout=2.0)
    finally:
        scheduler.stop(timeout=2.0)

    assert not scheduler.is_running
