from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from studiohub.database import Base, configure_sqlite_transactions

# Import models so Base.metadata is populated for create_all.
import studiohub.models  # noqa: F401
from studiohub.models.add_on import AddOn
from studiohub.models.item import Item
from studiohub.models.studio import Studio
from studiohub.services.reservation_service import ReservationService
from tests.utils.reservation_builders import OWNER_ID, FrozenClock, RecordingNotifier


@pytest.fixture(scope="session")
def _unit_engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    configure_sqlite_transactions(engine)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def unit_db(_unit_engine) -> Session:
    """
    Provide a session inside an outer transaction that is rolled back after the test.

    Service commits and rollbacks act on savepoints, so a test can observe
    what a failed operation left behind.
    """
    connection = _unit_engine.connect()
    transaction = connection.begin()
    session = Session(
        bind=connection,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 10, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_studio(unit_db: Session):
    def _make(**overrides: Any) -> Studio:
        values: Dict[str, Any] = {
            "name": "Blue Room Studios",
            "owner_id": OWNER_ID,
            "operating_days": [],
            "operating_hours": [],
            "is_active": True,
        }
        values.update(overrides)
        studio = Studio(**values)
        unit_db.add(studio)
        unit_db.commit()
        return studio

    return _make


@pytest.fixture
def make_item(unit_db: Session):
    def _make(studio: Studio, **overrides: Any) -> Item:
        values: Dict[str, Any] = {
            "studio_id": studio.id,
            "name": "Live Room",
            "price": Decimal("100.00"),
            "instant_book": False,
            "is_active": True,
        }
        values.update(overrides)
        item = Item(**values)
        unit_db.add(item)
        unit_db.commit()
        return item

    return _make


@pytest.fixture
def make_add_on(unit_db: Session):
    def _make(item: Item, price: str = "20.00", price_per: str = "hour", **overrides: Any) -> AddOn:
        add_on = AddOn(
            item_id=item.id,
            name=overrides.pop("name", "Engineer"),
            price=Decimal(price),
            price_per=price_per,
            **overrides,
        )
        unit_db.add(add_on)
        unit_db.commit()
        return add_on

    return _make


@pytest.fixture
def studio(make_studio) -> Studio:
    return make_studio()


@pytest.fixture
def item(make_item, studio) -> Item:
    return make_item(studio)


@pytest.fixture
def reservation_service(unit_db: Session, notifier: RecordingNotifier, clock: FrozenClock):
    return ReservationService(unit_db, notifier=notifier, clock=clock)
