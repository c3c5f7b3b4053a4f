"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

import logging
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker

from studiohub.core.config import settings

logger = logging.getLogger(__name__)


def _build_engine_kwargs(db_url: str) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"echo": settings.database_echo, "future": True}
    if db_url.startswith("sqlite"):
        # Seconds a writer waits on the database lock before giving up
        kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": settings.sqlite_busy_timeout_seconds,
        }
    else:
        kwargs.update({"pool_size": 5, "max_overflow": 5, "pool_pre_ping": True})
    return kwargs


def configure_sqlite_transactions(target: Engine, immediate: bool = False) -> None:
    """
    Hand transaction control on pysqlite over to SQLAlchemy.

    Required for SAVEPOINT support. With ``immediate`` every transaction
    takes the database write lock when it begins.
    """
    begin = "BEGIN IMMEDIATE" if immediate else "BEGIN"

    @event.listens_for(target, "connect")
    def _disable_driver_transactions(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(target, "begin")
    def _emit_begin(conn: Any) -> None:
        conn.exec_driver_sql(begin)


def _log_connect(dbapi_connection: Any, connection_record: Any) -> None:
    logger.debug("Database connection established")


def build_engine(db_url: str) -> Engine:
    """
    Engine used by the application.

    On SQLite every transaction opens with BEGIN IMMEDIATE, so concurrent
    writers are serialized at BEGIN and a lost slot race surfaces as
    SlotUnavailable from the availability check, not as a lock error.
    """
    new_engine = create_engine(db_url, **_build_engine_kwargs(db_url))
    event.listen(new_engine, "connect", _log_connect)
    if new_engine.dialect.name == "sqlite":
        configure_sqlite_transactions(new_engine, immediate=True)
    return new_engine


db_url = settings.database_url
engine: Engine = build_engine(db_url)


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create tables for every registered model."""
    import studiohub.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
