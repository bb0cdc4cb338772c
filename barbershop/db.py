# barbershop/db.py

import logging
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import event
from sqlalchemy.exc import IntegrityError
from sqlmodel import SQLModel, Session, create_engine, select

from .config import settings
from .errors import ConflictError
from .models import BarberDayLock

logger = logging.getLogger(__name__)


def make_engine(url: str, busy_timeout: Optional[float] = None, **kwargs):
    connect_args = {}
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        connect_args["check_same_thread"] = False  # required for SQLite + FastAPI
        connect_args["timeout"] = settings.db_busy_timeout if busy_timeout is None else busy_timeout
    engine = create_engine(url, echo=False, connect_args=connect_args, **kwargs)
    if is_sqlite:
        _use_explicit_sqlite_transactions(engine)
    return engine


def _use_explicit_sqlite_transactions(engine) -> None:
    # pysqlite defers BEGIN until the first write, which breaks SAVEPOINT and
    # lets two readers deadlock when both upgrade to writers. Take the write
    # lock up front instead; a second writer waits for the busy timeout.
    @event.listens_for(engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    @event.listens_for(engine, "handle_error")
    def _busy(context):
        if "database is locked" in str(context.original_exception):
            logger.warning("Gave up waiting for the database write lock")
            raise ConflictError("The schedule is being changed, please try again") from context.sqlalchemy_exception


# Engine = connection to the database
engine = make_engine(settings.db_url)


def init_db(bind=None) -> None:
    SQLModel.metadata.create_all(bind or engine)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session


@contextmanager
def atomic(session: Session):
    """Commit everything done inside the block, or nothing at all."""
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def lock_barber_day(session: Session, tenant_id: str, barber_id: int, day: str) -> None:
    """Serialize reserving writes for one barber on one date.

    Must be the first statement of the transaction: the UPDATE below takes a
    row lock (database write lock on SQLite), so the overlap check that
    follows cannot interleave with another transaction's slot insert.
    """
    stmt = (
        select(BarberDayLock)
        .where(BarberDayLock.tenant_id == tenant_id)
        .where(BarberDayLock.barber_id == barber_id)
        .where(BarberDayLock.date == day)
        .with_for_update()
    )
    lock = session.exec(stmt).first()
    if lock is None:
        try:
            with session.begin_nested():
                lock = BarberDayLock(tenant_id=tenant_id, barber_id=barber_id, date=day)
                session.add(lock)
        except IntegrityError:
            # created concurrently, take the existing row
            lock = session.exec(stmt).one()
        else:
            logger.debug("Day lock row created for barber %s on %s", barber_id, day)
    lock.version += 1
    session.add(lock)
    session.flush()
