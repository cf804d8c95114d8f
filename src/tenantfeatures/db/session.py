"""
Database session management for tenant-features.

Provides the SQLAlchemy engine, session factory and the transactional
helpers the write path relies on. Uses the settings from config.py.

Usage:
    # As a context manager (recommended for scripts)
    from tenantfeatures.db import get_session

    with get_session() as session:
        tenants = session.query(Tenant).all()
        # Commits automatically on exit, rolls back on exception

    # A unit of work inside service code
    from tenantfeatures.db import unit_of_work

    with unit_of_work(session):
        session.add(setting)

    # As a dependency injection (for FastAPI)
    from tenantfeatures.db import get_db
"""

from contextlib import contextmanager
from functools import lru_cache
from typing import Callable, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tenantfeatures.config import settings


def create_db_engine(database_url: str, **kwargs) -> Engine:
    """
    Create a SQLAlchemy engine.

    PostgreSQL (and other server databases) get a pre-pinged connection
    pool. SQLite gets the pysqlite transaction recipe from the SQLAlchemy
    docs so that SAVEPOINTs (used by nested units of work) behave; in-memory
    SQLite URLs share a single connection across threads.
    """
    if not database_url.startswith("sqlite"):
        kwargs.setdefault("pool_pre_ping", True)  # Verify connection is alive before using
        return create_engine(database_url, **kwargs)

    if database_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs.setdefault("poolclass", StaticPool)
    kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(database_url, **kwargs)

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        """Disable pysqlite's own BEGIN handling."""
        dbapi_conn.isolation_level = None

    @event.listens_for(engine, "begin")
    def on_begin(conn):
        """Emit our own BEGIN so SAVEPOINT works."""
        conn.exec_driver_sql("BEGIN")

    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    """Session factory with explicit flush control."""
    return sessionmaker(
        bind=engine,
        autoflush=False,  # Stores flush explicitly after each write
    )


@lru_cache
def get_engine() -> Engine:
    """
    Get or create the application engine from settings.

    The engine is created lazily so importing this module never needs a
    database driver.
    """
    if settings.database_url.startswith("sqlite"):
        return create_db_engine(
            settings.database_url,
            echo=settings.log_level == "DEBUG",  # Log SQL only in debug mode
        )
    return create_db_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        echo=settings.log_level == "DEBUG",
    )


@lru_cache
def get_session_factory() -> sessionmaker:
    """Session factory bound to the application engine."""
    return make_session_factory(get_engine())


@contextmanager
def get_session(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Automatically commits on successful exit, rolls back on exception.
    This is the recommended way to use sessions in scripts and tasks.

    Args:
        factory: Session factory to use; defaults to the application one

    Raises:
        Any exception from the database operation (after rollback)
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency injection function for FastAPI.

    Use this with FastAPI's Depends() for request-scoped sessions.
    Write operations commit through their own unit of work.
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(session: Session) -> Generator[Session, None, None]:
    """
    Run a block atomically.

    Without an active transaction this begins one and commits it on exit.
    Inside a caller's transaction it opens a SAVEPOINT instead: the block
    still rolls back as a whole on error, but committing is left to the
    caller. Exceptions always propagate.
    """
    if session.in_transaction():
        with session.begin_nested():
            yield session
    else:
        with session.begin():
            yield session


_PENDING_CALLBACKS = "tenantfeatures.after_commit"


def after_commit(session: Session, callback: Callable[[], None]) -> None:
    """
    Run callback once the session's outermost transaction commits.

    Runs immediately when no transaction is open. SAVEPOINT releases do not
    trigger callbacks, and pending callbacks are dropped when the outermost
    transaction ends without committing.
    """
    if not session.in_transaction():
        callback()
        return

    if _PENDING_CALLBACKS not in session.info:
        session.info[_PENDING_CALLBACKS] = []
        event.listen(session, "after_commit", _run_pending_callbacks)
        event.listen(session, "after_transaction_end", _drop_pending_callbacks)
    session.info[_PENDING_CALLBACKS].append(callback)


def _run_pending_callbacks(session: Session) -> None:
    if session.get_nested_transaction() is not None:
        return  # SAVEPOINT released, outer transaction still open
    callbacks = session.info.get(_PENDING_CALLBACKS, [])
    session.info[_PENDING_CALLBACKS] = []
    for callback in callbacks:
        callback()


def _drop_pending_callbacks(session: Session, transaction) -> None:
    if transaction.parent is None:
        session.info[_PENDING_CALLBACKS] = []
