"""
Module: procurement_kernel.db.engine
Responsibility: SQLAlchemy engine construction, schema creation, and the
    transactional scope utility.  This is the single point of database
    connection configuration for the procurement kernel.
Architecture position: Kernel > DB.  May import from db/base.py.
    MUST NOT import from services/, selectors/, domain/, or outer layers
    (except for create_tables/drop_tables which import models).

Invariants enforced:
    - PostgreSQL runs with READ COMMITTED and a pre-pinged QueuePool.
    - SQLite (tests, single-writer deployments) runs with a busy timeout so
      that concurrent writers wait for the database lock instead of failing,
      and with foreign keys switched on so item rows cascade with headers.

Failure modes:
    - OperationalError when the store cannot be reached.  The service layer
      maps it to StorageUnavailableError.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from procurement_kernel.logging_config import get_logger

logger = get_logger("db.engine")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    sqlite_busy_timeout: float = 30.0,
) -> Engine:
    """
    Create an engine for ``database_url`` without touching module state.

    SQLite gets a busy timeout and ``check_same_thread=False`` so that one
    engine can serve worker threads; pool sizing and isolation level only
    apply to server databases.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        engine = create_engine(
            url,
            echo=echo,
            connect_args={
                "timeout": sqlite_busy_timeout,
                "check_same_thread": False,
            },
        )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        url,
        echo=echo,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        isolation_level="READ COMMITTED",
    )


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Postconditions: On normal exit, session is committed and closed.
        On exception, session is rolled back and closed.  The exception
        is re-raised to the caller.

    Usage:
        with session_scope(factory) as session:
            repo.create(...)
            # Commits on successful exit, rolls back on exception
    """
    session = session_factory()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(engine: Engine) -> None:
    """
    Create all procurement tables.

    Importing ``procurement_kernel.models`` registers every table on
    ``Base.metadata`` before ``create_all`` runs.
    """
    from procurement_kernel.db.base import Base
    import procurement_kernel.models  # noqa: F401

    Base.metadata.create_all(engine)
    logger.info("tables_created", extra={"dialect": engine.dialect.name})


def drop_tables(engine: Engine) -> None:
    """
    Drop all tables. Use with caution - primarily for testing.
    """
    from procurement_kernel.db.base import Base
    import procurement_kernel.models  # noqa: F401

    Base.metadata.drop_all(engine)
