"""
approval_kernel.db.engine -- Process-wide engine and session factory.

Responsibility:
    Builds the one SQLAlchemy engine the process talks to, hands out
    sessions, and owns schema create/drop for the approval tables.

Architecture position:
    Kernel > DB.  Imports db/base.py, and models/ only inside
    create_tables/drop_tables so their tables register.

Invariants enforced:
    - PostgreSQL sessions run at READ COMMITTED.  A writer blocked on a
      row lock re-evaluates ``WHERE status = 'PENDING'`` once the lock is
      released, so the loser of a decision race updates zero rows.
    - SQLite serializes writers; the busy timeout makes the second writer
      wait for the first and then see the already-decided row.
    - Sessions are created with ``expire_on_commit=False`` so committed
      DTOs can be read after the unit of work ends.

Failure modes:
    - RuntimeError from any accessor called before init_engine_from_url().
"""

import atexit
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from approval_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_sessions: sessionmaker[Session] | None = None


def _engine_options(
    url: URL,
    *,
    pool_size: int,
    max_overflow: int,
    sqlite_busy_timeout: float,
) -> dict[str, Any]:
    if url.get_backend_name() == "sqlite":
        return {
            "connect_args": {
                "check_same_thread": False,
                "timeout": sqlite_busy_timeout,
            },
        }
    return {
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "isolation_level": "READ COMMITTED",
    }


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 10,
    sqlite_busy_timeout: float = 30.0,
) -> Engine:
    """
    Create (or replace) the process engine for ``database_url``.

    Pool settings apply to server databases only; SQLite gets a busy
    timeout and cross-thread connections instead.
    """
    global _engine, _sessions

    if _engine is not None:
        _engine.dispose()

    url = make_url(database_url)
    _engine = create_engine(
        url,
        echo=echo,
        **_engine_options(
            url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            sqlite_busy_timeout=sqlite_busy_timeout,
        ),
    )
    _sessions = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": url.get_backend_name(), "database": url.database},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Factory for per-thread sessions.  Sessions must not be shared across threads."""
    if _sessions is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _sessions


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    One unit of work: commit on success, roll back and re-raise on error.

        with session_scope() as session:
            build_workflow_service(session, ...).expire_stale_requests()
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("session_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    from approval_kernel.db.base import Base
    import approval_kernel.models  # noqa: F401

    Base.metadata.create_all(get_engine())
    logger.info("approval_tables_created")


def drop_tables() -> None:
    """Drop every approval table.  Test and tooling use only."""
    from approval_kernel.db.base import Base
    import approval_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _sessions
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _sessions = None


atexit.register(reset_engine)
