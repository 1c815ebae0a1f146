"""
Engine and session management.

Domain tools open a short-lived session per operation through :func:`session_scope`; the scope
commits on success and rolls back on any exception, so a composite write (a recipe together with
its ingredient lines) is one transaction.
"""

import logging
from contextlib import contextmanager
from typing import (
    Any,
    Iterator,
)

from sqlalchemy import (
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import (
    Session,
    sessionmaker,
)

from mealbrain.config import settings
from mealbrain.db.models import Base

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_SessionLocal = sessionmaker(expire_on_commit=False)


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def configure_engine(url: str | None = None) -> Engine:
    """
    (Re)bind the session factory to the database at *url*.

    Falls back to ``settings.DATABASE_URL``.  SQLite connections are shared across the worker
    threads that run read tools concurrently, so ``check_same_thread`` is disabled.
    """
    global _engine  # pylint: disable=global-statement

    target = url or settings.DATABASE_URL
    is_sqlite = target.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}

    if _engine is not None:
        _engine.dispose()

    _engine = create_engine(target, connect_args=connect_args)
    if is_sqlite:
        event.listen(_engine, "connect", _enable_sqlite_foreign_keys)

    _SessionLocal.configure(bind=_engine)
    logger.debug("Database engine bound to %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def get_engine() -> Engine:
    """Return the current engine, creating it from settings on first use."""
    if _engine is None:
        return configure_engine()
    return _engine


def init_db() -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(get_engine())
    logger.info("Database schema ready.")


@contextmanager
def session_scope() -> Iterator[Session]:
    """Transactional scope around a series of operations."""
    get_engine()
    session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
