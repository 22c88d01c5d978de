"""Engine, session factory and unit-of-work helpers for ranked lists.

Ranked lists target PostgreSQL in production but support SQLite for local
development and CI. This module only manages connection lifecycle; mapped
models live in ``ranked_list.models``.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


def _db_url() -> str:
    return (
        os.getenv("TEST_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or "sqlite+pysqlite:///:memory:"
    )


# Engine shared by the service and its sessions; rebuilt when the URL changes
_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy own BEGIN so SAVEPOINTs behave on pysqlite.

    Renumbering and rank saves run inside ``Session.begin_nested``; the
    driver's implicit transaction handling would otherwise break them.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):  # type: ignore[no-untyped-def]
        conn.exec_driver_sql("BEGIN")


def create_ranked_engine(url: str) -> Engine:
    kwargs: dict = {"future": True, "pool_pre_ping": True}
    if url.startswith("sqlite") and ":memory:" in url:
        # Keep a single in-memory DB connection shared across the process
        kwargs.update({
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        })
    engine = create_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        _enable_sqlite_savepoints(engine)
    return engine


def get_engine(url: str | None = None) -> Engine:
    """Return the process-wide engine, building it on first use.

    Without ``url`` the engine follows ``TEST_DATABASE_URL`` then
    ``DATABASE_URL``. Ranks renumbered in one request must be visible to the
    next, so an in-memory database is kept on one shared connection.
    """
    global _ENGINE, _ENGINE_URL
    resolved_url = url or _db_url()

    if _ENGINE is None or _ENGINE_URL != resolved_url:
        _ENGINE = create_ranked_engine(resolved_url)
        _ENGINE_URL = resolved_url

    return _ENGINE


def get_sessionmaker(engine: Engine | None = None) -> sessionmaker:
    engine = engine or get_engine()
    return sessionmaker(bind=engine, future=True, expire_on_commit=False)


@contextmanager
def session_dependency(engine: Engine | None = None) -> Generator[Session, None, None]:
    """Unit of work yielding a session; commits on success, rolls back on error."""
    Session = get_sessionmaker(engine)
    session = Session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.error("DB session error; transaction rolled back", exc_info=True)
        raise
    finally:
        session.close()


__all__ = ["create_ranked_engine", "get_engine", "get_sessionmaker", "session_dependency"]
