"""Engine and session plumbing shared by the API, the refresh worker and migrations."""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from config import DatabaseSettings, Settings, get_settings

logger = logging.getLogger(__name__)

SQLITE_PRAGMAS: tuple[str, ...] = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA busy_timeout=30000",
    "PRAGMA synchronous=NORMAL",
)

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _engine_options(settings: Settings) -> dict[str, Any]:
    db: DatabaseSettings = settings.database
    if db._use_postgres():
        return {
            "echo": settings.debug,
            "pool_size": db.pool_size,
            "pool_timeout": db.pool_timeout,
            "pool_recycle": db.pool_recycle,
            "pool_pre_ping": True,
        }
    # sync routes run in the threadpool, refresh writes on the store thread
    return {"echo": settings.debug, "connect_args": {"check_same_thread": False}}


def _install_sqlite_pragmas(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, connection_record) -> None:
        cur = dbapi_conn.cursor()
        for pragma in SQLITE_PRAGMAS:
            cur.execute(pragma)
        cur.close()


def get_engine() -> Engine:
    """Process-wide engine, built from settings on first use."""
    global _engine
    if _engine is not None:
        return _engine

    settings: Settings = get_settings()
    engine: Engine = create_engine(settings.database.url, **_engine_options(settings))
    if not settings.database._use_postgres():
        _install_sqlite_pragmas(engine)

    logger.debug("Engine ready: %s", settings.database.db_info_for_logging())
    _engine = engine
    return engine


def get_session_factory() -> sessionmaker[Session]:
    """Session factory bound to the shared engine.

    The staking refresh takes the factory rather than a session: every target
    writes through its own short session so one failed upsert cannot roll back
    another.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory


@contextmanager
def get_session(factory: sessionmaker[Session] | None = None) -> Generator[Session, None, None]:
    """One unit of work: commit on success, roll back and re-raise on error."""
    session: Session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency for read routes."""
    with get_session() as session:
        yield session
