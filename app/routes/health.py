"""Database health report for /health/db."""

import logging
import os

from sqlalchemy import inspect

from config import DatabaseSettings, get_settings
from db.connection import get_engine
from db.models import Base
from yieldbridge.services._types import DbInfoDict

logger: logging.Logger = logging.getLogger(__name__)


def _describe_backend(db: DatabaseSettings) -> tuple[str, str | None]:
    if db._use_postgres():
        return "postgres", db._redacted_postgres_dsn()
    return "sqlite", db._resolved_sqlite_path().as_posix()


def _existing_tables() -> set[str]:
    try:
        return set(inspect(get_engine()).get_table_names())
    except Exception as e:
        logger.warning("Table listing failed: %s", e)
        return set()


def get_db_info() -> DbInfoDict:
    """Backend, location and whether staking tables exist. Errors go into the report."""
    try:
        backend, location = _describe_backend(get_settings().database)
    except Exception as e:
        logger.exception("Database settings unreadable: %s", e)
        return DbInfoDict(
            backend_type="unknown",
            database_url_or_path=None,
            schema_initialized=False,
            error=str(e),
            pid=os.getpid(),
        )

    expected: set[str] = set(Base.metadata.tables)
    existing: set[str] = _existing_tables()
    return DbInfoDict(
        backend_type=backend,
        database_url_or_path=location,
        tables_present=sorted(existing),
        tables_missing=sorted(expected - existing),
        schema_initialized=expected <= existing,
        pid=os.getpid(),
    )
