"""Relational store with SQLAlchemy Core.

Handles:
- Engine construction for read-only / read-write connections
- Table reflection (tables are owned by the application's migrations)

Connection pooling is left to SQLAlchemy.
"""

import logging
import threading

from sqlalchemy import Engine, MetaData, Table, create_engine

from cachedao.settings import get_settings

logger = logging.getLogger(__name__)

_tables: dict[tuple[int, str], Table] = {}
_tables_lock = threading.Lock()


def create_sql_engine(url: str | None = None, *, read_only: bool = False) -> Engine:
    """Create a SQLAlchemy engine from settings.

    Args:
        url: Explicit database URL; defaults to the configured one.
        read_only: Use the read-only replica URL when no explicit URL is given.
    """
    settings = get_settings()
    if url is None:
        url = settings.read_only_database_url if read_only else settings.database_url
    engine = create_engine(url, echo=settings.database_echo, pool_pre_ping=True)
    logger.info(f"SQL engine created ({'RO' if read_only else 'RW'}): {engine.url.render_as_string(hide_password=True)}")
    return engine


def reflect_table(engine: Engine, name: str) -> Table:
    """Get the reflected table definition, memoized per engine."""
    key = (id(engine), name)
    with _tables_lock:
        table = _tables.get(key)
        if table is None:
            table = Table(name, MetaData(), autoload_with=engine)
            _tables[key] = table
        return table


def forget_tables() -> None:
    """Drop memoized table definitions (for testing only)."""
    with _tables_lock:
        _tables.clear()
