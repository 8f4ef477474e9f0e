"""SQLAlchemy engine factory for the ClickHouse store.

The engine (and its connection pool) is created once at application start-up
and passed explicitly to whatever needs it; nothing here keeps a module-level
handle.  Queries borrow a connection through `read_connection`, which applies
per-query ClickHouse settings and returns the connection to the pool on exit.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine

from factsapi.core.config import Settings, get_settings
from factsapi.core.logging import get_logger

logger = get_logger(__name__)

# readonly=2: no writes, but per-query settings such as max_execution_time are allowed
_READONLY = 2


def create_store_engine(settings: Settings | None = None) -> Engine:
    """Build the pooled engine for the analytical store."""
    if settings is None:
        settings = get_settings()
    engine = create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_recycle=settings.pool_recycle_s,
        connect_args={
            "connect_timeout": settings.connect_timeout_s,
            "settings": {"max_execution_time": settings.clickhouse_max_execution_time},
        },
        echo=False,
    )
    logger.info(
        "Store engine created  host=%s  port=%s  db=%s",
        settings.clickhouse_host, settings.clickhouse_port, settings.clickhouse_db,
    )
    return engine


@contextmanager
def read_connection(
    engine: Engine,
    max_execution_time: int | None = None,
) -> Generator[Connection, None, None]:
    """Yield a pooled connection whose queries run with ``readonly`` set.

    *max_execution_time* (seconds) overrides the engine-wide store timeout.
    """
    query_settings: dict[str, Any] = {"readonly": _READONLY}
    if max_execution_time is not None:
        query_settings["max_execution_time"] = max(1, int(max_execution_time))
    conn = engine.connect().execution_options(settings=query_settings)
    try:
        yield conn
    finally:
        conn.close()


def ping(engine: Engine) -> tuple[bool, str | None]:
    """Run a trivial query; return ``(ok, error text or None)``."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("Store ping failed: %s", exc)
        return False, str(exc)
    return True, None
