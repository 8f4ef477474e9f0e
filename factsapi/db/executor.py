"""
Query executor.

Every built query runs through `execute_query`, which:
  1. Borrows a pooled connection with ``readonly`` and a per-query timeout
  2. Binds the arguments through text() -- values never reach the SQL text
  3. Reads the column descriptors once from the cursor description
  4. Materialises the rows, honouring the caller's cancel token

While the query is in flight a watcher thread polls the cancel token and
drops the driver's socket when it fires, so the store stops waiting on us.
"""
from __future__ import annotations

import math
import threading
from contextlib import contextmanager
from typing import Any, Generator, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from factsapi.core.errors import FactsApiError, QueryCancelled, StorageError
from factsapi.core.utils import CancelToken
from factsapi.db.connection import read_connection
from factsapi.db.materializer import MaterializedRecord, materialize_rows
from factsapi.db.types import ColumnTypeDescriptor
from factsapi.query.sql_builder import BuiltQuery
from factsapi.core.logging import get_logger

logger = get_logger(__name__)

_WATCH_INTERVAL_S = 0.05


def describe_columns(description: Sequence[Sequence[Any]] | None) -> list[ColumnTypeDescriptor]:
    """Turn a DB-API cursor description into column descriptors.

    The ClickHouse driver reports the store type name (e.g. ``UInt64``) as
    the ``type_code`` of each entry.
    """
    if not description:
        return []
    return [ColumnTypeDescriptor(name=col[0], type_name=str(col[1])) for col in description]


def _store_message(exc: Exception) -> str:
    # SQLAlchemy wraps driver errors; the driver's own text is what callers see
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def _abort_store_query(conn: Connection) -> None:
    # The native client reconnects on its next query.
    conn.connection.driver_connection.transport.disconnect()


@contextmanager
def _abort_on_cancel(conn: Connection, cancel: CancelToken | None) -> Generator[None, None, None]:
    """Disconnect *conn* if *cancel* fires before the block exits."""
    if cancel is None:
        yield
        return

    done = threading.Event()

    def watch() -> None:
        while not done.wait(_WATCH_INTERVAL_S):
            if cancel.cancelled:
                logger.warning("Aborting in-flight store query")
                try:
                    _abort_store_query(conn)
                except Exception:
                    logger.exception("Failed to abort store query")
                return

    watcher = threading.Thread(target=watch, name="query-cancel-watch", daemon=True)
    watcher.start()
    try:
        yield
    finally:
        done.set()
        watcher.join()


def execute_query(
    engine: Engine,
    query: BuiltQuery,
    cancel: CancelToken | None = None,
) -> list[MaterializedRecord]:
    """Execute *query* and return its rows as ordered records.

    Raises
    ------
    StorageError
        If the store fails for any reason (message is the driver's text).
    QueryCancelled
        If *cancel* fires before the result is complete, including when the
        store itself gives up on the query at the deadline.
    """
    if cancel is not None:
        cancel.raise_if_cancelled()
    remaining = cancel.remaining() if cancel is not None else None
    max_execution_time = math.ceil(remaining) if remaining is not None else None

    logger.info("Executing SQL (%d chars, %d args)", len(query.sql), len(query.args))
    try:
        with read_connection(engine, max_execution_time) as conn:
            with _abort_on_cancel(conn, cancel):
                result = conn.execute(text(query.sql), query.params)
                try:
                    descriptors = describe_columns(result.cursor.description)
                    records = materialize_rows(descriptors, result, cancel)
                finally:
                    result.close()
    except FactsApiError:
        raise
    except Exception as exc:
        if cancel is not None and cancel.cancelled:
            logger.warning("Store query cancelled: %s", _store_message(exc))
            raise QueryCancelled("query cancelled") from exc
        logger.exception("Store query failed")
        raise StorageError(_store_message(exc)) from exc

    logger.info("Returned %d rows", len(records))
    return records
