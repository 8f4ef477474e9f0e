"""
Shared fixtures -- an in-memory stand-in for the SQLAlchemy store engine.

The fake mimics the slice of the engine API the executor and health probe
use: connect() -> execution_options() -> execute() -> result with a DB-API
cursor description, iteration and close().  Each connection also exposes the
native client (``connection.driver_connection.transport``) so cancellation
can disconnect it.
"""
from __future__ import annotations

import threading
from types import SimpleNamespace
from typing import Any, Callable, Iterable

import pytest


class FakeResult:
    def __init__(self, description, rows: Iterable):
        self.cursor = SimpleNamespace(description=description)
        self._rows = rows
        self.closed = False

    def __iter__(self):
        return iter(self._rows)

    def close(self):
        self.closed = True


class FakeTransport:
    """The native client; ``disconnected`` is set once it drops its socket."""

    def __init__(self):
        self.disconnected = threading.Event()

    def disconnect(self):
        self.disconnected.set()


class FakeConnection:
    def __init__(self, engine: "FakeEngine"):
        self.engine = engine
        self.options: dict[str, Any] = {}
        self.closed = False
        self.transport = FakeTransport()
        self.connection = SimpleNamespace(
            driver_connection=SimpleNamespace(transport=self.transport)
        )

    def execution_options(self, **opts):
        self.options.update(opts)
        return self

    def execute(self, clause, params=None):
        self.engine.executed.append(
            {"sql": str(clause), "params": params, "options": dict(self.options)}
        )
        self.engine.connections.append(self)
        if self.engine.on_execute is not None:
            self.engine.on_execute(self)
        if self.engine.error is not None:
            raise self.engine.error
        self.engine.last_result = FakeResult(self.engine.description, self.engine.rows)
        return self.engine.last_result

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class FakeEngine:
    """Returns the same description/rows for every query, or raises *error*.

    *on_execute* is called with the connection before the result is produced,
    e.g. to simulate a query that blocks or runs long.
    """

    def __init__(
        self,
        description=(),
        rows: Iterable = (),
        error: Exception | None = None,
        on_execute: Callable[[FakeConnection], None] | None = None,
    ):
        self.description = [(name, type_name, None, None, None, None, True) for name, type_name in description]
        self.rows = rows
        self.error = error
        self.on_execute = on_execute
        self.executed: list[dict[str, Any]] = []
        self.connections: list[FakeConnection] = []
        self.last_result: FakeResult | None = None

    def connect(self):
        return FakeConnection(self)


@pytest.fixture
def make_engine():
    return FakeEngine
