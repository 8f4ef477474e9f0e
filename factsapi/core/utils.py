"""
Small shared utilities: wall-clock timing and query cancellation.
"""
from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Generator

from factsapi.core.errors import QueryCancelled


@contextmanager
def timer() -> Generator[dict, None, None]:
    """Context manager that records elapsed wall-clock milliseconds."""
    result: dict = {}
    start = time.perf_counter()
    try:
        yield result
    finally:
        result["elapsed_ms"] = int((time.perf_counter() - start) * 1000)


class CancelToken:
    """Caller-owned cancellation signal with an optional deadline.

    The token fires either when ``cancel()`` is called (from any thread) or
    once ``timeout_s`` seconds have passed since it was created.

    Parameters
    ----------
    timeout_s : float, optional
        Seconds until the deadline.  None means no deadline.
    """

    def __init__(self, timeout_s: float | None = None):
        self._event = threading.Event()
        self._deadline = None if timeout_s is None else time.monotonic() + timeout_s

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when there is none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise QueryCancelled("query cancelled")
