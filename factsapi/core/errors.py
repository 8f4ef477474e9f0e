"""
Exception taxonomy for the facts API.

The HTTP layer maps each class to a status code:
  - RequestValidationError -> 400
  - StorageError           -> 500 (driver message surfaced as-is)
  - QueryCancelled         -> 504
  - DecodeError            -> 500
"""
from __future__ import annotations

from typing import Any


class FactsApiError(Exception):
    """Base class for every error raised by the core."""


class RequestValidationError(FactsApiError):
    """A client-supplied token failed a whitelist or required-field check."""

    def __init__(self, field: str, value: Any = None, message: str | None = None):
        self.field = field
        self.value = value
        super().__init__(message or f"invalid {field}: {value}")


class StorageError(FactsApiError):
    """Any failure reported by the analytical store, including unreachability."""


class QueryCancelled(StorageError):
    """The caller's cancel token fired before the result was complete."""


class DecodeError(FactsApiError):
    """A result row did not match the column descriptors of its result set."""
