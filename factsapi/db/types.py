"""
Runtime type dispatch for result columns.

The store reports a type name per result column only once a query has run
(``DateTime64(3)``, ``UInt64``, ``LowCardinality(String)`` ...).  Each name
maps to one member of the closed ``ColumnKind`` enum, and each kind has one
``ScanSlot`` class that receives a cell and turns it into a portable value.

Unrecognised types map to ``OPAQUE``: the cell is passed through unexamined
instead of failing the whole response.
"""
from __future__ import annotations

import datetime
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

from factsapi.core.errors import DecodeError

TEMPORAL_FORMAT = "%Y-%m-%dT%H:%M:%S"


class ColumnKind(str, Enum):
    TEMPORAL = "temporal"
    UINT64 = "uint64"
    FLOAT64 = "float64"
    TEXT = "text"
    OPAQUE = "opaque"


_KIND_BY_TYPE: dict[str, ColumnKind] = {
    "Date": ColumnKind.TEMPORAL,
    "Date32": ColumnKind.TEMPORAL,
    "DateTime": ColumnKind.TEMPORAL,
    "DateTime64": ColumnKind.TEMPORAL,
    "UInt64": ColumnKind.UINT64,
    "Float64": ColumnKind.FLOAT64,
    "String": ColumnKind.TEXT,
    "LowCardinality(String)": ColumnKind.TEXT,
    "FixedString": ColumnKind.TEXT,
}


def normalize_type_name(type_name: str) -> str:
    """Strip ``Nullable(...)`` and type parameters, keeping LowCardinality(String).

    e.g. ``Nullable(DateTime64(3, 'UTC'))`` -> ``DateTime64``
    """
    name = type_name.strip()
    if name.startswith("Nullable(") and name.endswith(")"):
        name = name[len("Nullable("):-1].strip()
    if name in _KIND_BY_TYPE:
        return name
    return name.split("(", 1)[0].strip()


def resolve_kind(type_name: str) -> ColumnKind:
    return _KIND_BY_TYPE.get(normalize_type_name(type_name), ColumnKind.OPAQUE)


@dataclass(frozen=True)
class ColumnTypeDescriptor:
    """A result column as reported by the store for one execution."""

    name: str
    type_name: str

    @property
    def kind(self) -> ColumnKind:
        return resolve_kind(self.type_name)


# ── Scan slots ───────────────────────────────────────────

class ScanSlot:
    """Holder for a single cell.  One instance per column per row."""

    kind: ColumnKind = ColumnKind.OPAQUE

    def __init__(self, column: str):
        self.column = column
        self._raw: Any = None

    def scan(self, raw: Any) -> None:
        self._raw = raw

    def value(self) -> Any:
        return self._raw

    def _reject(self, raw: Any) -> DecodeError:
        return DecodeError(
            f"cannot scan {type(raw).__name__} into {self.kind.value} column '{self.column}'"
        )


class TemporalSlot(ScanSlot):
    kind = ColumnKind.TEMPORAL

    def scan(self, raw: Any) -> None:
        if raw is not None and not isinstance(raw, datetime.date):
            raise self._reject(raw)
        self._raw = raw

    def value(self) -> str | None:
        if self._raw is None:
            return None
        return self._raw.strftime(TEMPORAL_FORMAT)


class UInt64Slot(ScanSlot):
    kind = ColumnKind.UINT64

    def scan(self, raw: Any) -> None:
        if raw is not None and (isinstance(raw, bool) or not isinstance(raw, int)):
            raise self._reject(raw)
        self._raw = raw


class Float64Slot(ScanSlot):
    kind = ColumnKind.FLOAT64

    def scan(self, raw: Any) -> None:
        if raw is not None and (isinstance(raw, bool) or not isinstance(raw, (int, float))):
            raise self._reject(raw)
        self._raw = raw

    def value(self) -> float | None:
        if self._raw is None:
            return None
        v = float(self._raw)
        # nan/inf (e.g. avg over an empty set) have no JSON form
        return v if math.isfinite(v) else None


class TextSlot(ScanSlot):
    kind = ColumnKind.TEXT

    def scan(self, raw: Any) -> None:
        if isinstance(raw, (bytes, bytearray)):
            raw = bytes(raw).decode("utf-8", errors="replace")
        if raw is not None and not isinstance(raw, str):
            raise self._reject(raw)
        self._raw = raw


class OpaqueSlot(ScanSlot):
    kind = ColumnKind.OPAQUE


_SLOT_BY_KIND: dict[ColumnKind, type[ScanSlot]] = {
    ColumnKind.TEMPORAL: TemporalSlot,
    ColumnKind.UINT64: UInt64Slot,
    ColumnKind.FLOAT64: Float64Slot,
    ColumnKind.TEXT: TextSlot,
    ColumnKind.OPAQUE: OpaqueSlot,
}


def resolve(descriptor: ColumnTypeDescriptor) -> type[ScanSlot]:
    """Return the slot class that decodes cells of *descriptor*."""
    return _SLOT_BY_KIND[descriptor.kind]
