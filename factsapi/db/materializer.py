"""
Result materialisation -- store rows in, order-preserving portable records out.

The column descriptors of an execution are resolved to slot classes once;
every row then gets fresh slots, one per column, in the store's column order.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Sequence

from pydantic import BaseModel, Field

from factsapi.core.errors import DecodeError
from factsapi.core.utils import CancelToken
from factsapi.db.types import ColumnKind, ColumnTypeDescriptor, ScanSlot, resolve
from factsapi.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class MaterializedRecord:
    """One result row as an ordered sequence of (column, value) pairs."""

    fields: tuple[tuple[str, Any], ...]

    def __iter__(self) -> Iterator[tuple[str, Any]]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def keys(self) -> list[str]:
        return [name for name, _ in self.fields]

    def get(self, name: str, default: Any = None) -> Any:
        for key, value in self.fields:
            if key == name:
                return value
        return default

    def as_dict(self) -> dict[str, Any]:
        """Insertion-ordered mapping for JSON encoding (keeps column order)."""
        return {name: value for name, value in self.fields}


# ── Generic decoding ─────────────────────────────────────

def slot_classes_for(descriptors: Sequence[ColumnTypeDescriptor]) -> list[type[ScanSlot]]:
    """Resolve every descriptor once per execution."""
    classes = [resolve(d) for d in descriptors]
    for d, cls in zip(descriptors, classes):
        if cls.kind is ColumnKind.OPAQUE:
            logger.debug("Column %s has unrecognised type %s -- passing through", d.name, d.type_name)
    return classes


def materialize_row(
    descriptors: Sequence[ColumnTypeDescriptor],
    slot_classes: Sequence[type[ScanSlot]],
    row: Sequence[Any],
) -> MaterializedRecord:
    if len(row) != len(descriptors):
        raise DecodeError(f"row has {len(row)} cells but result has {len(descriptors)} columns")
    fields = []
    for d, cls, raw in zip(descriptors, slot_classes, row):
        slot = cls(d.name)
        slot.scan(raw)
        fields.append((d.name, slot.value()))
    return MaterializedRecord(tuple(fields))


def materialize_rows(
    descriptors: Sequence[ColumnTypeDescriptor],
    rows: Iterable[Sequence[Any]],
    cancel: CancelToken | None = None,
) -> list[MaterializedRecord]:
    """Decode *rows* in store order.

    Raises
    ------
    QueryCancelled
        If *cancel* fires; the rows decoded so far are dropped.
    """
    slot_classes = slot_classes_for(descriptors)
    records: list[MaterializedRecord] = []
    for row in rows:
        if cancel is not None:
            cancel.raise_if_cancelled()
        records.append(materialize_row(descriptors, slot_classes, row))
    if cancel is not None:
        cancel.raise_if_cancelled()
    return records


# ── Fixed-shape records ──────────────────────────────────

class FactRow(BaseModel):
    event_date: str
    event_time: str
    user_id: int
    session_id: str
    event_type: str
    metric_name: str
    metric_value: float | None
    dimensions: dict[str, str] = Field(default_factory=dict)


class TimeseriesPoint(BaseModel):
    period: str
    value: float | None


@dataclass(frozen=True)
class AggregateResult:
    """Group values followed by metric values, both in request order."""

    groups: tuple[tuple[str, Any], ...]
    values: tuple[tuple[str, Any], ...]

    def as_dict(self) -> dict[str, Any]:
        out = dict(self.groups)
        out.update(self.values)
        return out


def to_fact_row(record: MaterializedRecord) -> FactRow:
    event_date = record.get("event_date")
    return FactRow(
        event_date=event_date[:10] if event_date else "",
        event_time=record.get("event_time") or "",
        user_id=record.get("user_id"),
        session_id=record.get("session_id"),
        event_type=record.get("event_type"),
        metric_name=record.get("metric_name"),
        metric_value=record.get("metric_value"),
    )


def to_aggregate_result(record: MaterializedRecord, group_by: Sequence[str]) -> AggregateResult:
    n = len(group_by)
    return AggregateResult(groups=record.fields[:n], values=record.fields[n:])


def to_timeseries_point(record: MaterializedRecord) -> TimeseriesPoint:
    value = record.get("value")
    return TimeseriesPoint(
        period=record.get("period"),
        value=None if value is None else float(value),
    )
