"""
SQL builder -- turns validated requests into parameterized ClickHouse SELECTs.

Identifiers and aggregate expressions are read from the facts catalog; every
client-supplied value travels as a bound parameter (``:p0``, ``:p1`` ...).
Only limit and offset are rendered literally, and both are server-clamped
integers by the time they get here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from factsapi.governance.catalog_loader import load_catalog, FactsCatalog
from factsapi.query.spec import ValidatedRequest
from factsapi.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class BuiltQuery:
    """Query text plus its bind arguments, in placeholder order."""

    sql: str
    args: list[Any] = field(default_factory=list)

    @property
    def params(self) -> dict[str, Any]:
        return {f"p{i}": v for i, v in enumerate(self.args)}


class _Binder:
    """Hands out numbered placeholders and records their values in order."""

    def __init__(self) -> None:
        self.args: list[Any] = []

    def bind(self, value: Any) -> str:
        placeholder = f":p{len(self.args)}"
        self.args.append(value)
        return placeholder

    def bind_all(self, values) -> str:
        return ", ".join(self.bind(v) for v in values)


def _where(conditions: list[str]) -> str | None:
    if not conditions:
        return None
    return "WHERE " + "\n  AND ".join(conditions)


# ── Raw rows ─────────────────────────────────────────────

def build_raw_query(
    date_from: str | None = None,
    date_to: str | None = None,
    event_type: str | None = None,
    user_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
    catalog: FactsCatalog | None = None,
) -> BuiltQuery:
    """Fixed projection of the fact table, most recent event first."""
    if catalog is None:
        catalog = load_catalog()

    b = _Binder()
    conditions: list[str] = []
    if date_from:
        conditions.append(f"event_date >= {b.bind(date_from)}")
    if date_to:
        conditions.append(f"event_date <= {b.bind(date_to)}")
    if event_type:
        conditions.append(f"event_type = {b.bind(event_type)}")
    if user_id is not None:
        conditions.append(f"user_id = {b.bind(user_id)}")

    sql_lines = [
        "SELECT " + ", ".join(catalog.raw_columns),
        f"FROM {catalog.fact_table}",
    ]
    where = _where(conditions)
    if where:
        sql_lines.append(where)
    sql_lines.append("ORDER BY event_time DESC")
    sql_lines.append(f"LIMIT {int(limit)} OFFSET {int(offset)}")

    sql = "\n".join(sql_lines)
    logger.debug("Built raw query:\n%s", sql)
    return BuiltQuery(sql, b.args)


# ── Grouped aggregation ──────────────────────────────────

def build_aggregate_query(
    req: ValidatedRequest,
    catalog: FactsCatalog | None = None,
) -> BuiltQuery:
    """Group-by columns and metric aggregates, largest first metric on top.

    *req* must come from ``validate_aggregate_request``: the group-by columns
    are used as identifiers and the metric list must be non-empty.
    """
    if catalog is None:
        catalog = load_catalog()
    assert req.metrics, "validated request must carry at least one metric"

    # ── SELECT clause ────────────────────────────────
    select_parts: list[str] = list(req.group_by)
    for m in req.metrics:
        expr = catalog.metric_expression(m)
        assert expr is not None, f"metric {m!r} was not validated"
        select_parts.append(f"{expr} AS {m}")

    # ── WHERE clause ─────────────────────────────────
    b = _Binder()
    conditions: list[str] = []
    if req.date_from:
        conditions.append(f"event_date >= {b.bind(req.date_from)}")
    if req.date_to:
        conditions.append(f"event_date <= {b.bind(req.date_to)}")
    if req.event_types:
        conditions.append(f"event_type IN ({b.bind_all(req.event_types)})")
    if req.user_ids:
        conditions.append(f"user_id IN ({b.bind_all(req.user_ids)})")

    # ── Assemble ─────────────────────────────────────
    sql_lines = [
        "SELECT " + ", ".join(select_parts),
        f"FROM {catalog.fact_table}",
    ]
    where = _where(conditions)
    if where:
        sql_lines.append(where)
    if req.group_by:
        sql_lines.append("GROUP BY " + ", ".join(req.group_by))

    # ORDER BY the first metric descending by default
    sql_lines.append(f"ORDER BY {req.metrics[0]} DESC")
    sql_lines.append(f"LIMIT {int(req.limit)}")
    if req.offset > 0:
        sql_lines.append(f"OFFSET {int(req.offset)}")

    sql = "\n".join(sql_lines)
    logger.debug("Built aggregate query:\n%s", sql)
    return BuiltQuery(sql, b.args)


# ── Time series ──────────────────────────────────────────

def build_timeseries_query(
    date_from: str,
    date_to: str,
    event_type: str | None = None,
    metric: str | None = None,
    granularity: str | None = None,
    catalog: FactsCatalog | None = None,
) -> BuiltQuery:
    """One (period, value) row per time bucket, oldest first.

    Unknown *metric* falls back to ``sum(metric_value)`` and unknown
    *granularity* to plain calendar days; neither is an error here.
    """
    if catalog is None:
        catalog = load_catalog()
    assert date_from and date_to, "time series needs both ends of the date range"

    metric_expr = catalog.timeseries.metric_expression(metric)
    period_expr = catalog.timeseries.period_expression(granularity)

    b = _Binder()
    conditions = [
        f"event_date >= {b.bind(date_from)}",
        f"event_date <= {b.bind(date_to)}",
    ]
    if event_type:
        conditions.append(f"event_type = {b.bind(event_type)}")

    sql = "\n".join([
        f"SELECT {period_expr} AS period, {metric_expr} AS value",
        f"FROM {catalog.fact_table}",
        _where(conditions),
        "GROUP BY period",
        "ORDER BY period",
    ])
    logger.debug("Built time-series query:\n%s", sql)
    return BuiltQuery(sql, b.args)
