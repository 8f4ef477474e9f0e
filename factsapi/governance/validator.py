"""
Validates query requests against the facts catalog.

Checks performed (aggregate shape):
  1. Every group-by column is in the whitelist
  2. Every metric name is in the whitelist
  3. An empty metric list becomes the default metrics (sum, count)
  4. limit is clamped to (0, max]; anything else becomes the default
  5. offset is floored at 0

The first offending token, in request order, is the one reported.  Group-by
columns are checked before metrics.

Time-series shape: date_from and date_to are both required.
"""
from __future__ import annotations

from factsapi.core.errors import RequestValidationError
from factsapi.core.logging import get_logger
from factsapi.governance.catalog_loader import load_catalog, FactsCatalog
from factsapi.query.spec import QueryRequest, TimeseriesRequest, ValidatedRequest

logger = get_logger(__name__)


def clamp_limit(limit: int | None, catalog: FactsCatalog | None = None) -> int:
    if catalog is None:
        catalog = load_catalog()
    if limit is None or limit <= 0 or limit > catalog.limits.max:
        return catalog.limits.default
    return limit


def clamp_offset(offset: int | None) -> int:
    if offset is None or offset < 0:
        return 0
    return offset


def parse_user_id(raw: str | None) -> int | None:
    """Return *raw* as an unsigned 64-bit id, or None when it isn't one.

    An unparseable id is dropped rather than rejected.
    """
    if not raw:
        return None
    try:
        uid = int(raw, 10)
    except ValueError:
        return None
    if uid < 0 or uid > 2**64 - 1:
        return None
    return uid


def validate_aggregate_request(
    request: QueryRequest,
    catalog: FactsCatalog | None = None,
) -> ValidatedRequest:
    """Return a normalised copy of *request* or raise on the first bad token.

    Raises
    ------
    RequestValidationError
        With ``field`` set to ``group_by`` or ``metric`` and ``value`` set to
        the offending token.
    """
    if catalog is None:
        catalog = load_catalog()

    for col in request.group_by:
        if not catalog.is_group_by_column(col):
            logger.warning("Rejected group_by column %r", col)
            raise RequestValidationError("group_by", col, f"invalid group_by column: {col}")

    metrics = list(request.metrics) or list(catalog.default_metrics)
    for m in metrics:
        if catalog.metric_expression(m) is None:
            logger.warning("Rejected metric %r", m)
            raise RequestValidationError("metric", m, f"invalid metric: {m}")

    return ValidatedRequest(
        date_from=request.date_from,
        date_to=request.date_to,
        event_types=tuple(request.event_types),
        user_ids=tuple(request.user_ids),
        group_by=tuple(request.group_by),
        metrics=tuple(metrics),
        limit=clamp_limit(request.limit, catalog),
        offset=clamp_offset(request.offset),
        filters=dict(request.filters),
    )


def validate_timeseries_request(request: TimeseriesRequest) -> TimeseriesRequest:
    """Require both ends of the date range; other fields fall back later."""
    for name in ("date_from", "date_to"):
        if not getattr(request, name):
            logger.warning("Time-series request missing %s", name)
            raise RequestValidationError(name, None, "date_from and date_to required")
    return request
