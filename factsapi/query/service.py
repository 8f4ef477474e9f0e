"""
Facts query service -- orchestrates validate -> build -> execute -> shape.

One entry point per request shape.  Each takes the store engine explicitly
and an optional cancel token; nothing is cached and nothing is retried, so a
store failure reaches the caller straight away.
"""
from __future__ import annotations

from typing import Any

from sqlalchemy.engine import Engine

from factsapi.core.utils import CancelToken, timer
from factsapi.db.executor import execute_query
from factsapi.db.materializer import (
    FactRow,
    TimeseriesPoint,
    to_aggregate_result,
    to_fact_row,
    to_timeseries_point,
)
from factsapi.governance.catalog_loader import load_catalog
from factsapi.governance.validator import (
    clamp_limit,
    clamp_offset,
    parse_user_id,
    validate_aggregate_request,
    validate_timeseries_request,
)
from factsapi.query.spec import QueryRequest, RawFactsRequest, TimeseriesRequest
from factsapi.query.sql_builder import (
    build_aggregate_query,
    build_raw_query,
    build_timeseries_query,
)
from factsapi.core.logging import get_logger

logger = get_logger(__name__)


def fetch_facts(
    engine: Engine,
    req: RawFactsRequest,
    cancel: CancelToken | None = None,
) -> list[FactRow]:
    """Raw fact rows, most recent first."""
    catalog = load_catalog()
    with timer() as t:
        query = build_raw_query(
            date_from=req.date_from,
            date_to=req.date_to,
            event_type=req.event_type,
            user_id=parse_user_id(req.user_id),
            limit=clamp_limit(req.limit, catalog),
            offset=clamp_offset(req.offset),
            catalog=catalog,
        )
        rows = [to_fact_row(r) for r in execute_query(engine, query, cancel)]
    logger.info("facts | rows=%d | %d ms", len(rows), t["elapsed_ms"])
    return rows


def aggregate_facts(
    engine: Engine,
    req: QueryRequest,
    cancel: CancelToken | None = None,
) -> list[dict[str, Any]]:
    """Grouped aggregates; each row keeps group columns then metrics, in request order."""
    catalog = load_catalog()
    validated = validate_aggregate_request(req, catalog)
    if validated.filters:
        # TODO: bind filters as dimensions[key] = value conditions once their semantics are agreed
        logger.info("Ignoring %d dimension filter(s): not applied to aggregates", len(validated.filters))
    with timer() as t:
        query = build_aggregate_query(validated, catalog)
        records = execute_query(engine, query, cancel)
        rows = [to_aggregate_result(r, validated.group_by).as_dict() for r in records]
    logger.info(
        "aggregate | group_by=%s | metrics=%s | rows=%d | %d ms",
        list(validated.group_by), list(validated.metrics), len(rows), t["elapsed_ms"],
    )
    return rows


def timeseries(
    engine: Engine,
    req: TimeseriesRequest,
    cancel: CancelToken | None = None,
) -> list[TimeseriesPoint]:
    """(period, value) points, oldest period first."""
    req = validate_timeseries_request(req)
    with timer() as t:
        query = build_timeseries_query(
            date_from=req.date_from,
            date_to=req.date_to,
            event_type=req.event_type,
            metric=req.metric,
            granularity=req.granularity,
        )
        points = [to_timeseries_point(r) for r in execute_query(engine, query, cancel)]
    logger.info(
        "timeseries | metric=%s | granularity=%s | points=%d | %d ms",
        req.metric, req.granularity, len(points), t["elapsed_ms"],
    )
    return points
