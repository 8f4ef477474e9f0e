"""
Unit tests -- SQL builder: three query shapes, bound arguments, fallbacks.
"""
import pytest

from factsapi.governance.catalog_loader import load_catalog
from factsapi.governance.validator import validate_aggregate_request
from factsapi.query.spec import QueryRequest
from factsapi.query.sql_builder import (
    BuiltQuery,
    build_aggregate_query,
    build_raw_query,
    build_timeseries_query,
)


@pytest.fixture(scope="module")
def catalog():
    return load_catalog()


def _validated(catalog, **overrides):
    base = dict(date_from="2024-01-01", date_to="2024-01-31", group_by=["event_type"], metrics=["sum", "count"])
    base.update(overrides)
    return validate_aggregate_request(QueryRequest(**base), catalog)


# ── BuiltQuery ───────────────────────────────────────────

def test_params_follow_placeholder_order():
    q = BuiltQuery("SELECT :p0, :p1", ["a", 7])
    assert q.params == {"p0": "a", "p1": 7}


# ── Raw rows ─────────────────────────────────────────────

def test_raw_query_without_filters(catalog):
    q = build_raw_query(limit=100, offset=0, catalog=catalog)
    assert q.sql == (
        "SELECT event_date, event_time, user_id, session_id, event_type, metric_name, metric_value\n"
        "FROM facts\n"
        "ORDER BY event_time DESC\n"
        "LIMIT 100 OFFSET 0"
    )
    assert q.args == []


def test_raw_query_with_all_filters(catalog):
    q = build_raw_query(
        date_from="2024-01-01", date_to="2024-01-31", event_type="click", user_id=42,
        limit=10, offset=20, catalog=catalog,
    )
    assert "WHERE event_date >= :p0\n  AND event_date <= :p1\n  AND event_type = :p2\n  AND user_id = :p3" in q.sql
    assert q.args == ["2024-01-01", "2024-01-31", "click", 42]
    assert q.sql.endswith("LIMIT 10 OFFSET 20")


def test_raw_query_values_never_interpolated(catalog):
    evil = "click' OR 1=1 --"
    q = build_raw_query(event_type=evil, catalog=catalog)
    assert evil not in q.sql
    assert q.args == [evil]


def test_raw_query_skips_absent_filters(catalog):
    q = build_raw_query(event_type="purchase", catalog=catalog)
    assert "WHERE event_type = :p0" in q.sql
    assert "event_date" not in q.sql.split("FROM")[1]


# ── Aggregate ────────────────────────────────────────────

def test_aggregate_reference_query(catalog):
    q = build_aggregate_query(_validated(catalog), catalog)
    assert q.sql == (
        "SELECT event_type, sum(metric_value) AS sum, count() AS count\n"
        "FROM facts\n"
        "WHERE event_date >= :p0\n"
        "  AND event_date <= :p1\n"
        "GROUP BY event_type\n"
        "ORDER BY sum DESC\n"
        "LIMIT 100"
    )
    assert q.args == ["2024-01-01", "2024-01-31"]


@pytest.mark.parametrize("metric,expr", [
    ("sum", "sum(metric_value) AS sum"),
    ("avg", "avg(metric_value) AS avg"),
    ("count", "count() AS count"),
    ("min", "min(metric_value) AS min"),
    ("max", "max(metric_value) AS max"),
    ("uniq", "uniq(user_id) AS uniq"),
])
def test_aggregate_metric_expressions(catalog, metric, expr):
    q = build_aggregate_query(_validated(catalog, metrics=[metric]), catalog)
    assert expr in q.sql
    assert f"ORDER BY {metric} DESC" in q.sql


def test_aggregate_orders_by_first_requested_metric(catalog):
    q = build_aggregate_query(_validated(catalog, metrics=["uniq", "sum"]), catalog)
    assert "ORDER BY uniq DESC" in q.sql


def test_aggregate_in_lists_bind_each_element(catalog):
    v = _validated(catalog, event_types=["click", "view"], user_ids=[1, 2, 3])
    q = build_aggregate_query(v, catalog)
    assert "event_type IN (:p2, :p3)" in q.sql
    assert "user_id IN (:p4, :p5, :p6)" in q.sql
    assert q.args == ["2024-01-01", "2024-01-31", "click", "view", 1, 2, 3]


def test_aggregate_without_group_by_has_no_group_clause(catalog):
    q = build_aggregate_query(_validated(catalog, group_by=[]), catalog)
    assert "GROUP BY" not in q.sql
    assert q.sql.startswith("SELECT sum(metric_value) AS sum, count() AS count\n")


def test_aggregate_without_dates_has_no_where(catalog):
    q = build_aggregate_query(_validated(catalog, date_from="", date_to=""), catalog)
    assert "WHERE" not in q.sql
    assert q.args == []


def test_aggregate_offset_only_when_positive(catalog):
    assert "OFFSET" not in build_aggregate_query(_validated(catalog, offset=0), catalog).sql
    q = build_aggregate_query(_validated(catalog, limit=25, offset=50), catalog)
    assert q.sql.endswith("LIMIT 25\nOFFSET 50")


def test_aggregate_group_by_column_order_kept(catalog):
    q = build_aggregate_query(_validated(catalog, group_by=["user_id", "event_date"]), catalog)
    assert q.sql.startswith("SELECT user_id, event_date, sum(metric_value) AS sum")
    assert "GROUP BY user_id, event_date" in q.sql


def test_aggregate_filters_do_not_reach_sql(catalog):
    q = build_aggregate_query(_validated(catalog, filters={"region": "EU"}), catalog)
    assert "region" not in q.sql
    assert "EU" not in q.args


# ── Time series ──────────────────────────────────────────

def test_timeseries_defaults(catalog):
    q = build_timeseries_query("2024-01-01", "2024-01-31", catalog=catalog)
    assert q.sql == (
        "SELECT event_date AS period, sum(metric_value) AS value\n"
        "FROM facts\n"
        "WHERE event_date >= :p0\n"
        "  AND event_date <= :p1\n"
        "GROUP BY period\n"
        "ORDER BY period"
    )
    assert q.args == ["2024-01-01", "2024-01-31"]


def test_timeseries_unknown_metric_falls_back_to_sum(catalog):
    q = build_timeseries_query("2024-01-01", "2024-01-31", metric="bogus", catalog=catalog)
    assert "sum(metric_value) AS value" in q.sql


def test_timeseries_unknown_granularity_falls_back_to_day(catalog):
    q = build_timeseries_query("2024-01-01", "2024-01-31", granularity="bogus", catalog=catalog)
    assert "SELECT event_date AS period" in q.sql


@pytest.mark.parametrize("granularity,expr", [
    ("hour", "toStartOfHour(event_time)"),
    ("week", "toMonday(event_date)"),
    ("month", "toStartOfMonth(event_date)"),
    ("day", "event_date"),
])
def test_timeseries_granularities(catalog, granularity, expr):
    q = build_timeseries_query("2024-01-01", "2024-01-31", granularity=granularity, catalog=catalog)
    assert q.sql.startswith(f"SELECT {expr} AS period")


@pytest.mark.parametrize("metric,expr", [
    ("avg", "avg(metric_value)"),
    ("count", "count()"),
    ("uniq", "uniq(user_id)"),
])
def test_timeseries_metrics(catalog, metric, expr):
    q = build_timeseries_query("2024-01-01", "2024-01-31", metric=metric, catalog=catalog)
    assert f"{expr} AS value" in q.sql


def test_timeseries_event_type_bound(catalog):
    q = build_timeseries_query("2024-01-01", "2024-01-31", event_type="click", catalog=catalog)
    assert "AND event_type = :p2" in q.sql
    assert q.args == ["2024-01-01", "2024-01-31", "click"]
