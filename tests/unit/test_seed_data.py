"""
Unit tests -- seed data generators (no database needed).
"""
import datetime

from sqlalchemy import create_engine

from pipelines.seed.seed_data import (
    CREATE_SQL,
    DATE_END,
    DATE_START,
    EVENT_METRICS,
    gen_facts,
    gen_sessions,
    insert_statement,
)
from factsapi.governance.catalog_loader import load_catalog


def test_sessions_reference_known_users():
    sessions = gen_sessions(num_sessions=50, num_users=5)
    assert len(sessions) == 50
    assert all(1 <= s["user_id"] <= 5 for s in sessions)


def test_fact_rows_cover_the_raw_projection():
    facts = gen_facts(gen_sessions(10, 3), num_facts=200)
    assert len(facts) == 200
    expected = set(load_catalog().raw_columns) | {"dimensions"}
    assert all(set(row) == expected for row in facts)


def test_fact_rows_are_consistent():
    for row in gen_facts(gen_sessions(10, 3), num_facts=200):
        assert row["metric_name"] in EVENT_METRICS[row["event_type"]]
        assert row["event_date"] == row["event_time"].date()
        assert DATE_START <= row["event_time"] <= DATE_END + datetime.timedelta(days=1)
        assert isinstance(row["metric_value"], float)


def test_table_ddl_matches_catalog():
    for col in load_catalog().raw_columns:
        assert col in CREATE_SQL


def test_insert_compiles_to_bare_values_for_native_driver():
    # create_engine does not connect; it only loads the dialect
    dialect = create_engine("clickhouse+native://localhost/default").dialect
    cols = list(gen_facts(gen_sessions(1, 1), num_facts=1)[0].keys())
    sql = str(insert_statement("facts", cols).compile(dialect=dialect))
    assert sql.startswith("INSERT INTO facts (")
    assert sql.endswith(") VALUES")
    assert "%(" not in sql
    assert all(c in sql for c in cols)
