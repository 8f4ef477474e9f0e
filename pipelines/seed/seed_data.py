"""
Seed data generator -- creates the ``facts`` table and fills it with events.

Generates:
  - ~500 users
  - ~20 000 sessions
  - ~100 000 fact rows (one metric per event)

All data is inserted via SQLAlchemy over the ClickHouse native dialect.
Run:  python -m pipelines.seed.seed_data
"""
from __future__ import annotations

import random
from datetime import datetime, timedelta

from faker import Faker
from sqlalchemy import column, table, text
from sqlalchemy.sql.expression import Insert

from factsapi.core.config import get_settings
from factsapi.db.connection import create_store_engine

fake = Faker()
Faker.seed(42)
random.seed(42)

# ── Tunables ─────────────────────────────────────────────
NUM_USERS = 500
NUM_SESSIONS = 20_000
NUM_FACTS = 100_000

EVENT_METRICS = {
    "page_view": ["page_views", "load_ms"],
    "click": ["clicks"],
    "purchase": ["revenue", "items"],
    "signup": ["signups"],
    "search": ["searches", "results_count"],
}
REGIONS = ["US", "EU", "APAC", "LATAM"]
DEVICES = ["mobile", "desktop", "tablet"]

# ── Helper: date ranges ─────────────────────────────────
DATE_START = datetime(2024, 1, 1)
DATE_END = datetime(2024, 12, 31)
DATE_RANGE_DAYS = (DATE_END - DATE_START).days

CREATE_SQL = """
CREATE TABLE IF NOT EXISTS facts (
    event_date   Date,
    event_time   DateTime,
    user_id      UInt64,
    session_id   String,
    event_type   LowCardinality(String),
    metric_name  LowCardinality(String),
    metric_value Float64,
    dimensions   Map(String, String)
)
ENGINE = MergeTree
PARTITION BY toYYYYMM(event_date)
ORDER BY (event_date, event_type, user_id)
"""


def _rand_ts() -> datetime:
    return DATE_START + timedelta(
        days=random.randint(0, DATE_RANGE_DAYS),
        hours=random.randint(0, 23),
        minutes=random.randint(0, 59),
        seconds=random.randint(0, 59),
    )


def _metric_value(metric_name: str) -> float:
    if metric_name == "revenue":
        return round(random.uniform(5.0, 500.0), 2)
    if metric_name == "load_ms":
        return float(random.randint(80, 4000))
    if metric_name in ("items", "results_count"):
        return float(random.randint(1, 20))
    return 1.0


# ── Generators ───────────────────────────────────────────

def gen_sessions(num_sessions: int = NUM_SESSIONS, num_users: int = NUM_USERS) -> list[dict]:
    return [
        {"session_id": fake.uuid4(), "user_id": random.randint(1, num_users)}
        for _ in range(num_sessions)
    ]


def gen_facts(sessions: list[dict], num_facts: int = NUM_FACTS) -> list[dict]:
    rows = []
    for _ in range(num_facts):
        session = random.choice(sessions)
        event_type = random.choice(list(EVENT_METRICS))
        metric_name = random.choice(EVENT_METRICS[event_type])
        ts = _rand_ts()
        rows.append({
            "event_date": ts.date(),
            "event_time": ts,
            "user_id": session["user_id"],
            "session_id": session["session_id"],
            "event_type": event_type,
            "metric_name": metric_name,
            "metric_value": _metric_value(metric_name),
            "dimensions": {"region": random.choice(REGIONS), "device": random.choice(DEVICES)},
        })
    return rows


# ── Bulk insert helper ───────────────────────────────────

def insert_statement(table_name: str, cols: list[str]) -> Insert:
    """INSERT for *cols*; the native dialect compiles it to a bare ``... VALUES``
    and the driver streams the row dicts as a data block."""
    return table(table_name, *(column(c) for c in cols)).insert()


def _bulk_insert(engine, table_name: str, rows: list[dict], batch_size: int = 10_000):
    """Insert rows into *table_name* in batches."""
    if not rows:
        return
    stmt = insert_statement(table_name, list(rows[0].keys()))
    with engine.begin() as conn:
        for i in range(0, len(rows), batch_size):
            conn.execute(stmt, rows[i : i + batch_size])
    print(f"  ✓ {table_name}: {len(rows):,} rows")


# ── Main ─────────────────────────────────────────────────

def main():
    print("═══ Facts Seed Generator ═══")
    settings = get_settings()
    engine = create_store_engine(settings)

    print("Creating and truncating facts table …")
    with engine.begin() as conn:
        conn.execute(text(CREATE_SQL))
        conn.execute(text("TRUNCATE TABLE facts"))

    print("Generating data …")
    sessions = gen_sessions()
    facts = gen_facts(sessions)

    print("Inserting …")
    _bulk_insert(engine, "facts", facts)

    print(f"\nDone — seeded {len(facts):,} facts across {len(sessions):,} sessions "
          f"into {settings.clickhouse_db}.")


if __name__ == "__main__":
    main()
