"""
Loads, parses, and caches the facts catalog YAML into typed objects.

The catalog is the single source of truth for:
  - the fact table and its raw projection
  - allowed group-by columns
  - aggregate metric expressions (strict whitelist)
  - time-series metric and granularity expressions (lenient, with defaults)
  - limit bounds
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from functools import lru_cache
from typing import Any

import yaml

_CATALOG_PATH = Path(__file__).resolve().parent / "facts_catalog.yml"


# ── Typed domain objects ─────────────────────────────────

@dataclass(frozen=True)
class TimeseriesRules:
    default_metric: str
    metrics: dict[str, str] = field(default_factory=dict)
    default_period: str = "event_date"
    granularities: dict[str, str] = field(default_factory=dict)

    def metric_expression(self, name: str | None) -> str:
        return self.metrics.get(name or "", self.default_metric)

    def period_expression(self, granularity: str | None) -> str:
        return self.granularities.get(granularity or "", self.default_period)


@dataclass(frozen=True)
class LimitRules:
    default: int = 100
    max: int = 10_000


@dataclass
class FactsCatalog:
    """Fully parsed facts catalog."""

    version: int
    fact_table: str
    raw_columns: list[str]
    group_by_columns: list[str]
    metrics: dict[str, str]             # metric name -> aggregate expression
    default_metrics: list[str]
    timeseries: TimeseriesRules
    limits: LimitRules

    # ── Convenience look-ups ─────────────────────────

    def is_group_by_column(self, name: str) -> bool:
        return name in self.group_by_columns

    def metric_expression(self, name: str) -> str | None:
        return self.metrics.get(name)

    def get_metric_names(self) -> list[str]:
        return list(self.metrics.keys())


# ── Parsing ──────────────────────────────────────────────

def _parse_timeseries(raw: dict[str, Any] | None) -> TimeseriesRules:
    raw = raw or {}
    return TimeseriesRules(
        default_metric=raw.get("default_metric", "sum(metric_value)"),
        metrics=dict(raw.get("metrics") or {}),
        default_period=raw.get("default_period", "event_date"),
        granularities=dict(raw.get("granularities") or {}),
    )


def _parse_limits(raw: dict[str, Any] | None) -> LimitRules:
    if not raw:
        return LimitRules()
    return LimitRules(default=raw.get("default", 100), max=raw.get("max", 10_000))


def _parse_catalog(raw_yaml: dict[str, Any]) -> FactsCatalog:
    return FactsCatalog(
        version=raw_yaml.get("version", 1),
        fact_table=raw_yaml["fact_table"],
        raw_columns=list(raw_yaml.get("raw_columns", [])),
        group_by_columns=list(raw_yaml.get("group_by_columns", [])),
        metrics=dict(raw_yaml.get("metrics", {})),
        default_metrics=list(raw_yaml.get("default_metrics", [])),
        timeseries=_parse_timeseries(raw_yaml.get("timeseries")),
        limits=_parse_limits(raw_yaml.get("limits")),
    )


# ── Public API ───────────────────────────────────────────

@lru_cache
def load_catalog() -> FactsCatalog:
    """Load and cache the facts catalog from YAML."""
    with open(_CATALOG_PATH) as f:
        raw = yaml.safe_load(f)
    return _parse_catalog(raw)
