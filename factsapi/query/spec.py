"""
Request models -- the structured input of the three query shapes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Any

from pydantic import BaseModel, Field, field_validator

UInt64 = Annotated[int, Field(ge=0, le=2**64 - 1)]


def _lenient_int(value: Any) -> int | None:
    """Parse an integer the way a query string is read: garbage becomes None."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class QueryRequest(BaseModel):
    """Body of POST /api/facts/aggregate."""

    date_from: str = Field("", description="Inclusive start date, e.g. '2024-01-01'")
    date_to: str = Field("", description="Inclusive end date, e.g. '2024-01-31'")
    event_types: list[str] = Field(default_factory=list, description="Filter by event type")
    user_ids: list[UInt64] = Field(default_factory=list, description="Filter by user")
    group_by: list[str] = Field(default_factory=list, description="Group-by columns")
    metrics: list[str] = Field(default_factory=list, description="sum | avg | count | min | max | uniq")
    filters: dict[str, str] = Field(
        default_factory=dict,
        description="Dimension filters. Accepted but not yet applied to the query.",
    )
    limit: int = 0
    offset: int = 0

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _null_to_blank(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("event_types", "user_ids", "group_by", "metrics", "filters", mode="before")
    @classmethod
    def _null_to_empty(cls, v: Any, info) -> Any:
        if v is None:
            return {} if info.field_name == "filters" else []
        return v

    @field_validator("limit", "offset", mode="before")
    @classmethod
    def _null_to_zero(cls, v: Any) -> Any:
        return 0 if v is None else v


class RawFactsRequest(BaseModel):
    """Query string of GET /api/facts."""

    date_from: str | None = None
    date_to: str | None = None
    event_type: str | None = None
    user_id: str | None = None
    limit: int | None = None
    offset: int | None = None

    @field_validator("limit", "offset", mode="before")
    @classmethod
    def _parse_int(cls, v: Any) -> int | None:
        return _lenient_int(v)


class TimeseriesRequest(BaseModel):
    """Query string of GET /api/facts/timeseries."""

    date_from: str | None = None
    date_to: str | None = None
    event_type: str | None = None
    metric: str | None = None
    granularity: str | None = None


@dataclass(frozen=True)
class ValidatedRequest:
    """An aggregate request after whitelist checks and normalisation."""

    date_from: str
    date_to: str
    event_types: tuple[str, ...]
    user_ids: tuple[int, ...]
    group_by: tuple[str, ...]
    metrics: tuple[str, ...]
    limit: int
    offset: int
    filters: dict[str, str] = field(default_factory=dict)
