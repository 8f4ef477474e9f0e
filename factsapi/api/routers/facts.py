"""GET /api/facts, POST /api/facts/aggregate, GET /api/facts/timeseries."""
from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.engine import Engine

from factsapi.api.deps import get_cancel_token, get_store
from factsapi.core.utils import CancelToken
from factsapi.db.materializer import FactRow, TimeseriesPoint
from factsapi.query import service
from factsapi.query.spec import QueryRequest, RawFactsRequest, TimeseriesRequest

router = APIRouter()


class FactsResponse(BaseModel):
    data: list[FactRow]
    count: int


class AggregateResponse(BaseModel):
    data: list[dict[str, Any]]
    count: int


class TimeseriesResponse(BaseModel):
    data: list[TimeseriesPoint]
    count: int


@router.get("", response_model=FactsResponse)
def list_facts(
    req: Annotated[RawFactsRequest, Query()],
    engine: Engine = Depends(get_store),
    cancel: CancelToken = Depends(get_cancel_token),
):
    """Raw fact rows filtered by date range, event type and user."""
    rows = service.fetch_facts(engine, req, cancel)
    return FactsResponse(data=rows, count=len(rows))


@router.post("/aggregate", response_model=AggregateResponse)
def aggregate_facts(
    req: QueryRequest,
    engine: Engine = Depends(get_store),
    cancel: CancelToken = Depends(get_cancel_token),
):
    """Grouped aggregates over whitelisted columns and metrics."""
    rows = service.aggregate_facts(engine, req, cancel)
    return AggregateResponse(data=rows, count=len(rows))


@router.get("/timeseries", response_model=TimeseriesResponse)
def facts_timeseries(
    req: Annotated[TimeseriesRequest, Query()],
    engine: Engine = Depends(get_store),
    cancel: CancelToken = Depends(get_cancel_token),
):
    """One metric value per day / hour / week / month."""
    points = service.timeseries(engine, req, cancel)
    return TimeseriesResponse(data=points, count=len(points))
