"""
FastAPI dependencies shared by the routers.
"""
from __future__ import annotations

from fastapi import Request
from sqlalchemy.engine import Engine

from factsapi.core.config import get_settings
from factsapi.core.utils import CancelToken


def get_store(request: Request) -> Engine:
    """The store engine created at start-up (see `factsapi.api.main.lifespan`)."""
    return request.app.state.engine


def get_cancel_token() -> CancelToken:
    """A fresh per-request token bounded by the configured query timeout."""
    return CancelToken(timeout_s=get_settings().query_timeout_s)
