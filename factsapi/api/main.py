"""
FastAPI application entry-point.

Run:  uvicorn factsapi.api.main:app --port 8080
"""
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from starlette.exceptions import HTTPException as StarletteHTTPException

from factsapi.api.deps import get_store
from factsapi.api.routers import facts
from factsapi.core import errors
from factsapi.core.logging import get_logger
from factsapi.db.connection import create_store_engine, ping

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.engine = create_store_engine()
    try:
        yield
    finally:
        app.state.engine.dispose()
        logger.info("Store engine disposed")


app = FastAPI(
    title="Facts Analytics API",
    version="0.1.0",
    description="Whitelisted raw, aggregate and time-series queries over a ClickHouse fact table",
    lifespan=lifespan,
)

app.include_router(facts.router, prefix="/api/facts", tags=["Facts"])


# ── Error envelope ───────────────────────────────────────

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 405:
        return _error(405, "method not allowed")
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def body_error_handler(request: Request, exc: RequestValidationError):
    logger.warning("Rejected request body: %s", exc.errors())
    return _error(400, "invalid request body")


@app.exception_handler(errors.RequestValidationError)
async def validation_error_handler(request: Request, exc: errors.RequestValidationError):
    return _error(400, str(exc))


@app.exception_handler(errors.QueryCancelled)
async def cancelled_handler(request: Request, exc: errors.QueryCancelled):
    logger.warning("Query cancelled: %s %s", request.method, request.url.path)
    return _error(504, "query cancelled")


@app.exception_handler(errors.StorageError)
async def storage_error_handler(request: Request, exc: errors.StorageError):
    return _error(500, str(exc))


@app.exception_handler(errors.DecodeError)
async def decode_error_handler(request: Request, exc: errors.DecodeError):
    logger.error("Result decoding failed: %s", exc)
    return _error(500, str(exc))


# ── Health ───────────────────────────────────────────────

@app.get("/health")
def health(engine: Engine = Depends(get_store)):
    ok, error = ping(engine)
    if not ok:
        return JSONResponse(status_code=503, content={"status": "unhealthy", "error": error})
    return {"status": "ok"}
