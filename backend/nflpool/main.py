"""
backend/nflpool/main.py

Purpose:
    FastAPI application bootstrap, middleware/router wiring, scheduler
    lifecycle for the score poller, and startup admin seeding.

Dependencies:
    - nflpool.database
    - nflpool.workers.score_poller
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from bson.errors import InvalidId
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import (
    ConnectionFailure,
    DuplicateKeyError,
    OperationFailure,
    ServerSelectionTimeoutError,
)

from nflpool.config import settings
import nflpool.database as _db
from nflpool.database import close_db, connect_db
from nflpool.middleware.logging import StructuredLoggingMiddleware, setup_logging
from nflpool.workers._state import get_synced_at, recently_synced

logger = logging.getLogger("nflpool")
scheduler = AsyncIOScheduler()


def _build_job_specs() -> list[dict]:
    from nflpool.workers.score_poller import poll_scores

    interval = max(30, min(120, settings.SCORE_POLL_INTERVAL_SECONDS))
    return [
        {"id": "score_poller", "func": poll_scores, "trigger": "interval", "trigger_kwargs": {"seconds": interval}},
    ]


def _register_jobs() -> int:
    added = 0
    for spec in _build_job_specs():
        if scheduler.get_job(spec["id"]):
            continue
        scheduler.add_job(
            spec["func"],
            spec["trigger"],
            id=spec["id"],
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **spec["trigger_kwargs"],
        )
        added += 1
    return added


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await connect_db()

    from nflpool.seed import ensure_startup_admin
    await ensure_startup_admin()

    if settings.SCORE_POLL_ENABLED:
        added = _register_jobs()
        logger.info("Score poller scheduled (%d job(s))", added)
    else:
        logger.info("Score poller disabled via config")
    scheduler.start()
    logger.info("Background scheduler started")

    yield

    if scheduler.running:
        scheduler.shutdown(wait=False)
    from nflpool.providers.espn import espn_provider
    await espn_provider.aclose()
    await close_db()


app = FastAPI(
    title="NFL Pool",
    description="Confidence and survivor pool backend",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Structured logging
app.add_middleware(StructuredLoggingMiddleware)

# Routers
from nflpool.routers.auth import router as auth_router
from nflpool.routers.pools import router as pools_router
from nflpool.routers.admin import router as admin_router

app.include_router(auth_router)
app.include_router(pools_router)
app.include_router(admin_router)


@app.exception_handler(InvalidId)
async def invalid_object_id_handler(request: Request, exc: InvalidId):
    return JSONResponse(status_code=400, content={"detail": "Invalid ID."})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Return clean validation errors without leaking internal field paths."""
    errors = []
    for err in exc.errors():
        loc = err.get("loc", ())
        field = ".".join(str(l) for l in loc[1:]) if len(loc) > 1 else str(loc[-1]) if loc else "unknown"
        errors.append({"field": field, "message": err.get("msg", "Invalid value.")})
    return JSONResponse(status_code=422, content={"detail": "Validation error.", "errors": errors})


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    return JSONResponse(status_code=409, content={"detail": "Duplicate entry."})


@app.exception_handler(ServerSelectionTimeoutError)
async def db_timeout_handler(request: Request, exc: ServerSelectionTimeoutError):
    logger.error("Database timeout: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable."})


@app.exception_handler(ConnectionFailure)
async def db_connection_handler(request: Request, exc: ConnectionFailure):
    logger.error("Database connection failure: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable."})


@app.exception_handler(OperationFailure)
async def db_operation_handler(request: Request, exc: OperationFailure):
    logger.error("Database operation error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "An internal error occurred."})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    logger.warning("ValueError on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc) or "Invalid input."})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all: log the real error, return a safe generic message."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "An internal error occurred."})


@app.get("/health")
async def health():
    """Health check -- verifies DB connection and the last score poll."""
    try:
        result = await _db.db.command("ping")
        db_ok = result.get("ok") == 1.0
    except Exception:
        db_ok = False

    last_poll = await get_synced_at("score_poller") if db_ok else None
    # Three missed ticks count as stale.
    max_age = timedelta(seconds=3 * max(30, min(120, settings.SCORE_POLL_INTERVAL_SECONDS)))
    fresh = await recently_synced("score_poller", max_age) if db_ok else False
    return {
        "status": "healthy" if db_ok else "degraded",
        "db": "connected" if db_ok else "disconnected",
        "score_poller": {
            "enabled": settings.SCORE_POLL_ENABLED,
            "last_synced_at": last_poll.isoformat() if last_poll else None,
            "fresh": fresh,
        },
    }
