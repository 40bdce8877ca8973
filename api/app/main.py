# main.py

"""FastAPI application wiring for the POS order core.

Routers, middlewares and error handlers are assembled here; the change-event
consumers are attached to the shared :data:`~api.app.events.event_bus`.
"""

from __future__ import annotations

import asyncio
import logging

import redis.asyncio as redis
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import get_settings

from .domain import LifecycleError
from .events import CHANNELS, event_bus
from .hooks.realtime import forward_changes
from .middlewares import LoggingMiddleware, RequestIdMiddleware
from .obs import configure_logging
from .routes_dashboard import router as dashboard_router
from .routes_kds import router as kds_router
from .routes_orders import router as orders_router
from .routes_tables import router as tables_router
from .services.projection_cache import projection_cache
from .utils.responses import err, lifecycle_error, status_for

settings = get_settings()
configure_logging(settings.log_level.upper())
logger = logging.getLogger("api")

app = FastAPI(title="POS order core", version="1.0.0")
app.add_middleware(RequestIdMiddleware)
app.add_middleware(LoggingMiddleware)

app.include_router(orders_router)
app.include_router(kds_router)
app.include_router(tables_router)
app.include_router(dashboard_router)

# Cached projections are dropped synchronously as soon as a change commits.
event_bus.listen(CHANNELS, projection_cache.invalidate)


@app.exception_handler(LifecycleError)
async def lifecycle_error_handler(request: Request, exc: LifecycleError):
    logger.warning(
        "%s: %s",
        exc.code,
        exc.message,
        extra={"status": status_for(exc), "route": request.url.path},
    )
    return lifecycle_error(exc)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(
        "%s",
        exc.detail,
        extra={"status": exc.status_code, "route": request.url.path},
    )
    return JSONResponse(err(exc.status_code, exc.detail), status_code=exc.status_code)


@app.exception_handler(Exception)
async def general_error_handler(request: Request, exc: Exception):
    logger.exception(
        "unhandled_error", extra={"status": 500, "route": request.url.path}
    )
    return JSONResponse(err(500, "Internal Server Error"), status_code=500)


@app.on_event("startup")
async def start_event_consumers() -> None:
    """Connect redis and launch the real-time fan-out consumer."""
    if getattr(app.state, "redis", None) is None:
        app.state.redis = redis.from_url(settings.redis_url, decode_responses=True)
    queue = event_bus.subscribe_many(CHANNELS)
    app.state.event_queue = queue
    app.state.consumers = [
        asyncio.create_task(forward_changes(queue, app.state.redis))
    ]


@app.on_event("shutdown")
async def stop_event_consumers() -> None:
    for task in getattr(app.state, "consumers", []):
        task.cancel()
    queue = getattr(app.state, "event_queue", None)
    if queue is not None:
        event_bus.unsubscribe(queue)


@app.get("/health", tags=["health"])
async def health() -> dict:
    return {"ok": True}
