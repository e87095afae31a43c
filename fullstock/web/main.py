"""FastAPI application serving replenishment decisions."""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from fullstock.core.config import get_settings
from fullstock.core.logging import setup_logging
from fullstock.core.metrics import app_info, app_uptime_seconds
from fullstock.db.records import StoreFetchError
from fullstock.domain.decisions.scoring import InvalidParametersError
from fullstock.web.middleware import PrometheusMiddleware, RequestIdMiddleware
from fullstock.web.routers import decisions, healthcheck

VERSION = "0.1.0"

_settings = get_settings()
setup_logging(_settings.log_level, file_path=_settings.log_file)

log = logging.getLogger("fullstock.web")

# Application start time for uptime calculation
APP_START_TIME = time.time()

app = FastAPI(
    title="Fullstock Decisions API",
    version=VERSION,
    description="Replenishment decisions for fulfillment stock: coverage, risk flags and units to send",
)

app.add_middleware(PrometheusMiddleware)
app.add_middleware(RequestIdMiddleware)

app_info.labels(version=VERSION, environment=_settings.environment).set(1)


@app.exception_handler(StoreFetchError)
async def store_fetch_error_handler(request: Request, exc: StoreFetchError):
    """Backing store failures surface as a single 502 error body."""
    log.error(
        "store_unavailable",
        extra={"path": str(request.url.path), "dataset": exc.dataset, "error": str(exc)},
    )
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"ok": False, "error": str(exc)},
    )


@app.exception_handler(InvalidParametersError)
async def invalid_parameters_handler(request: Request, exc: InvalidParametersError):
    log.warning("invalid_parameters", extra={"path": str(request.url.path), "error": str(exc)})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"ok": False, "error": str(exc)},
    )


# Global exception handler for unhandled errors (500)
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions with proper logging and response."""
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())

    log.error(
        "unhandled_exception",
        extra={
            "request_id": request_id,
            "path": str(request.url.path),
            "method": request.method,
            "error": str(exc),
            "error_type": type(exc).__name__,
        },
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "ok": False,
            "error": "internal_server_error",
            "request_id": request_id,
        },
    )


app.include_router(healthcheck.router, tags=["Monitoring"])
app.include_router(decisions.router)


@app.get("/health")
def health():
    """Basic health check for monitoring."""
    return {"status": "healthy"}


@app.get("/metrics")
def metrics():
    """Prometheus metrics endpoint."""
    app_uptime_seconds.set(time.time() - APP_START_TIME)
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
