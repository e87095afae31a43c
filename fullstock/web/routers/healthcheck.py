"""Healthcheck endpoint with dependency checks."""

from __future__ import annotations

import time
from datetime import datetime, timezone

import psutil
from fastapi import APIRouter, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from fullstock.db.session import SessionLocal

router = APIRouter()

DISK_WARN_PERCENT = 90
MEMORY_WARN_PERCENT = 90


def check_database() -> dict:
    """Round-trip a trivial query through the backing store."""
    try:
        with SessionLocal() as db:
            start = time.time()
            db.execute(text("SELECT 1"))
            latency = (time.time() - start) * 1000
        return {"status": "ok", "latency_ms": round(latency, 2)}
    except SQLAlchemyError as e:
        return {"status": "error", "error": str(e)}


def check_disk(path: str = "/") -> dict:
    try:
        disk = psutil.disk_usage(path)
    except OSError as e:
        return {"status": "error", "error": str(e)}
    return {
        "status": "warning" if disk.percent > DISK_WARN_PERCENT else "ok",
        "free_gb": round(disk.free / (1024**3), 2),
        "used_percent": disk.percent,
    }


def check_memory() -> dict:
    mem = psutil.virtual_memory()
    return {
        "status": "warning" if mem.percent > MEMORY_WARN_PERCENT else "ok",
        "available_mb": round(mem.available / (1024**2), 2),
        "used_percent": mem.percent,
    }


@router.get("/healthz")
def healthz():
    """Comprehensive health check endpoint.

    Checks:
    - Database connectivity
    - Disk space
    - Memory usage

    Returns:
        200 OK when healthy or degraded
        503 Service Unavailable if the database or disk check fails
    """
    checks = {
        "database": check_database(),
        "disk": check_disk(),
        "memory": check_memory(),
    }

    if any(c["status"] == "error" for c in checks.values()):
        status = "unhealthy"
    elif any(c["status"] == "warning" for c in checks.values()):
        status = "degraded"
    else:
        status = "healthy"

    healthy = checks["database"]["status"] == "ok" and checks["disk"]["status"] != "error"
    uptime_seconds = time.time() - psutil.boot_time()

    response = {
        "status": status,
        "healthy": healthy,
        "checks": checks,
        "uptime": {
            "uptime_seconds": round(uptime_seconds, 2),
            "uptime_human": _format_uptime(uptime_seconds),
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if not healthy:
        raise HTTPException(status_code=503, detail=response)

    return response


def _format_uptime(seconds: float) -> str:
    """Format uptime in human-readable format (e.g. "1d 2h 30m")."""
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    minutes = int((seconds % 3600) // 60)

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0 or not parts:
        parts.append(f"{minutes}m")

    return " ".join(parts)
