"""
Health and liveness probes.

/api/health is polled by the web client, /health by load balancers,
/health/detailed by dashboards, and /ping by uptime monitors.
"""
import time
from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from core.cache import get_redis_client
from core.config import APP_VERSION, settings
from core.database import check_db_connection

router = APIRouter(tags=["health"])


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def _redis_check() -> dict:
    start = time.perf_counter()
    client = get_redis_client()
    if client is None:
        return {"status": "unavailable", "latency_ms": None}
    try:
        client.ping()
    except Exception as e:
        return {"status": "error", "latency_ms": _elapsed_ms(start), "error": str(e)}
    return {"status": "healthy", "latency_ms": _elapsed_ms(start)}


@router.get("/api/health")
def api_health():
    return {
        "status": "healthy",
        "service": settings.SERVICE_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/health")
def health():
    """200 when the database answers, 503 otherwise."""
    if not check_db_connection():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "unavailable"},
        )
    return {"status": "healthy", "timestamp": time.time()}


@router.get("/health/detailed")
def health_detailed():
    """
    Dependency report; always 200.

    Redis is optional, so a missing cache only downgrades the status to
    "degraded". A failing database makes it "unhealthy".
    """
    start = time.perf_counter()
    database_ok = check_db_connection()
    checks = {
        "database": {"status": "healthy" if database_ok else "unhealthy", "latency_ms": _elapsed_ms(start)},
        "redis": _redis_check(),
    }

    if not database_ok:
        overall = "unhealthy"
    elif checks["redis"]["status"] == "healthy":
        overall = "healthy"
    else:
        overall = "degraded"

    return {
        "status": overall,
        "version": APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "timestamp": time.time(),
        "checks": checks,
    }


@router.get("/ping")
def ping():
    return {"pong": True}
