# app/routes/health.py
"""
Health check endpoints with database pool monitoring.
"""

import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.config import settings
from app.db.pool import db_pool
from app.infrastructure.observability.logging import log_health_check

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "artist-command-center"}


@router.get("/readyz")
async def readyz():
    """Readiness check: database pool plus required configuration."""
    checks = {}

    t0 = time.time()
    try:
        db_health = await db_pool.health_check()
        is_healthy = db_health.get("healthy", False)
        checks["database"] = {
            "ok": is_healthy,
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        if "pool_stats" in db_health:
            checks["database"]["pool_stats"] = db_health["pool_stats"]
        if "warnings" in db_health:
            checks["database"]["warnings"] = db_health["warnings"]
        if not is_healthy:
            checks["database"]["error"] = db_health.get("error", "Database unhealthy")
    except Exception as e:
        checks["database"] = {"ok": False, "error": f"{type(e).__name__}: {e}"}

    log_health_check(
        "database",
        checks["database"]["ok"],
        checks["database"].get("latency_ms", 0.0),
        checks["database"].get("error"),
    )

    config_issues = []
    if settings.EMAIL_PROVIDER == "resend" and not settings.RESEND_API_KEY:
        config_issues.append("RESEND_API_KEY not set")
    if settings.EMAIL_PROVIDER == "smtp" and not settings.SMTP_HOST:
        config_issues.append("SMTP_HOST not set")

    checks["configuration"] = {
        "ok": not config_issues,
        "issues": config_issues or None,
        "environment": settings.environment,
    }

    overall_ok = all(check["ok"] for check in checks.values())
    body = {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
    return JSONResponse(status_code=200 if overall_ok else 503, content=body)
