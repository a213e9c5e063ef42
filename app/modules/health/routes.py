import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from supabase import Client

from app.config import settings
from app.core.limiter import limiter
from app.database.supabase_client import get_supabase

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

STATUS_CODES = {"healthy": 200, "degraded": 206, "unhealthy": 503}


def check_database(supabase: Client) -> bool:
    try:
        supabase.table("roles").select("id").limit(1).execute()
        return True
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        return False


def check_auth(supabase: Client) -> bool:
    try:
        supabase.auth.get_session()
        return True
    except Exception as e:
        logger.error("Auth health check failed: %s", e)
        return False


def overall_status(checks: dict) -> str:
    results = list(checks.values())
    if all(results):
        return "healthy"
    if any(results):
        return "degraded"
    return "unhealthy"


@router.get("/health")
@limiter.exempt
async def health(request: Request, supabase: Client = Depends(get_supabase)):
    """Liveness plus database and auth reachability"""
    started = time.monotonic()
    checks = {
        "api": True,
        "database": check_database(supabase),
        "auth": check_auth(supabase),
    }
    health_status = overall_status(checks)
    body = {
        "status": health_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.version,
        "environment": settings.environment,
        "checks": checks,
        "responseTime": int((time.monotonic() - started) * 1000),
    }
    return JSONResponse(status_code=STATUS_CODES[health_status], content=body)


@router.get("/ready")
@limiter.exempt
async def ready(request: Request):
    """Readiness check"""
    return {"status": "ready"}
