# =============================================================================
# app/routers/health.py - Health Check Endpoints
# =============================================================================
# Provides health check endpoints for monitoring and load balancers.
# =============================================================================

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from app.dependencies import RecordsDep, ResponseCacheDep
from lib.records_client import RecordsGatewayError

router = APIRouter()


# =============================================================================
# Response Models
# =============================================================================

class ChecksResponse(BaseModel):
    """Individual service checks."""
    records: str
    cache: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""
    status: str
    checks: ChecksResponse
    timestamp: str


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/health")
async def health_check() -> dict:
    """Liveness check."""
    return {"ok": True}


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(records: RecordsDep, cache: ResponseCacheDep):
    """
    Readiness check endpoint.

    Checks records service and cache connectivity. A cache outage only
    degrades the service; responses are then served uncached.
    """
    checks = ChecksResponse(records="unknown", cache="unknown")

    try:
        records.ping()
        checks.records = "healthy"
    except RecordsGatewayError as e:
        checks.records = f"unhealthy: {e.message[:50]}"

    checks.cache = "healthy" if await cache.ping() else "unhealthy"

    all_healthy = checks.records == "healthy" and checks.cache == "healthy"

    return ReadinessResponse(
        status="ready" if all_healthy else "degraded",
        checks=checks,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
