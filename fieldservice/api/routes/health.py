# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

This module provides health and readiness endpoints for the API.
"""

import logging
import time
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field

from fieldservice import __version__
from fieldservice.api.dependencies import Pools, Registry
from fieldservice.core.config import get_settings
from fieldservice.infrastructure.database.connection import get_central_engine
from fieldservice.utils.datetime import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


class ComponentHealth(BaseModel):
    """Individual component health status."""
    status: str = Field(description="Component status")
    latency_ms: float | None = Field(None, description="Response latency in ms")
    message: str | None = Field(None, description="Additional status message")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")


class ReadinessResponse(BaseModel):
    """Readiness check response model."""
    ready: bool = Field(description="Whether the service is ready")
    checks: dict[str, Any] = Field(description="Individual check results")


class TenantStatusResponse(BaseModel):
    """Tenant pool and config cache status."""
    success: bool = True
    pools: dict[str, Any]
    cache: dict[str, Any]


async def check_database() -> ComponentHealth:
    """Check the central (registry) database connection."""
    try:
        from sqlalchemy import text

        engine = get_central_engine()
        start = time.time()

        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

        latency = (time.time() - start) * 1000
        return ComponentHealth(status="healthy", latency_ms=round(latency, 2))
    except Exception as e:
        logger.error("Database health check failed: %s", str(e))
        return ComponentHealth(status="unhealthy", message=str(e))


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness check.

    Does not touch the database; use /ready for dependency checks.
    """
    return HealthResponse(
        status="healthy",
        timestamp=utc_now(),
        version=__version__,
        environment=get_settings().environment,
        uptime_seconds=int(time.time() - _server_start_time),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(response: Response, pools: Pools) -> ReadinessResponse:
    """Check if the API is ready to accept traffic.

    Returns 503 when the central database cannot be reached.
    """
    checks: dict[str, Any] = {}

    db_health = await check_database()
    checks["database"] = {"status": db_health.status, "latency_ms": db_health.latency_ms}
    checks["tenant_pools"] = pools.get_status()

    ready = db_health.status == "healthy"
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(ready=ready, checks=checks)


@router.get("/api/tenant/status", response_model=TenantStatusResponse)
async def tenant_status(pools: Pools, registry: Registry) -> TenantStatusResponse:
    """Cached tenant pools and tenant configs."""
    return TenantStatusResponse(pools=pools.get_status(), cache=registry.get_status())
