# 📄 File: tenant_billing/api/v1/health.py
# 🧭 Purpose (Layman Explanation):
# Lets monitoring tools ask "is the billing service alive and can it reach its database?"
# 🧪 Purpose (Technical Summary):
# Liveness and readiness endpoints. Readiness runs the connection manager's health check when
# the service owns a database engine.
# 🔗 Dependencies:
# FastAPI, tenant_billing.shared.config.settings
# 🔄 Connected Modules / Calls From:
# tenant_billing/api/v1/router.py, load balancers

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from tenant_billing.shared.config.settings import get_settings

logger = logging.getLogger(__name__)

health_router = APIRouter()


@health_router.get("/health", summary="Basic Health Check", tags=["Health Check"])
async def health_check() -> JSONResponse:
    """Basic health check for load balancers."""
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": "tenant-billing",
            "version": get_settings().APP_VERSION,
        },
    )


@health_router.get("/health/ready", summary="Readiness Probe", tags=["Health Check"])
async def readiness_check(request: Request) -> JSONResponse:
    container = request.app.state.billing_container
    checks = {"scheduler": {"busy": container.scheduler.busy}}

    healthy = True
    if container.connection_manager is not None:
        database = await container.connection_manager.health_check()
        checks["database"] = database
        healthy = database.get("status") == "healthy"

    if not healthy:
        logger.warning(f"Readiness check failed: {checks}")

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"status": "ready" if healthy else "not_ready", "checks": checks},
    )
