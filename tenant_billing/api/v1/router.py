# 📄 File: tenant_billing/api/v1/router.py
# 🧭 Purpose (Layman Explanation):
# Sends every version 1 web request to the right handler (health checks or billing).
# 🧪 Purpose (Technical Summary):
# Main API v1 router aggregation combining module routers under their route prefixes.
# 🔗 Dependencies:
# FastAPI, tenant_billing.api.v1.health, subscription_billing presentation router
# 🔄 Connected Modules / Calls From:
# tenant_billing/main.py

import logging

from fastapi import APIRouter

from tenant_billing.modules.subscription_billing.presentation.api.v1.billing import billing_router

from . import ROUTE_PREFIXES
from .health import health_router

logger = logging.getLogger(__name__)

# Create main API v1 router
api_v1_router = APIRouter()

# Include health check router (no prefix - direct access)
api_v1_router.include_router(
    health_router,
    tags=["Health Check"]
)

api_v1_router.include_router(
    billing_router,
    prefix=ROUTE_PREFIXES["billing"],
    tags=["Subscription Billing"]
)
