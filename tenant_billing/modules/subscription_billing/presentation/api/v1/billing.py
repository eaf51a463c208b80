# 📄 File: tenant_billing/modules/subscription_billing/presentation/api/v1/billing.py
# 🧭 Purpose (Layman Explanation):
# The web endpoints for billing: run the daily billing now, see whether it is running, and let a
# restaurant schedule (or cancel) a move to a cheaper plan at the end of its paid month, switch
# automatic renewal, and check whether it may start another campaign.
# 🧪 Purpose (Technical Summary):
# FastAPI router delegating to the BillingContainer held in app.state. Domain exceptions are
# rendered by the application-level BillingEngineException handler.
# 🔗 Dependencies:
# FastAPI, billing schemas, BillingContainer, shared exceptions
# 🔄 Connected Modules / Calls From:
# tenant_billing/api/v1/router.py

"""
Billing API Endpoints

Endpoints:
- POST /billing/sweeps: Trigger a renewal sweep now (409 while one is running)
- GET /billing/sweeps/status: Scheduler state and last report
- PUT /billing/subscriptions/{subscription_id}/scheduled-change: Schedule a period-end downgrade
- DELETE /billing/subscriptions/{subscription_id}/scheduled-change: Cancel it
- PUT /billing/subscriptions/{subscription_id}/auto-renew: Switch automatic renewal on or off
- GET /billing/tenants/{tenant_id}/campaign-usage: Active campaigns against the plan limit
"""

import logging

from fastapi import APIRouter, Depends, Request, status

from tenant_billing.shared.core.exceptions import ConflictError

from ....container import BillingContainer
from ..schemas.billing_schemas import (
    AutoRenewRequest,
    CampaignUsageResponse,
    ScheduleDowngradeRequest,
    SubscriptionResponse,
    SweepReportResponse,
    SweepStatusResponse,
)

logger = logging.getLogger(__name__)

billing_router = APIRouter()


def get_billing_container(request: Request) -> BillingContainer:
    return request.app.state.billing_container


@billing_router.post(
    "/sweeps",
    response_model=SweepReportResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Run renewal sweep",
    responses={409: {"description": "A sweep is already running"}},
)
async def trigger_sweep(
    container: BillingContainer = Depends(get_billing_container),
) -> SweepReportResponse:
    """
    Run the renewal sweep in this request and return its report.

    A trigger that arrives while a sweep is running is rejected, not queued.
    """
    report = await container.scheduler.trigger(source="api")
    if report is None:
        raise ConflictError(
            message="A renewal sweep is already running",
            resource="renewal_sweep",
            details={"skipped_triggers": container.scheduler.skipped_triggers},
        )
    return SweepReportResponse.from_domain(report)


@billing_router.get(
    "/sweeps/status",
    response_model=SweepStatusResponse,
    summary="Renewal sweep status",
)
async def get_sweep_status(
    container: BillingContainer = Depends(get_billing_container),
) -> SweepStatusResponse:
    return SweepStatusResponse.from_status(container.scheduler.status())


@billing_router.put(
    "/subscriptions/{subscription_id}/scheduled-change",
    response_model=SubscriptionResponse,
    summary="Schedule a downgrade at period end",
    responses={
        404: {"description": "Subscription not found"},
        422: {"description": "Target tier not allowed"},
    },
)
async def schedule_downgrade(
    subscription_id: str,
    request_body: ScheduleDowngradeRequest,
    container: BillingContainer = Depends(get_billing_container),
) -> SubscriptionResponse:
    subscription = await container.schedule_downgrade(subscription_id, request_body.target_tier)
    logger.info(f"Scheduled change to {request_body.target_tier} for subscription {subscription_id}")
    return SubscriptionResponse.from_domain(subscription)


@billing_router.delete(
    "/subscriptions/{subscription_id}/scheduled-change",
    response_model=SubscriptionResponse,
    summary="Cancel a scheduled downgrade",
    responses={404: {"description": "Subscription not found"}},
)
async def cancel_scheduled_downgrade(
    subscription_id: str,
    container: BillingContainer = Depends(get_billing_container),
) -> SubscriptionResponse:
    subscription = await container.cancel_scheduled_downgrade(subscription_id)
    return SubscriptionResponse.from_domain(subscription)


@billing_router.put(
    "/subscriptions/{subscription_id}/auto-renew",
    response_model=SubscriptionResponse,
    summary="Switch automatic renewal",
    responses={
        404: {"description": "Subscription not found"},
        422: {"description": "Free or inactive subscriptions cannot auto-renew"},
    },
)
async def toggle_auto_renew(
    subscription_id: str,
    request_body: AutoRenewRequest,
    container: BillingContainer = Depends(get_billing_container),
) -> SubscriptionResponse:
    subscription = await container.toggle_auto_renew(subscription_id, request_body.auto_renew)
    return SubscriptionResponse.from_domain(subscription)


@billing_router.get(
    "/tenants/{tenant_id}/campaign-usage",
    response_model=CampaignUsageResponse,
    summary="Campaign usage against the plan limit",
    responses={404: {"description": "Tenant has no subscription"}},
)
async def get_campaign_usage(
    tenant_id: str,
    container: BillingContainer = Depends(get_billing_container),
) -> CampaignUsageResponse:
    return CampaignUsageResponse.from_domain(await container.campaign_usage(tenant_id))
