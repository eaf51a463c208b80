# 📄 File: tenant_billing/modules/subscription_billing/presentation/api/schemas/billing_schemas.py
# 🧭 Purpose (Layman Explanation):
# Describes what the billing endpoints accept and what they send back.
# 🧪 Purpose (Technical Summary):
# Pydantic request/response schemas for the billing API, with from_domain converters.
# 🔗 Dependencies:
# pydantic, domain models
# 🔄 Connected Modules / Calls From:
# presentation/api/v1/billing.py

"""
Billing API Schemas

Request Schemas:
- ScheduleDowngradeRequest: target tier for a period-end downgrade
- AutoRenewRequest: desired auto-renew flag

Response Schemas:
- SubscriptionResponse: subscription state after a plan change command
- SweepReportResponse: counters and errors of one sweep
- SweepStatusResponse: scheduler state
- CampaignUsageResponse: active campaigns against the plan limit
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ....domain.models.subscription import Subscription
from ....domain.models.sweep_report import SweepReport
from ....domain.services.entitlement_enforcer import CampaignUsage


class ScheduleDowngradeRequest(BaseModel):
    """Request body for PUT /subscriptions/{id}/scheduled-change."""

    target_tier: str = Field(
        ...,
        min_length=1,
        description="free or a paid tier cheaper than the current one",
        examples=["tier1"]
    )


class AutoRenewRequest(BaseModel):
    """Request body for PUT /subscriptions/{id}/auto-renew."""

    auto_renew: bool = Field(..., description="Charge the saved card when the paid period ends")


class SubscriptionResponse(BaseModel):
    id: str
    tenant_id: str
    plan_tier: str
    status: str
    start_at: datetime
    end_at: Optional[datetime] = None
    next_billing_at: Optional[datetime] = None
    price_paid: Decimal
    currency: str
    auto_renew: bool
    renewal_attempts: int
    renewal_reminder_sent: bool
    scheduled_plan_change: Optional[str] = None
    entitlement_sync_pending: bool
    updated_at: datetime

    @classmethod
    def from_domain(cls, subscription: Subscription) -> "SubscriptionResponse":
        return cls.model_validate(subscription.model_dump(mode="json"))


class SweepReportResponse(SweepReport):
    """Sweep report as returned by the manual trigger."""

    @classmethod
    def from_domain(cls, report: SweepReport) -> "SweepReportResponse":
        return cls.model_validate(report.model_dump())


class SweepStatusResponse(BaseModel):
    busy: bool
    last_source: Optional[str] = None
    last_started_at: Optional[datetime] = None
    last_finished_at: Optional[datetime] = None
    skipped_triggers: int = 0
    last_report: Optional[SweepReportResponse] = None

    @classmethod
    def from_status(cls, status: Dict[str, Any]) -> "SweepStatusResponse":
        report = status.get("last_report")
        return cls(
            **{key: value for key, value in status.items() if key != "last_report"},
            last_report=SweepReportResponse.from_domain(report) if report else None,
        )


class CampaignUsageResponse(BaseModel):
    tenant_id: str
    plan_tier: str
    limit: Optional[int] = Field(None, description="Concurrent campaign limit; null means unlimited")
    active: int
    can_activate: bool

    @classmethod
    def from_domain(cls, usage: CampaignUsage) -> "CampaignUsageResponse":
        return cls(
            tenant_id=usage.tenant_id,
            plan_tier=usage.plan_tier.value,
            limit=usage.limit,
            active=usage.active,
            can_activate=usage.allowed,
        )
