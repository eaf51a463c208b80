# 📄 File: tenant_billing/modules/subscription_billing/domain/models/subscription.py
# 🧭 Purpose (Layman Explanation):
# Describes a restaurant's subscription: which plan it is on, when the paid month ends,
# whether it renews automatically, and whether a cheaper plan is waiting to kick in.
# 🧪 Purpose (Technical Summary):
# Pydantic domain model for the Subscription aggregate. The free-tier invariant and the
# scheduled-change invariant are validated on every construction, so every store read and
# every with_changes() call re-checks them.
# 🔗 Dependencies:
# pydantic, datetime, decimal, uuid, enum, plan.py
# 🔄 Connected Modules / Calls From:
# billing_cycle.py, renewal_engine.py, entitlement_enforcer.py, repositories, API schemas

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator

from .plan import PlanTier


class SubscriptionStatus(str, Enum):
    """Subscription status enumeration"""
    ACTIVE = "active"
    CANCELLED = "cancelled"


class Subscription(BaseModel):
    """
    Subscription domain model, one per tenant.

    Invariants:
    - plan_tier = free implies end_at is None and auto_renew is False
    - scheduled_plan_change, when set, differs from plan_tier
    """

    # Identity
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tenant_id: str

    # Plan and status
    plan_tier: PlanTier = PlanTier.FREE
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE

    # Billing window
    start_at: datetime
    end_at: Optional[datetime] = None
    next_billing_at: Optional[datetime] = None
    price_paid: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = "MXN"

    # Payment provider
    gateway_customer_ref: Optional[str] = None

    # Renewal state
    auto_renew: bool = False
    renewal_attempts: int = Field(default=0, ge=0)
    last_renewal_attempt_at: Optional[datetime] = None
    renewal_reminder_sent: bool = False
    scheduled_plan_change: Optional[PlanTier] = None
    entitlement_sync_pending: bool = False

    # Metadata
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def check_invariants(self) -> "Subscription":
        if self.plan_tier == PlanTier.FREE:
            if self.end_at is not None:
                raise ValueError("Free subscriptions cannot have an end date")
            if self.auto_renew:
                raise ValueError("Free subscriptions cannot auto-renew")
        if self.scheduled_plan_change is not None and self.scheduled_plan_change == self.plan_tier:
            raise ValueError("Scheduled plan change must differ from the current plan")
        return self

    @classmethod
    def create_free_subscription(
        cls,
        tenant_id: str,
        now: Optional[datetime] = None,
        currency: str = "MXN",
        gateway_customer_ref: Optional[str] = None
    ) -> "Subscription":
        """
        Create the onboarding subscription for a new tenant.

        Args:
            tenant_id: Owning tenant
            now: Creation time (defaults to current UTC time)
            currency: Billing currency
            gateway_customer_ref: Payment provider customer id, if already known

        Returns:
            New free Subscription instance
        """
        now = now or datetime.now(timezone.utc)
        return cls(
            tenant_id=tenant_id,
            plan_tier=PlanTier.FREE,
            status=SubscriptionStatus.ACTIVE,
            start_at=now,
            currency=currency,
            gateway_customer_ref=gateway_customer_ref,
            created_at=now,
            updated_at=now,
        )

    def with_changes(self, changes: Dict[str, Any]) -> "Subscription":
        """Return a validated copy with the given fields replaced."""
        return Subscription.model_validate({**self.model_dump(), **changes})

    @property
    def is_free(self) -> bool:
        return self.plan_tier == PlanTier.FREE

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE

    @property
    def billing_date_key(self) -> str:
        """Current cycle's due date (YYYY-MM-DD), stable across sweep reruns."""
        reference = self.end_at or self.start_at
        return reference.astimezone(timezone.utc).strftime("%Y-%m-%d")
